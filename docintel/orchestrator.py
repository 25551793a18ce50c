"""Provider selection, fallback and post-processing for document extraction.

The orchestrator is the single entry point callers use. It validates the
input, resolves the document type, walks the provider chain and always
returns an ExtractionResult: failures are reported in the result rather
than raised.
"""

import asyncio
import time
from collections.abc import Iterable, Sequence

from docintel.models import DocumentType, ExtractionResult, OCRConfig
from docintel.parsing.confidence import ConfidenceCalculator
from docintel.providers.base import DocumentTypeDetector, OCRProvider
from docintel.providers.claude import ClaudeVisionProvider
from docintel.providers.mock import MockProvider
from docintel.providers.tesseract import TesseractProvider
from docintel.utils.config import AppConfig, load_config
from docintel.utils.exceptions import (
    AllProvidersFailedError,
    InvalidInputError,
    UnavailableProviderError,
)
from docintel.utils.logger import get_logger
from docintel.validation.consistency import ExtractionValidator

logger = get_logger(__name__)

DEFAULT_FALLBACK_ORDER = ("claude", "tesseract")

SUPPORTED_MIME_TYPES = frozenset(
    {
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/webp",
        "image/gif",
        "application/pdf",
    }
)

NO_PROVIDER = "none"
NO_PROVIDER_ERROR = (
    "No OCR provider available. Configure ANTHROPIC_API_KEY or install Tesseract."
)


class ProviderRegistry:
    """Named providers plus the order used for automatic selection.

    Providers that are registered but absent from ``fallback_order`` (such
    as the mock provider) are only used when requested explicitly.

    Args:
        providers: Providers to register.
        fallback_order: Provider names tried by ``auto`` selection.
    """

    def __init__(
        self,
        providers: Iterable[OCRProvider] = (),
        fallback_order: Sequence[str] = DEFAULT_FALLBACK_ORDER,
    ) -> None:
        self._providers: dict[str, OCRProvider] = {}
        for provider in providers:
            self.register(provider)
        self.fallback_order = tuple(fallback_order)

    def register(self, provider: OCRProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name: str) -> OCRProvider | None:
        return self._providers.get(name)

    def names(self) -> list[str]:
        return list(self._providers)

    def available_providers(self) -> list[str]:
        """Return the names of registered providers that can be called now."""
        return [
            name for name, provider in self._providers.items() if provider.is_available()
        ]

    def available_in_order(self) -> list[OCRProvider]:
        """Return the available providers from the fallback order, in order."""
        providers = [self._providers.get(name) for name in self.fallback_order]
        return [p for p in providers if p is not None and p.is_available()]


class DocumentOrchestrator:
    """Runs extractions across the registered providers.

    Args:
        registry: Providers to choose from.
        provider_timeout: Default seconds allowed per provider attempt;
            ``None`` disables the limit.
        max_concurrency: Upper bound on simultaneous extractions.
        confidence_calculator: Scores successful extractions.
        validator: Adds consistency warnings to successful extractions.
        detection_warning_threshold: Detections below this confidence
            add a warning to the result.
        default_config: Selection settings used when a call passes none.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        provider_timeout: float | None = 120.0,
        max_concurrency: int | None = None,
        confidence_calculator: ConfidenceCalculator | None = None,
        validator: ExtractionValidator | None = None,
        detection_warning_threshold: float = 0.5,
        default_config: OCRConfig | None = None,
    ) -> None:
        self.registry = registry
        self.provider_timeout = provider_timeout
        self.confidence_calculator = confidence_calculator or ConfidenceCalculator()
        self.validator = validator or ExtractionValidator()
        self.detection_warning_threshold = detection_warning_threshold
        self.default_config = default_config or OCRConfig()
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def extract_document(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | str | None = None,
        config: OCRConfig | None = None,
        timeout: float | None = None,
    ) -> ExtractionResult:
        """Extract structured data from a document.

        Args:
            image_bytes: Raw document content.
            mime_type: Declared content type.
            document_type: Known document type; detected when omitted.
            config: Provider selection settings for this call.
            timeout: Seconds allowed per provider attempt.

        Returns:
            The extraction result; never raises for input or provider
            failures.
        """
        if self._semaphore is None:
            return await self._extract(
                image_bytes, mime_type, document_type, config, timeout
            )
        async with self._semaphore:
            return await self._extract(
                image_bytes, mime_type, document_type, config, timeout
            )

    def extract_document_sync(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | str | None = None,
        config: OCRConfig | None = None,
        timeout: float | None = None,
    ) -> ExtractionResult:
        """Blocking wrapper around ``extract_document``."""
        return asyncio.run(
            self.extract_document(image_bytes, mime_type, document_type, config, timeout)
        )

    async def _extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | str | None,
        config: OCRConfig | None,
        timeout: float | None,
    ) -> ExtractionResult:
        start_time = time.time()
        config = config or self.default_config
        timeout = timeout if timeout is not None else self.provider_timeout

        def elapsed_ms() -> float:
            return (time.time() - start_time) * 1000

        try:
            hint = self._validate_input(image_bytes, mime_type, document_type)
        except InvalidInputError as exc:
            logger.warning("Rejected extraction request: %s", exc.message)
            return ExtractionResult.failure(
                NO_PROVIDER, DocumentType.OTHER, exc.message, elapsed_ms()
            )

        warnings: list[str] = []
        if hint is not None:
            resolved = hint
        elif config.mock_mode:
            resolved = DocumentType.OTHER
        else:
            resolved = await self._detect_type(image_bytes, mime_type, timeout, warnings)

        try:
            candidates = self._select_providers(config)
        except UnavailableProviderError as exc:
            logger.warning("Provider selection failed: %s", exc.message)
            return ExtractionResult.failure(
                exc.provider, resolved, exc.message, elapsed_ms()
            )

        logger.info(
            "Extracting %s with providers: %s",
            resolved.value,
            ", ".join(p.name for p in candidates),
        )

        attempts: list[tuple[str, str]] = []
        for index, provider in enumerate(candidates):
            try:
                result = await asyncio.wait_for(
                    provider.extract(image_bytes, mime_type, resolved), timeout
                )
            except TimeoutError:
                error = f"Provider {provider.name} timed out after {timeout}s"
            except Exception as exc:
                error = str(exc) or type(exc).__name__
            else:
                if result.success:
                    return self._finalize(result, warnings, elapsed_ms())
                error = result.error or "Extraction failed"

            attempts.append((provider.name, error))
            logger.warning("Provider %s failed: %s", provider.name, error)
            if index + 1 < len(candidates):
                logger.warning("Falling back to %s", candidates[index + 1].name)

        failure = AllProvidersFailedError(attempts)
        logger.warning(failure.message)
        return ExtractionResult.failure(
            candidates[0].name, resolved, failure.message, elapsed_ms()
        )

    def _validate_input(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | str | None,
    ) -> DocumentType | None:
        if not image_bytes:
            raise InvalidInputError("Invalid or empty image buffer provided")
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise InvalidInputError(f"Unsupported MIME type: {mime_type}")
        if document_type is None:
            return None
        try:
            return DocumentType(document_type)
        except ValueError as exc:
            raise InvalidInputError(
                f"Unsupported document type: {document_type}"
            ) from exc

    async def _detect_type(
        self,
        image_bytes: bytes,
        mime_type: str,
        timeout: float | None,
        warnings: list[str],
    ) -> DocumentType:
        """Classify the document with the first available detector."""
        detector = next(
            (
                p
                for p in self.registry.available_in_order()
                if isinstance(p, DocumentTypeDetector)
            ),
            None,
        )
        if detector is None:
            logger.info("No document type detector available, using generic schema")
            return DocumentType.OTHER

        try:
            detection = await asyncio.wait_for(
                detector.detect_document_type(image_bytes, mime_type), timeout
            )
        except TimeoutError:
            logger.warning("Document type detection timed out")
            return DocumentType.OTHER
        except Exception as exc:
            logger.warning("Document type detection failed: %s", exc)
            return DocumentType.OTHER

        if 0 < detection.confidence < self.detection_warning_threshold:
            warnings.append(
                f"Document type '{detection.document_type.value}' detected with "
                f"low confidence ({detection.confidence:.0%})"
            )
        return detection.document_type

    def _select_providers(self, config: OCRConfig) -> list[OCRProvider]:
        """Build the ordered list of providers to attempt.

        Raises:
            UnavailableProviderError: If nothing can be attempted.
        """
        if config.mock_mode:
            return [self.registry.get(MockProvider.name) or MockProvider()]

        preferred_name = config.preferred_provider
        if preferred_name == "auto":
            candidates = self.registry.available_in_order()
            if not config.enable_fallback:
                candidates = candidates[:1]
        else:
            preferred = self.registry.get(preferred_name)
            if preferred is not None and preferred.is_available():
                candidates = [preferred]
            elif not config.enable_fallback:
                raise UnavailableProviderError(
                    preferred_name,
                    f"Preferred provider '{preferred_name}' is unavailable",
                )
            else:
                logger.warning(
                    "Preferred provider %s is unavailable, falling back", preferred_name
                )
                candidates = []
            if config.enable_fallback:
                candidates += [
                    p
                    for p in self.registry.available_in_order()
                    if p.name != preferred_name
                ]

        if not candidates:
            raise UnavailableProviderError(NO_PROVIDER, NO_PROVIDER_ERROR)
        return candidates

    def _finalize(
        self,
        result: ExtractionResult,
        warnings: list[str],
        processing_time_ms: float,
    ) -> ExtractionResult:
        """Attach weighted confidence, warnings and timing to a success."""
        report = self.validator.validate(result.extraction)
        logger.info(
            "Extraction succeeded with %s (confidence %.2f)",
            result.provider,
            result.overall_confidence,
        )
        return result.model_copy(
            update={
                "weighted_confidence": self.confidence_calculator.score(
                    result.extraction
                ),
                "warnings": [*result.warnings, *warnings, *report.warnings],
                "processing_time_ms": processing_time_ms,
            }
        )


def build_default_registry(app_config: AppConfig) -> ProviderRegistry:
    """Register the cloud, local and mock providers from configuration."""
    return ProviderRegistry(
        [
            ClaudeVisionProvider(app_config.cloud),
            TesseractProvider(app_config.tesseract, app_config.preprocessing),
            MockProvider(),
        ]
    )


def build_orchestrator(app_config: AppConfig | None = None) -> DocumentOrchestrator:
    """Wire an orchestrator from configuration.

    Args:
        app_config: Application settings. Loaded from the default config
            file when omitted.

    Returns:
        A ready-to-use orchestrator.
    """
    app_config = app_config or load_config()
    pipeline = app_config.pipeline
    return DocumentOrchestrator(
        build_default_registry(app_config),
        provider_timeout=pipeline.provider_timeout_seconds,
        max_concurrency=pipeline.max_concurrency,
        confidence_calculator=ConfidenceCalculator(
            weight_overrides=app_config.confidence.weight_overrides,
            default_weight=app_config.confidence.default_weight,
        ),
        detection_warning_threshold=pipeline.detection_warning_threshold,
        default_config=pipeline.to_ocr_config(),
    )
