"""Cloud vision extraction through the Anthropic Messages API."""

import base64
import os

import anthropic

from docintel.extraction.prompts import (
    DOCUMENT_TYPE_DETECTION_PROMPT,
    get_extraction_prompt,
)
from docintel.extraction.response_parser import (
    UNDETECTED,
    DocumentTypeDetection,
    parse_detection_response,
    parse_extraction_response,
)
from docintel.models import DocumentType, ExtractionResult
from docintel.parsing.confidence import mean_confidence
from docintel.providers.base import OCRProvider
from docintel.utils.config import CloudConfig
from docintel.utils.exceptions import (
    InvalidInputError,
    ProviderCallFailedError,
    UnavailableProviderError,
)
from docintel.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_MEDIA_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}
MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg"}

PDF_NOT_SUPPORTED = (
    "PDF files are not directly supported by Claude Vision. Please convert "
    "the PDF to an image (PNG, JPEG, WebP, or GIF) first."
)
PARSE_FAILURE = "Failed to parse extraction response from Claude"


def validate_mime_type(mime_type: str) -> str:
    """Return the media type to send to the API.

    Raises:
        InvalidInputError: For PDFs and any non-image type.
    """
    media_type = MEDIA_TYPE_ALIASES.get(mime_type, mime_type)
    if media_type == "application/pdf":
        raise InvalidInputError(PDF_NOT_SUPPORTED)
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise InvalidInputError(
            f"Unsupported MIME type for Claude Vision: {mime_type}"
        )
    return media_type


class ClaudeVisionProvider(OCRProvider):
    """Extracts fields with a Claude vision model.

    Exactly one request is made per extraction; retries are left to the
    orchestrator's fallback chain, so the SDK's own retries are disabled.

    Args:
        config: Model and token settings. ``config.api_key`` falls back to
            ``ANTHROPIC_API_KEY``.
        client: Pre-built async client, mainly for tests.
    """

    name = "claude"

    def __init__(
        self,
        config: CloudConfig | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.config = config or CloudConfig()
        self._client = client

    @property
    def api_key(self) -> str | None:
        return self.config.api_key or os.environ.get("ANTHROPIC_API_KEY")

    def is_available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                raise UnavailableProviderError(
                    self.name, "ANTHROPIC_API_KEY is not configured"
                )
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key, max_retries=0
            )
        return self._client

    async def _ask(
        self, image_bytes: bytes, media_type: str, prompt: str, max_tokens: int
    ) -> str:
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.config.model,
                max_tokens=max_tokens,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": base64.standard_b64encode(
                                        image_bytes
                                    ).decode("utf-8"),
                                },
                            },
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
            )
        except anthropic.APIError as exc:
            raise ProviderCallFailedError(
                self.name, f"Claude API request failed: {exc}"
            ) from exc

        return "".join(
            block.text for block in response.content if block.type == "text"
        )

    async def detect_document_type(
        self, image_bytes: bytes, mime_type: str
    ) -> DocumentTypeDetection:
        """Classify a document image; never raises.

        Args:
            image_bytes: Raw image content.
            mime_type: Declared content type.

        Returns:
            The detection, or ``other`` with zero confidence on any failure.
        """
        try:
            media_type = validate_mime_type(mime_type)
            reply = await self._ask(
                image_bytes,
                media_type,
                DOCUMENT_TYPE_DETECTION_PROMPT,
                self.config.detection_max_tokens,
            )
        except Exception as exc:
            logger.warning("Document type detection failed: %s", exc)
            return UNDETECTED

        detection = parse_detection_response(reply)
        logger.info(
            "Detected document type %s (confidence %.2f)",
            detection.document_type.value,
            detection.confidence,
        )
        return detection

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | None = None,
    ) -> ExtractionResult:
        document_type = document_type or DocumentType.OTHER
        media_type = validate_mime_type(mime_type)

        reply = await self._ask(
            image_bytes,
            media_type,
            get_extraction_prompt(document_type),
            self.config.max_tokens,
        )
        extraction = parse_extraction_response(reply, document_type)
        if extraction is None:
            logger.warning("Claude returned no parseable JSON for %s", document_type)
            return ExtractionResult.failure(self.name, document_type, PARSE_FAILURE)

        return ExtractionResult(
            success=True,
            provider=self.name,
            document_type=document_type,
            extraction=extraction,
            overall_confidence=mean_confidence(extraction),
        )
