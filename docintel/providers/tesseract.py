"""Local extraction: Tesseract OCR followed by pattern matching.

Works offline and accepts PDFs, at the cost of lower and capped field
confidence than the vision provider.
"""

import asyncio
import io

import numpy as np
import pytesseract
from pdf2image.exceptions import PDFInfoNotInstalledError
from PIL import Image, UnidentifiedImageError

from docintel.extraction.rule_extractor import RuleExtractor
from docintel.models import DocumentType, ExtractionResult
from docintel.ocr.pdf_handler import PDFHandler, is_pdf
from docintel.ocr.preprocess import prepare_for_ocr
from docintel.ocr.tesseract_engine import OCRResult, TesseractEngine
from docintel.parsing.confidence import mean_confidence
from docintel.providers.base import OCRProvider
from docintel.utils.config import PreprocessingConfig, TesseractConfig
from docintel.utils.exceptions import ProviderCallFailedError
from docintel.utils.logger import get_logger

logger = get_logger(__name__)

MIN_TEXT_LENGTH = 10
MIN_OCR_CONFIDENCE = 0.30
# Reported when the text was readable but no field matched.
FALLBACK_OVERALL_CONFIDENCE = 0.30

NO_TEXT_ERROR = "Unreadable image: OCR could not extract meaningful text from the image"


class TesseractProvider(OCRProvider):
    """Extracts fields from OCR text with the rule extractor.

    Args:
        config: Engine and PDF rendering settings.
        preprocessing: Image cleanup settings.
        engine: OCR engine; built from ``config`` when omitted.
        pdf_handler: PDF rasterizer; built from ``config`` when omitted.
        extractor: Pattern extractor; defaults to the built-in tables.
    """

    name = "tesseract"

    def __init__(
        self,
        config: TesseractConfig | None = None,
        preprocessing: PreprocessingConfig | None = None,
        engine: TesseractEngine | None = None,
        pdf_handler: PDFHandler | None = None,
        extractor: RuleExtractor | None = None,
    ) -> None:
        self.config = config or TesseractConfig()
        self.preprocessing = preprocessing or PreprocessingConfig()
        self.engine = engine or TesseractEngine(
            tesseract_cmd=self.config.tesseract_cmd,
            default_lang=self.config.default_lang,
            psm=self.config.psm,
            timeout=self.config.timeout_seconds,
        )
        self.pdf_handler = pdf_handler or PDFHandler(
            dpi=self.config.pdf_dpi, max_pages=self.config.max_pdf_pages
        )
        self.extractor = extractor or RuleExtractor()

    def is_available(self) -> bool:
        return self.engine.is_installed()

    def _load_pages(self, image_bytes: bytes, mime_type: str) -> list[np.ndarray]:
        """Decode the upload into page images."""
        if is_pdf(image_bytes, mime_type):
            try:
                return self.pdf_handler.pdf_to_images(image_bytes)
            except (ValueError, PDFInfoNotInstalledError) as exc:
                raise ProviderCallFailedError(self.name, str(exc)) from exc

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                return [np.array(img.convert("RGB"))]
        except (UnidentifiedImageError, OSError) as exc:
            raise ProviderCallFailedError(
                self.name, f"Could not decode image: {exc}"
            ) from exc

    def _recognize(self, image_bytes: bytes, mime_type: str) -> OCRResult:
        """Run OCR over every page and merge the results."""
        pages = self._load_pages(image_bytes, mime_type)

        results: list[OCRResult] = []
        for page in pages:
            prepared = prepare_for_ocr(page, self.preprocessing)
            try:
                results.append(self.engine.extract_text(prepared))
            except (pytesseract.TesseractError, RuntimeError) as exc:
                raise ProviderCallFailedError(
                    self.name, f"Tesseract failed: {exc}"
                ) from exc

        word_count = sum(r.word_count for r in results)
        confidence = (
            sum(r.confidence * r.word_count for r in results) / word_count
            if word_count
            else 0.0
        )
        return OCRResult(
            text="\n\n".join(r.text.strip() for r in results),
            confidence=confidence,
            word_count=word_count,
            language=self.engine.default_lang,
        )

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | None = None,
    ) -> ExtractionResult:
        document_type = document_type or DocumentType.OTHER
        ocr = await asyncio.to_thread(self._recognize, image_bytes, mime_type)

        if len(ocr.text.strip()) < MIN_TEXT_LENGTH:
            return ExtractionResult.failure(self.name, document_type, NO_TEXT_ERROR)
        if ocr.confidence < MIN_OCR_CONFIDENCE:
            return ExtractionResult.failure(
                self.name,
                document_type,
                f"Unreadable image: OCR confidence too low ({ocr.confidence:.0%})",
            )

        extraction = self.extractor.extract(ocr.text, document_type, ocr.confidence)
        overall = (
            mean_confidence(extraction)
            if extraction.populated_fields()
            else FALLBACK_OVERALL_CONFIDENCE
        )
        return ExtractionResult(
            success=True,
            provider=self.name,
            document_type=document_type,
            extraction=extraction,
            overall_confidence=overall,
        )
