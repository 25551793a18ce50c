"""Tesseract OCR engine wrapper.

Produces page text plus a mean word confidence on the 0-1 scale; the
0-100 scores Tesseract reports are converted here and nowhere else.
"""

from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from docintel.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Recognized text for one page."""

    text: str
    confidence: float
    word_count: int
    language: str


class TesseractEngine:
    """Wrapper around Tesseract for document text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Default OCR language code.
        psm: Tesseract page segmentation mode.
        timeout: Seconds before a Tesseract subprocess is killed; 0 disables.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
        timeout: float = 0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm
        self.timeout = timeout

    def is_installed(self) -> bool:
        """Return whether the Tesseract binary can be executed."""
        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError):
            return False
        logger.debug("Found Tesseract %s", version)
        return True

    def extract_text(self, image: np.ndarray, lang: str | None = None) -> OCRResult:
        """Extract text from an image.

        Args:
            image: Input image as a numpy array.
            lang: OCR language code. Defaults to the engine default.

        Returns:
            OCRResult with the full text and mean word confidence.

        Raises:
            RuntimeError: If the Tesseract subprocess times out.
            pytesseract.TesseractError: If Tesseract fails on the image.
        """
        lang = lang or self.default_lang
        config = f"--psm {self.psm}"

        pil_image = Image.fromarray(image)
        text = pytesseract.image_to_string(
            pil_image, lang=lang, config=config, timeout=self.timeout
        )
        data = pytesseract.image_to_data(
            pil_image,
            lang=lang,
            config=config,
            output_type=pytesseract.Output.DICT,
            timeout=self.timeout,
        )

        total_conf = 0.0
        word_count = 0
        for word, conf in zip(data["text"], data["conf"], strict=False):
            conf = float(conf)
            if conf > 0 and str(word).strip():
                total_conf += conf
                word_count += 1

        avg_conf = (total_conf / word_count / 100.0) if word_count > 0 else 0.0

        logger.info(
            "OCR extracted %d words with average confidence %.2f",
            word_count,
            avg_conf,
        )
        return OCRResult(
            text=text,
            confidence=avg_conf,
            word_count=word_count,
            language=lang,
        )
