"""Tests for the Tesseract engine wrapper."""

from unittest.mock import MagicMock, patch

import numpy as np

from docintel.ocr.tesseract_engine import OCRResult, TesseractEngine


def _mock_tesseract_data() -> dict:
    """Create mock pytesseract output data."""
    return {
        "text": ["", "Hello", "World", "", "Test", "  "],
        "conf": [-1, 95, 88, -1, 72, 60],
    }


class TestTesseractEngine:
    """Tests for the TesseractEngine class (mocked)."""

    @patch("docintel.ocr.tesseract_engine.pytesseract")
    def test_extract_text(self, mock_pytesseract: MagicMock) -> None:
        mock_pytesseract.image_to_string.return_value = "Hello World\nTest"
        mock_pytesseract.image_to_data.return_value = _mock_tesseract_data()
        mock_pytesseract.Output.DICT = "dict"

        engine = TesseractEngine(default_lang="eng")
        image = np.zeros((100, 200), dtype=np.uint8)
        result = engine.extract_text(image)

        assert isinstance(result, OCRResult)
        assert result.text == "Hello World\nTest"
        assert result.word_count == 3
        assert result.language == "eng"
        assert abs(result.confidence - (95 + 88 + 72) / 3 / 100) < 1e-9

    @patch("docintel.ocr.tesseract_engine.pytesseract")
    def test_extract_text_empty_image(self, mock_pytesseract: MagicMock) -> None:
        mock_pytesseract.image_to_string.return_value = ""
        mock_pytesseract.image_to_data.return_value = {"text": [], "conf": []}
        mock_pytesseract.Output.DICT = "dict"

        engine = TesseractEngine()
        result = engine.extract_text(np.zeros((100, 200), dtype=np.uint8))

        assert result.text == ""
        assert result.word_count == 0
        assert result.confidence == 0.0

    @patch("docintel.ocr.tesseract_engine.pytesseract")
    def test_extract_text_custom_lang_and_psm(self, mock_pytesseract: MagicMock) -> None:
        mock_pytesseract.image_to_string.return_value = "Bonjour"
        mock_pytesseract.image_to_data.return_value = {"text": ["Bonjour"], "conf": [90]}
        mock_pytesseract.Output.DICT = "dict"

        engine = TesseractEngine(default_lang="eng", psm=6, timeout=30)
        result = engine.extract_text(np.zeros((100, 200), dtype=np.uint8), lang="fra")

        assert result.language == "fra"
        kwargs = mock_pytesseract.image_to_string.call_args.kwargs
        assert kwargs["lang"] == "fra"
        assert kwargs["config"] == "--psm 6"
        assert kwargs["timeout"] == 30

    def test_custom_tesseract_cmd(self) -> None:
        with patch("docintel.ocr.tesseract_engine.pytesseract") as mock_pt:
            TesseractEngine(tesseract_cmd="/usr/bin/tesseract")
            assert mock_pt.pytesseract.tesseract_cmd == "/usr/bin/tesseract"

    @patch("docintel.ocr.tesseract_engine.pytesseract.get_tesseract_version")
    def test_is_installed(self, mock_version: MagicMock) -> None:
        mock_version.return_value = "5.3.0"
        assert TesseractEngine().is_installed()

    @patch("docintel.ocr.tesseract_engine.pytesseract.get_tesseract_version")
    def test_is_not_installed(self, mock_version: MagicMock) -> None:
        mock_version.side_effect = OSError("tesseract not found")
        assert not TesseractEngine().is_installed()
