"""Shared test fixtures for the document intelligence test suite."""

import asyncio
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from docintel.models import DocumentType, ExtractionResult
from docintel.providers.base import OCRProvider
from docintel.providers.mock import MockProvider


class FakeProvider(OCRProvider):
    """Scriptable provider that records its calls.

    Args:
        name: Provider name used for registration.
        available: Value returned by ``is_available``.
        result: Result returned on success; a mock-style success by default.
        error: Exception raised instead of returning a result.
        delay: Seconds to sleep before answering.
    """

    def __init__(
        self,
        name: str,
        available: bool = True,
        result: ExtractionResult | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.available = available
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: list[DocumentType | None] = []

    def is_available(self) -> bool:
        return self.available

    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | None = None,
    ) -> ExtractionResult:
        self.calls.append(document_type)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        sample = await MockProvider().extract(image_bytes, mime_type, document_type)
        return sample.model_copy(update={"provider": self.name})


@pytest.fixture
def png_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.fromarray(np.full((100, 200, 3), 255, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def w2_text() -> str:
    """OCR text of a simple W-2."""
    return (
        "2023 W-2 Wage and Tax Statement\n"
        "Employer: Acme Corp\n"
        "Employer identification number (EIN): 12-3456789\n"
        "Employee: JOHN Q PUBLIC\n"
        "Employee's social security number: 123-45-6789\n"
        "Box 1 Wages: $75,000.00\n"
        "Box 2 Federal income tax withheld: $12,500.00\n"
        "Box 3 Social security wages: $75,000.00\n"
        "Box 4 Social security tax withheld: $4,650.00\n"
        "Box 5 Medicare wages and tips: $75,000.00\n"
        "Box 6 Medicare tax withheld: $1,087.50\n"
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
