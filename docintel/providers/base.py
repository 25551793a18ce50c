"""Provider contract shared by every extraction backend."""

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from docintel.extraction.response_parser import DocumentTypeDetection
from docintel.models import DocumentType, ExtractionResult


class OCRProvider(ABC):
    """A backend that turns a document image into an ExtractionResult.

    Implementations raise the pipeline's exception taxonomy for call
    failures and return ``success=False`` results only when the input was
    processed but nothing usable came out of it.
    """

    name: str

    @abstractmethod
    def is_available(self) -> bool:
        """Return whether the provider can be called right now."""

    @abstractmethod
    async def extract(
        self,
        image_bytes: bytes,
        mime_type: str,
        document_type: DocumentType | None = None,
    ) -> ExtractionResult:
        """Extract structured fields from a document.

        Args:
            image_bytes: Raw document content.
            mime_type: Declared content type of ``image_bytes``.
            document_type: Schema to extract; ``None`` means generic.

        Returns:
            The extraction outcome.
        """


@runtime_checkable
class DocumentTypeDetector(Protocol):
    """A provider that can classify a document before extraction."""

    async def detect_document_type(
        self, image_bytes: bytes, mime_type: str
    ) -> DocumentTypeDetection: ...
