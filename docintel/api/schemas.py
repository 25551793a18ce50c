"""Pydantic response schemas for the FastAPI endpoints.

Extraction results are returned as ``docintel.models.ExtractionResult``
directly; the models here describe the service's own metadata endpoints.
"""

from pydantic import BaseModel

from docintel.models import ExtractionResult


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    available_providers: list[str]
    tesseract_available: bool


class ProvidersResponse(BaseModel):
    """Registered providers and the automatic selection order."""

    registered: list[str]
    available: list[str]
    fallback_order: list[str]


class DocumentTypeInfo(BaseModel):
    """Fields extracted for one document type and their confidence weights."""

    name: str
    fields: list[str]
    weights: dict[str, float]


class DocumentTypesResponse(BaseModel):
    """Response schema listing the supported document types."""

    document_types: list[DocumentTypeInfo]


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch extraction."""

    filename: str
    result: ExtractionResult


class BatchExtractionResponse(BaseModel):
    """Response schema for batch extraction of multiple documents."""

    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]
