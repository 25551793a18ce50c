"""FastAPI application for the document intelligence service.

Provides REST endpoints for single and batch extraction, provider and
document-type discovery, and health checks. Extraction failures are
returned as results with ``success=false`` rather than HTTP errors.
"""

import asyncio
import shutil
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, FastAPI, File, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from docintel import __version__
from docintel.models import EXTRACTION_MODELS, DocumentType, ExtractionResult, OCRConfig
from docintel.orchestrator import DocumentOrchestrator, build_orchestrator
from docintel.utils.logger import get_logger

from .schemas import (
    BatchExtractionResponse,
    BatchItemResponse,
    DocumentTypeInfo,
    DocumentTypesResponse,
    HealthResponse,
    ProvidersResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Document Intelligence API",
    description=(
        "Extract structured data from W-2s, paystubs, bank statements, "
        "tax returns and identity documents"
    ),
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_orchestrator() -> DocumentOrchestrator:
    """Build the shared orchestrator from the default configuration."""
    return build_orchestrator()


Orchestrator = Annotated[DocumentOrchestrator, Depends(get_orchestrator)]


@app.get("/health", response_model=HealthResponse)
async def health_check(orchestrator: Orchestrator) -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        available_providers=orchestrator.registry.available_providers(),
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.get("/providers", response_model=ProvidersResponse)
async def list_providers(orchestrator: Orchestrator) -> ProvidersResponse:
    """List registered providers, which are available, and the fallback order."""
    registry = orchestrator.registry
    return ProvidersResponse(
        registered=registry.names(),
        available=registry.available_providers(),
        fallback_order=list(registry.fallback_order),
    )


@app.get("/document-types", response_model=DocumentTypesResponse)
async def list_document_types(orchestrator: Orchestrator) -> DocumentTypesResponse:
    """List supported document types with their fields and weights."""
    calculator = orchestrator.confidence_calculator
    return DocumentTypesResponse(
        document_types=[
            DocumentTypeInfo(
                name=doc_type.value,
                fields=list(model().extracted_fields()),
                weights=calculator.weights_for(doc_type),
            )
            for doc_type, model in EXTRACTION_MODELS.items()
        ]
    )


def _call_config(
    orchestrator: DocumentOrchestrator,
    provider: str | None = None,
    fallback: bool | None = None,
    mock: bool | None = None,
) -> OCRConfig:
    """Overlay the query options a caller set on the configured defaults."""
    overrides = {
        key: value
        for key, value in (
            ("preferred_provider", provider),
            ("enable_fallback", fallback),
            ("mock_mode", mock),
        )
        if value is not None
    }
    return orchestrator.default_config.model_copy(update=overrides)


async def _extract_upload(
    orchestrator: DocumentOrchestrator,
    file: UploadFile,
    document_type: DocumentType | None,
    config: OCRConfig,
) -> ExtractionResult:
    content = await file.read()
    result = await orchestrator.extract_document(
        content,
        file.content_type or "application/octet-stream",
        document_type,
        config,
    )
    logger.info(
        "Processed upload %s: success=%s provider=%s",
        file.filename,
        result.success,
        result.provider,
    )
    return result


@app.post("/extract", response_model=ExtractionResult)
async def extract_document(
    file: Annotated[UploadFile, File(...)],
    orchestrator: Orchestrator,
    document_type: Annotated[DocumentType | None, Query()] = None,
    provider: Annotated[str | None, Query()] = None,
    fallback: Annotated[bool | None, Query()] = None,
    mock: Annotated[bool | None, Query()] = None,
) -> ExtractionResult:
    """Extract structured fields from an uploaded document.

    Args:
        file: Uploaded document (PNG, JPEG, WebP, GIF or PDF).
        orchestrator: Injected extraction pipeline.
        document_type: Known document type; detected when omitted.
        provider: Preferred provider name, or ``auto``. Defaults to the
            configured pipeline setting, as do ``fallback`` and ``mock``.
        fallback: Whether other providers may be tried after a failure.
        mock: Return deterministic sample data instead of calling a provider.

    Returns:
        The extraction result.
    """
    config = _call_config(orchestrator, provider, fallback, mock)
    return await _extract_upload(orchestrator, file, document_type, config)


@app.post("/extract/batch", response_model=BatchExtractionResponse)
async def extract_batch(
    files: Annotated[list[UploadFile], File(...)],
    orchestrator: Orchestrator,
    document_type: Annotated[DocumentType | None, Query()] = None,
    mock: Annotated[bool | None, Query()] = None,
) -> BatchExtractionResponse:
    """Extract structured fields from multiple uploaded documents.

    Args:
        files: Uploaded document files.
        orchestrator: Injected extraction pipeline.
        document_type: Document type applied to every file.
        mock: Return deterministic sample data.

    Returns:
        Batch extraction results with per-file outcomes.
    """
    config = _call_config(orchestrator, mock=mock)
    results = await asyncio.gather(
        *(_extract_upload(orchestrator, f, document_type, config) for f in files)
    )
    successful = sum(1 for r in results if r.success)
    return BatchExtractionResponse(
        total_documents=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=[
            BatchItemResponse(filename=f.filename or "unknown", result=r)
            for f, r in zip(files, results, strict=True)
        ],
    )
