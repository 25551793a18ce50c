"""Tests for the FastAPI REST endpoints."""

from collections.abc import Iterator
from datetime import date

import pytest
from fastapi.testclient import TestClient

from conftest import FakeProvider
from docintel.api.app import app, get_orchestrator
from docintel.orchestrator import DocumentOrchestrator, ProviderRegistry, build_orchestrator
from docintel.providers.mock import MockProvider
from docintel.utils.config import AppConfig, PipelineConfig
from docintel.validation.consistency import ExtractionValidator


@pytest.fixture
def providers() -> dict[str, FakeProvider]:
    return {
        "claude": FakeProvider("claude"),
        "tesseract": FakeProvider("tesseract", available=False),
    }


@pytest.fixture
def client(providers: dict[str, FakeProvider]) -> Iterator[TestClient]:
    """Create a FastAPI test client backed by fake providers."""
    orchestrator = DocumentOrchestrator(
        ProviderRegistry([*providers.values(), MockProvider()]),
        validator=ExtractionValidator(today=date(2024, 6, 1)),
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["available_providers"] == ["claude", "mock"]
        assert isinstance(data["tesseract_available"], bool)


class TestDiscoveryEndpoints:
    """Tests for the /providers and /document-types endpoints."""

    def test_list_providers(self, client: TestClient) -> None:
        data = client.get("/providers").json()
        assert data["registered"] == ["claude", "tesseract", "mock"]
        assert data["available"] == ["claude", "mock"]
        assert data["fallback_order"] == ["claude", "tesseract"]

    def test_list_document_types(self, client: TestClient) -> None:
        response = client.get("/document-types")
        assert response.status_code == 200
        types = {t["name"]: t for t in response.json()["document_types"]}
        assert set(types) == {"w2", "paystub", "bank_statement", "tax_return", "id", "other"}
        assert "wages_tips_compensation" in types["w2"]["fields"]
        assert types["w2"]["weights"]["wages_tips_compensation"] == 3.0


class TestExtractEndpoint:
    """Tests for the /extract endpoint."""

    def test_extract_success(
        self, client: TestClient, png_bytes: bytes, providers: dict[str, FakeProvider]
    ) -> None:
        response = client.post(
            "/extract?document_type=w2",
            files={"file": ("w2.png", png_bytes, "image/png")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["provider"] == "claude"
        assert data["document_type"] == "w2"
        assert data["extraction"]["document_type"] == "w2"
        assert data["extraction"]["employee_ssn"]["value"] == "****6789"
        assert 0 < data["weighted_confidence"] <= 1
        assert providers["claude"].calls == ["w2"]

    def test_extract_mock_mode(
        self, client: TestClient, png_bytes: bytes, providers: dict[str, FakeProvider]
    ) -> None:
        response = client.post(
            "/extract?document_type=paystub&mock=true",
            files={"file": ("stub.png", png_bytes, "image/png")},
        )
        data = response.json()
        assert data["provider"] == "mock"
        assert data["extraction"]["net_pay"]["value"] == 2350.75
        assert providers["claude"].calls == []

    def test_extract_response_schema(self, client: TestClient, png_bytes: bytes) -> None:
        response = client.post(
            "/extract?document_type=id",
            files={"file": ("id.png", png_bytes, "image/png")},
        )
        data = response.json()
        for key in (
            "success",
            "provider",
            "document_type",
            "extraction",
            "overall_confidence",
            "weighted_confidence",
            "processing_time_ms",
            "error",
            "warnings",
        ):
            assert key in data

    def test_extract_unsupported_file_type(self, client: TestClient) -> None:
        response = client.post(
            "/extract",
            files={"file": ("test.txt", b"plain text", "text/plain")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Unsupported MIME type: text/plain"

    def test_extract_unknown_document_type(self, client: TestClient, png_bytes: bytes) -> None:
        response = client.post(
            "/extract?document_type=receipt",
            files={"file": ("test.png", png_bytes, "image/png")},
        )
        assert response.status_code == 422

    def test_preferred_provider_without_fallback(
        self, client: TestClient, png_bytes: bytes
    ) -> None:
        response = client.post(
            "/extract?document_type=w2&provider=tesseract&fallback=false",
            files={"file": ("w2.png", png_bytes, "image/png")},
        )
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Preferred provider 'tesseract' is unavailable"

    def test_provider_failure_is_reported(
        self, client: TestClient, png_bytes: bytes, providers: dict[str, FakeProvider]
    ) -> None:
        providers["claude"].error = RuntimeError("OCR failed")
        response = client.post(
            "/extract?document_type=w2",
            files={"file": ("test.png", png_bytes, "image/png")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["extraction"] is None
        assert "OCR failed" in data["error"]


class TestBatchExtractEndpoint:
    """Tests for the /extract/batch endpoint."""

    def test_batch_extract(self, client: TestClient, png_bytes: bytes) -> None:
        response = client.post(
            "/extract/batch?document_type=bank_statement",
            files=[
                ("files", ("doc1.png", png_bytes, "image/png")),
                ("files", ("doc2.png", png_bytes, "image/png")),
            ],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_documents"] == 2
        assert data["successful"] == 2
        assert data["failed"] == 0
        assert [item["filename"] for item in data["results"]] == ["doc1.png", "doc2.png"]

    def test_batch_with_failure(self, client: TestClient, png_bytes: bytes) -> None:
        response = client.post(
            "/extract/batch?document_type=w2",
            files=[
                ("files", ("doc1.png", png_bytes, "image/png")),
                ("files", ("doc2.txt", b"text", "text/plain")),
            ],
        )
        data = response.json()
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][1]["result"]["success"] is False


class TestConfiguredDefaults:
    """Tests for pipeline settings applied to requests that omit them."""

    @pytest.fixture
    def mock_client(self, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        orchestrator = build_orchestrator(AppConfig(pipeline=PipelineConfig(mock_mode=True)))
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_configured_mock_mode_applies(
        self, mock_client: TestClient, png_bytes: bytes
    ) -> None:
        response = mock_client.post(
            "/extract?document_type=w2",
            files={"file": ("w2.png", png_bytes, "image/png")},
        )
        data = response.json()
        assert data["success"] is True
        assert data["provider"] == "mock"

    def test_configured_mock_mode_applies_to_batch(
        self, mock_client: TestClient, png_bytes: bytes
    ) -> None:
        response = mock_client.post(
            "/extract/batch?document_type=paystub",
            files=[("files", ("doc1.png", png_bytes, "image/png"))],
        )
        data = response.json()
        assert data["successful"] == 1
        assert data["results"][0]["result"]["provider"] == "mock"

    def test_query_overrides_configured_default(
        self, mock_client: TestClient, png_bytes: bytes
    ) -> None:
        response = mock_client.post(
            "/extract?document_type=w2&mock=false&provider=claude&fallback=false",
            files={"file": ("w2.png", png_bytes, "image/png")},
        )
        data = response.json()
        assert data["success"] is False
        assert data["provider"] != "mock"

    def test_configured_fallback_setting_applies(
        self, providers: dict[str, FakeProvider], png_bytes: bytes
    ) -> None:
        providers["claude"].error = RuntimeError("boom")
        providers["tesseract"].available = True
        orchestrator = DocumentOrchestrator(
            ProviderRegistry(list(providers.values())),
            default_config=PipelineConfig(enable_fallback=False).to_ocr_config(),
        )
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        try:
            response = TestClient(app).post(
                "/extract?document_type=w2",
                files={"file": ("w2.png", png_bytes, "image/png")},
            )
        finally:
            app.dependency_overrides.clear()
        data = response.json()
        assert data["success"] is False
        assert providers["tesseract"].calls == []
