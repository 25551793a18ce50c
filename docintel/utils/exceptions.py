"""Exception taxonomy for the extraction pipeline.

Field parsers never raise; these errors describe input and provider
failures. The orchestrator catches all of them and converts them into a
failed ``ExtractionResult``, so callers of the pipeline never see them.
"""

from typing import Any


class DocumentIntelligenceError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(DocumentIntelligenceError):
    """Raised for empty buffers, unsupported MIME types or unknown document types."""


class UnavailableProviderError(DocumentIntelligenceError):
    """Raised when a provider lacks its credentials or engine."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message, {"provider": provider})


class ProviderCallFailedError(DocumentIntelligenceError):
    """Raised when a single provider fails internally (network, decode, engine)."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message, {"provider": provider})


class AllProvidersFailedError(DocumentIntelligenceError):
    """Terminal failure after every attempted provider failed.

    Args:
        attempts: ``(provider_name, error_message)`` pairs in attempt order.
    """

    def __init__(self, attempts: list[tuple[str, str]]) -> None:
        self.attempts = attempts
        primary, primary_error = attempts[0]
        if len(attempts) == 1:
            message = f"Primary provider ({primary}) failed: {primary_error}"
        else:
            message = f"All OCR providers failed. Primary error: {primary_error}"
        super().__init__(message, {"attempts": [name for name, _ in attempts]})
