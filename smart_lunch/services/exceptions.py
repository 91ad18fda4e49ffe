from __future__ import annotations


class ServiceError(RuntimeError):
    """Base class for service-layer errors."""


class LLMError(ServiceError):
    """Errors from the completion / image adapters."""


class ConfigurationError(ServiceError):
    """A required setting (usually the OpenAI key) is missing."""


class RepoError(ServiceError):
    """Errors from the document store (I/O, parse, remote failures)."""

    code = "unknown"


class PermissionDeniedError(RepoError):
    """Security-rule rejection or caller/owner mismatch."""

    code = "permission-denied"


class StoreUnavailableError(RepoError):
    """Transient connectivity problem talking to the document store."""

    code = "unavailable"


class InvalidDocumentError(RepoError):
    """A requested change would leave the stored document invalid."""

    code = "invalid-argument"


class RecipeValidationError(ValueError):
    """LLM output did not match the recipe schema."""
