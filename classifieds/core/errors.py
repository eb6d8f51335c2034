from __future__ import annotations

from typing import Any


class ClassifiedsError(Exception):
    """
    Base for every error an operation can surface to its caller.

    `code` is the stable machine-readable identifier rendered in ErrorResponse,
    `status_code` the HTTP status the API layer maps it to.
    """
    code = "error"
    status_code = 500

    def __init__(self, message: str, *, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class AuthenticationError(ClassifiedsError):
    code = "authentication_failed"
    status_code = 401


class AuthorizationError(ClassifiedsError):
    code = "not_authorized"
    status_code = 403


class NotFoundError(ClassifiedsError):
    code = "not_found"
    status_code = 404


class ValidationError(ClassifiedsError):
    code = "validation_failed"
    status_code = 422


class ConflictError(ClassifiedsError):
    code = "conflict"
    status_code = 409


class PersistenceError(ClassifiedsError):
    code = "persistence_failed"
    status_code = 502


class ConfigurationError(ClassifiedsError):
    code = "not_configured"
    status_code = 503


class AdapterWarning(ClassifiedsError):
    """
    Failure of a best-effort call (image delete, tag suggestion).
    Logged where it happens, never raised out of an operation.
    """
    code = "adapter_warning"
    status_code = 200


# --- adapter-level failures, translated by the services ---

class AdapterError(Exception):
    pass


class StoreError(AdapterError):
    pass


class OrderingUnavailableError(StoreError):
    """The store cannot satisfy the requested server-side ordering."""


class BlobStoreError(AdapterError):
    pass


class BlobNotFoundError(BlobStoreError):
    pass


class TagSuggestionError(AdapterError):
    pass


class ImageGenerationError(AdapterError):
    pass
