from __future__ import annotations

class ServiceError(RuntimeError):
    """Base class for service-layer errors."""

class ValidationError(ServiceError):
    """Bad item input (blank name, non-numeric or negative quantity, unknown id)."""

class PersistenceError(ServiceError):
    """Errors from the document store (read, write, delete, parse)."""

class AssetError(ServiceError):
    """Errors from the blob store (upload, delete)."""

class GenerationError(ServiceError):
    """Transport failures or malformed responses from the completion service."""
