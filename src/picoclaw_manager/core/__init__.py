"""Core services and utilities for picoclaw-manager."""

from .exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    RemoteError,
    RenderError,
    ValidationError,
)
from .locks import TenantLocks

__all__ = [
    # Exceptions
    "ConflictError",
    "NotFoundError",
    "PersistenceError",
    "RemoteError",
    "RenderError",
    "ValidationError",
    # Concurrency
    "TenantLocks",
]
