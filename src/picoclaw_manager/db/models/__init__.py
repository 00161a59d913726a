"""Database models for picoclaw-manager."""

from .base import Base, PortableJSON
from .tenant import TenantRecord

__all__ = [
    "Base",
    "PortableJSON",
    "TenantRecord",
]
