"""Utility modules for picoclaw-manager."""

from picoclaw_manager.utils.exceptions import (
    ConfigurationError,
    ManifestParseError,
    PicoclawError,
    StoreError,
)

__all__ = [
    "PicoclawError",
    "StoreError",
    "ManifestParseError",
    "ConfigurationError",
]
