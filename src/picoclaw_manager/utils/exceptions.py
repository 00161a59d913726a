"""Custom exceptions for picoclaw-manager."""


class PicoclawError(Exception):
    """Base exception for all picoclaw-manager errors."""

    pass


class StoreError(PicoclawError):
    """Error raised by a tenant store backend."""

    pass


class ManifestParseError(PicoclawError):
    """A manifest stream could not be split or decoded into documents."""

    pass


class ConfigurationError(PicoclawError):
    """Error in configuration or settings."""

    pass
