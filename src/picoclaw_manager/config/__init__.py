"""Configuration module for picoclaw-manager."""

from picoclaw_manager.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
