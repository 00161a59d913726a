"""Tenant manifest templates and their renderer."""

from picoclaw_manager.templates.renderer import TEMPLATE_ORDER, ManifestRenderer

__all__ = ["TEMPLATE_ORDER", "ManifestRenderer"]
