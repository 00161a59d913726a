"""Jinja2 rendering of per-tenant manifest streams."""

from pathlib import Path

import jinja2
import structlog

from picoclaw_manager.core.exceptions import RenderError
from picoclaw_manager.tenant.model import TenantVars

logger = structlog.get_logger()

TEMPLATE_SUFFIX = ".yaml.j2"

# Rendered and applied in this order; the namespace must exist before the
# objects that live in it.
TEMPLATE_ORDER = (
    "namespace",
    "configmap",
    "pvc",
    "rbac",
    "agent-deployment",
    "gateway-deployment",
    "gateway-service",
)

DOCUMENT_SEPARATOR = "---\n"


class ManifestRenderer:
    """Renders the tenant manifest templates found in one directory.

    Templates are named ``<name>.yaml.j2``. Every field of
    :class:`TenantVars` is available as a top-level variable, and
    referencing anything else is an error.

    Example:
        renderer = ManifestRenderer(settings.template_dir)
        stream = renderer.render_all(tenant.to_vars(settings.PICOCLAW_IMAGE))
    """

    def __init__(self, template_dir: Path | str) -> None:
        """Initialize the renderer.

        Raises:
            RenderError: If ``template_dir`` is not a directory
        """
        self.template_dir = Path(template_dir)
        if not self.template_dir.is_dir():
            raise RenderError(f"Template directory not found: {self.template_dir}")

        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(self.template_dir),
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    def render_all(self, tenant_vars: TenantVars) -> str:
        """Render every template in ``TEMPLATE_ORDER`` into one stream."""
        parts = [self.render_one(name, tenant_vars) for name in TEMPLATE_ORDER]
        return DOCUMENT_SEPARATOR.join(parts)

    def render_one(self, name: str, tenant_vars: TenantVars) -> str:
        """Render a single template by name (with or without the suffix).

        Raises:
            RenderError: If the template is missing, malformed, or uses an
                undefined variable
        """
        filename = name if name.endswith(TEMPLATE_SUFFIX) else name + TEMPLATE_SUFFIX
        try:
            rendered = self._env.get_template(filename).render(tenant_vars.to_context())
        except jinja2.TemplateNotFound as e:
            raise RenderError(f"Template not found in {self.template_dir}", template=filename) from e
        except jinja2.TemplateError as e:
            logger.error("template_render_failed", template=filename, error=str(e))
            raise RenderError(str(e), template=filename) from e

        if not rendered.endswith("\n"):
            rendered += "\n"
        return rendered
