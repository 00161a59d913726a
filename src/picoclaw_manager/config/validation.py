"""Configuration validation for startup checks.

Validates that required configuration is present and valid before the
application starts accepting requests.

Usage:
    from picoclaw_manager.config.validation import validate_or_raise

    # During startup
    validate_or_raise(settings)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from picoclaw_manager.config.settings import Settings, get_settings
from picoclaw_manager.utils.exceptions import ConfigurationError

logger = logging.getLogger("picoclaw_manager.config")

# Shipped default; acceptable for local clusters only.
INSECURE_DEFAULT_API_KEY = "test-api-key"


class ValidationSeverity(str, Enum):
    """Severity of configuration validation issues."""

    ERROR = "error"  # Must be fixed, app cannot start
    WARNING = "warning"  # Should be fixed, app can start but may have issues


@dataclass
class ValidationResult:
    """Result of a configuration validation check."""

    field: str
    severity: ValidationSeverity
    message: str
    suggestion: str | None = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result


def validate_configuration(settings: Settings | None = None) -> list[ValidationResult]:
    """Validate application configuration.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []
    results.extend(_validate_database(settings))
    results.extend(_validate_security(settings))
    results.extend(_validate_server(settings))
    results.extend(_validate_rendering(settings))
    results.extend(_validate_environment(settings))
    return results


def validate_or_raise(settings: Settings | None = None) -> None:
    """Validate configuration and raise if errors found.

    Args:
        settings: Settings to validate

    Raises:
        ConfigurationError: If any validation errors are found
    """
    results = validate_configuration(settings)
    errors = [r for r in results if r.severity == ValidationSeverity.ERROR]

    if errors:
        error_messages = "\n".join(str(e) for e in errors)
        raise ConfigurationError(f"Configuration validation failed:\n{error_messages}")

    for warning in (r for r in results if r.severity == ValidationSeverity.WARNING):
        logger.warning(str(warning))


# =============================================================================
# Validators
# =============================================================================


def _validate_database(settings: Settings) -> list[ValidationResult]:
    """Validate database configuration."""
    results: list[ValidationResult] = []

    if not settings.DATABASE_URL:
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message="Database URL is not configured",
                suggestion="Set DATABASE_URL environment variable",
            )
        )
    elif not settings.DATABASE_URL.startswith(("postgresql", "sqlite")):
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.WARNING,
                message=f"Unexpected database type in URL: {settings.DATABASE_URL[:20]}...",
                suggestion="The tenant store is designed for PostgreSQL or SQLite",
            )
        )

    return results


def _validate_security(settings: Settings) -> list[ValidationResult]:
    """Validate API key configuration."""
    results: list[ValidationResult] = []
    key_value = settings.API_KEY.get_secret_value()

    if not key_value:
        results.append(
            ValidationResult(
                field="API_KEY",
                severity=ValidationSeverity.ERROR,
                message="API key is empty",
                suggestion="Set API_KEY to a random string",
            )
        )
    elif key_value == INSECURE_DEFAULT_API_KEY:
        results.append(
            ValidationResult(
                field="API_KEY",
                severity=(
                    ValidationSeverity.ERROR
                    if settings.ENVIRONMENT == "production"
                    else ValidationSeverity.WARNING
                ),
                message="API key is the built-in default",
                suggestion="Set API_KEY to a random string",
            )
        )

    return results


def _validate_server(settings: Settings) -> list[ValidationResult]:
    """Validate HTTP server configuration."""
    if 1 <= settings.PORT <= 65535:
        return []
    return [
        ValidationResult(
            field="PORT",
            severity=ValidationSeverity.ERROR,
            message=f"Invalid port number: {settings.PORT}",
            suggestion="Use a port between 1 and 65535",
        )
    ]


def _validate_rendering(settings: Settings) -> list[ValidationResult]:
    """Validate manifest rendering inputs."""
    results: list[ValidationResult] = []

    if not settings.template_dir.is_dir():
        results.append(
            ValidationResult(
                field="TEMPLATE_DIR",
                severity=ValidationSeverity.ERROR,
                message=f"Template directory does not exist: {settings.template_dir}",
            )
        )

    if not settings.PICOCLAW_IMAGE.strip():
        results.append(
            ValidationResult(
                field="PICOCLAW_IMAGE",
                severity=ValidationSeverity.ERROR,
                message="Container image reference is empty",
            )
        )

    return results


def _validate_environment(settings: Settings) -> list[ValidationResult]:
    """Validate environment-specific settings."""
    results: list[ValidationResult] = []

    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        results.append(
            ValidationResult(
                field="DEBUG",
                severity=ValidationSeverity.ERROR,
                message="Debug mode must be disabled in production",
                suggestion="Set DEBUG=false for production",
            )
        )

    if settings.ENVIRONMENT == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="log_level",
                severity=ValidationSeverity.WARNING,
                message="DEBUG log level in production may expose tenant configuration",
                suggestion="Use INFO or WARNING for production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Excludes the API key and the database connection string.
    """
    if settings is None:
        settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "host": settings.HOST,
        "port": settings.PORT,
        "image": settings.PICOCLAW_IMAGE,
        "template_dir": str(settings.template_dir),
        "kubeconfig": settings.KUBECONFIG,
        "database_pool_size": settings.DATABASE_POOL_SIZE,
    }
