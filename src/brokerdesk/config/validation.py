"""Configuration validation for startup checks.

Validates that required configuration is present and valid before the
application starts accepting requests.

Usage:
    from brokerdesk.config.validation import validate_or_raise

    # During startup
    validate_or_raise(settings)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from brokerdesk.config.settings import Settings, get_settings
from brokerdesk.utils.exceptions import ConfigurationError

logger = structlog.get_logger("brokerdesk.config")


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

    Runs all configuration checks and returns a list of validation results.

    Args:
        settings: Settings to validate (default: global settings)

    Returns:
        List of validation results (empty if all checks pass)
    """
    if settings is None:
        settings = get_settings()

    results: list[ValidationResult] = []

    results.extend(_validate_database(settings))
    results.extend(_validate_matching(settings))
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
        logger.warning("configuration_warning", field=warning.field, detail=warning.message)


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
                suggestion="Brokerdesk is designed for PostgreSQL or SQLite",
            )
        )

    if settings.DATABASE_POOL_SIZE < 1:
        results.append(
            ValidationResult(
                field="DATABASE_POOL_SIZE",
                severity=ValidationSeverity.ERROR,
                message=f"Pool size must be positive, got {settings.DATABASE_POOL_SIZE}",
            )
        )

    if settings.DATABASE_MAX_OVERFLOW < 0:
        results.append(
            ValidationResult(
                field="DATABASE_MAX_OVERFLOW",
                severity=ValidationSeverity.ERROR,
                message=f"Max overflow cannot be negative, got {settings.DATABASE_MAX_OVERFLOW}",
            )
        )

    return results


def _validate_matching(settings: Settings) -> list[ValidationResult]:
    """Validate matching configuration."""
    results: list[ValidationResult] = []

    if settings.matching.candidate_limit < 1:
        results.append(
            ValidationResult(
                field="matching.candidate_limit",
                severity=ValidationSeverity.ERROR,
                message=f"Candidate limit must be positive, got {settings.matching.candidate_limit}",
                suggestion="The default is 10",
            )
        )

    if settings.matching.plate_lookback_days < 1:
        results.append(
            ValidationResult(
                field="matching.plate_lookback_days",
                severity=ValidationSeverity.ERROR,
                message=(
                    "Plate look-back window must be positive, "
                    f"got {settings.matching.plate_lookback_days}"
                ),
                suggestion="The default is 730 days",
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

    if settings.ENVIRONMENT == "production" and settings.is_sqlite:
        results.append(
            ValidationResult(
                field="DATABASE_URL",
                severity=ValidationSeverity.ERROR,
                message="SQLite is not supported in production",
                suggestion="Use a postgresql+asyncpg:// URL",
            )
        )

    if settings.ENVIRONMENT == "production" and settings.log_level == "DEBUG":
        results.append(
            ValidationResult(
                field="log_level",
                severity=ValidationSeverity.WARNING,
                message="DEBUG log level in production may expose customer identifiers",
                suggestion="Use INFO or WARNING for production",
            )
        )

    return results


def get_configuration_summary(settings: Settings | None = None) -> dict[str, Any]:
    """Get a summary of current configuration (safe for logging).

    Excludes the database connection string.

    Args:
        settings: Settings to summarize

    Returns:
        Dictionary with configuration summary
    """
    if settings is None:
        settings = get_settings()

    return {
        "environment": settings.ENVIRONMENT,
        "debug": settings.DEBUG,
        "log_level": settings.log_level,
        "database_backend": "sqlite" if settings.is_sqlite else "postgresql",
        "database_pool_size": settings.DATABASE_POOL_SIZE,
        "database_max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "candidate_limit": settings.matching.candidate_limit,
        "plate_lookback_days": settings.matching.plate_lookback_days,
    }
