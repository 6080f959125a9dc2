"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

from equiduty.config.client_config import EquiDutyConfig
from equiduty.infrastructure.observability import configure_structlog as _configure_structlog


def configure_structlog(environment: str) -> None:
    """Configure structlog for the given environment."""
    _configure_structlog(environment=environment)


def configure_logging(config: EquiDutyConfig) -> None:
    """Configure structlog from loaded configuration."""
    configure_structlog(config.environment)


__all__ = ["configure_logging", "configure_structlog"]
