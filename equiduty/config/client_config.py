"""Client configuration from environment variables.

Environment Variables (API):
- EQUIDUTY_API_URL: Backend base URL, e.g. https://api.equiduty.example (required)
- EQUIDUTY_API_VERSION: API version path segment (default: v1)
- EQUIDUTY_API_TIMEOUT: Request timeout in seconds (default: 30.0)

Environment Variables (Selection process rules):
- EQUIDUTY_NAME_MAX_LENGTH: Max process name length (default: 100)
- EQUIDUTY_DESCRIPTION_MAX_LENGTH: Max description length (default: 500)
- EQUIDUTY_MIN_MEMBERS: Members required to leave the members step (default: 2)
- EQUIDUTY_MAX_WINDOW_DAYS: Longest selection window in days (default: 366)
- EQUIDUTY_STRICT_TURN_ORDER: Refuse submission without a turn order (default: true)

Environment Variables (Runtime):
- EQUIDUTY_ENVIRONMENT: 'production' for JSON logs (default: development)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from equiduty.domain.models.selection_process import (
    DESCRIPTION_MAX_LENGTH,
    NAME_MAX_LENGTH,
)


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable ("true"/"false") with default."""
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class ApiClientConfig:
    """REST backend connection configuration."""

    api_url: str
    api_version: str = "v1"
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if not self.api_url:
            raise ValueError("api_url must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")

    @property
    def base_url(self) -> str:
        """Base URL including the version prefix, e.g. ``.../api/v1``."""
        return f"{self.api_url.rstrip('/')}/api/{self.api_version}"


@dataclass(frozen=True)
class SelectionProcessRules:
    """Client-side validation rules for the creation wizard.

    Attributes:
        name_max_length: Max process name length.
        description_max_length: Max description length.
        min_members: Members required to leave the members step.
        max_window_days: Longest allowed selection window in days.
        strict_turn_order: If True, submitting without a manual or computed
            order is a validation error. If False, the selection order is
            submitted instead and a warning is logged.
    """

    name_max_length: int = NAME_MAX_LENGTH
    description_max_length: int = DESCRIPTION_MAX_LENGTH
    min_members: int = 2
    max_window_days: int = 366
    strict_turn_order: bool = True

    def __post_init__(self) -> None:
        if not 1 <= self.name_max_length <= NAME_MAX_LENGTH:
            raise ValueError(
                f"name_max_length must be between 1 and {NAME_MAX_LENGTH}, "
                f"got {self.name_max_length}"
            )
        if not 0 <= self.description_max_length <= DESCRIPTION_MAX_LENGTH:
            raise ValueError(
                f"description_max_length must be between 0 and {DESCRIPTION_MAX_LENGTH}, "
                f"got {self.description_max_length}"
            )
        if self.min_members < 2:
            raise ValueError(f"min_members must be at least 2, got {self.min_members}")
        if self.max_window_days < 1:
            raise ValueError(f"max_window_days must be positive, got {self.max_window_days}")

    @classmethod
    def from_environment(cls) -> SelectionProcessRules:
        """Create rules from EQUIDUTY_* environment variables."""
        return cls(
            name_max_length=_get_int_env("EQUIDUTY_NAME_MAX_LENGTH", NAME_MAX_LENGTH),
            description_max_length=_get_int_env(
                "EQUIDUTY_DESCRIPTION_MAX_LENGTH", DESCRIPTION_MAX_LENGTH
            ),
            min_members=_get_int_env("EQUIDUTY_MIN_MEMBERS", 2),
            max_window_days=_get_int_env("EQUIDUTY_MAX_WINDOW_DAYS", 366),
            strict_turn_order=_get_bool_env("EQUIDUTY_STRICT_TURN_ORDER", True),
        )


DEFAULT_SELECTION_PROCESS_RULES = SelectionProcessRules()


@dataclass(frozen=True)
class EquiDutyConfig:
    """Application configuration."""

    api: ApiClientConfig
    rules: SelectionProcessRules = field(default_factory=SelectionProcessRules)
    environment: str = "development"


def load_config(env_file: str | Path | None = None) -> EquiDutyConfig:
    """Load configuration from environment variables.

    A ``.env`` file is read first if present (``env_file``, or ``.env`` in
    the working directory). Variables already set in the environment win.

    Required environment variables:
        EQUIDUTY_API_URL: Backend base URL

    Returns:
        EquiDutyConfig with all settings.

    Raises:
        ValueError: If required environment variables are missing.
    """
    env_path = Path(env_file) if env_file is not None else Path(".env")
    if env_path.exists():
        load_dotenv(env_path, override=False)

    api_url = os.environ.get("EQUIDUTY_API_URL")

    missing = []
    if not api_url:
        missing.append("EQUIDUTY_API_URL")

    if missing:
        raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

    return EquiDutyConfig(
        api=ApiClientConfig(
            api_url=api_url,
            api_version=os.environ.get("EQUIDUTY_API_VERSION", "v1"),
            timeout_seconds=_get_float_env("EQUIDUTY_API_TIMEOUT", 30.0),
        ),
        rules=SelectionProcessRules.from_environment(),
        environment=os.environ.get("EQUIDUTY_ENVIRONMENT", "development"),
    )
