"""Configuration for the EquiDuty selection process client."""

from equiduty.config.client_config import (
    DEFAULT_SELECTION_PROCESS_RULES,
    ApiClientConfig,
    EquiDutyConfig,
    SelectionProcessRules,
    load_config,
)

__all__: list[str] = [
    "DEFAULT_SELECTION_PROCESS_RULES",
    "ApiClientConfig",
    "EquiDutyConfig",
    "SelectionProcessRules",
    "load_config",
]
