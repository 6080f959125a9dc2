"""Domain layer for the selection process engine.

This layer contains:
- Selection process entity and status state machine
- Turn-order types and algorithms
- Stable member and routine instance models
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure,
config or bootstrap. Nothing in this package performs I/O.
"""

from equiduty.domain.exceptions import EquiDutyError

__all__: list[str] = [
    "EquiDutyError",
]
