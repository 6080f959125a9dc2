"""Domain errors for EquiDuty.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from EquiDutyError.
"""

from equiduty.domain.errors.api import (
    BadRequestError,
    DecodingError,
    EquiDutyApiError,
    ForbiddenError,
    InsufficientPermissionsError,
    NetworkError,
    NotFoundError,
    ServerError,
    UnauthorizedError,
)
from equiduty.domain.errors.selection_process import (
    InvalidProcessStatusError,
    InvalidStateTransitionError,
    MissingTurnOrderError,
    NotAuthorizedError,
    NotCurrentTurnError,
    ProcessNotFoundError,
    RoutineAssignmentError,
    SelectionProcessError,
    SelectionProcessTerminalError,
    SelectionProcessValidationError,
    TurnOrderError,
)

__all__: list[str] = [
    "BadRequestError",
    "DecodingError",
    "EquiDutyApiError",
    "ForbiddenError",
    "InsufficientPermissionsError",
    "InvalidProcessStatusError",
    "InvalidStateTransitionError",
    "MissingTurnOrderError",
    "NetworkError",
    "NotAuthorizedError",
    "NotCurrentTurnError",
    "NotFoundError",
    "ProcessNotFoundError",
    "RoutineAssignmentError",
    "SelectionProcessError",
    "SelectionProcessTerminalError",
    "SelectionProcessValidationError",
    "ServerError",
    "TurnOrderError",
    "UnauthorizedError",
]
