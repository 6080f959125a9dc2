"""Selection process domain errors.

This module defines the error taxonomy for the selection process state
machine, turn ordering and wizard submission.

Error families:
- Validation: malformed entity fields or wizard input (never sent to backend)
- State: transitions not permitted by the status transition matrix
- Authorization: caller is neither the current-turn holder nor a manager
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from equiduty.domain.exceptions import EquiDutyError

if TYPE_CHECKING:
    from equiduty.domain.models.selection_process import SelectionProcessStatus


class SelectionProcessError(EquiDutyError):
    """Base error for selection process operations."""

    pass


class SelectionProcessValidationError(SelectionProcessError):
    """Raised when a selection process field fails validation.

    The message is written for the user; ``field`` names the offending
    field for callers that map errors onto form fields.

    Attributes:
        field: Name of the offending field.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class TurnOrderError(SelectionProcessError):
    """Raised when a turn list breaks ordering rules.

    Turn orders must be exactly 1..N with no gaps or duplicates, and each
    member may hold at most one turn.
    """

    pass


class InvalidStateTransitionError(SelectionProcessError):
    """Raised when a status transition is not in the transition matrix.

    Attributes:
        from_status: Current status of the process.
        to_status: Attempted target status.
        allowed_transitions: Valid target statuses from the current status.
    """

    def __init__(
        self,
        from_status: SelectionProcessStatus,
        to_status: SelectionProcessStatus,
        allowed_transitions: list[SelectionProcessStatus] | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            from_status: Current process status.
            to_status: Attempted invalid target status.
            allowed_transitions: Valid statuses from current status (optional).
            message: Overrides the generated message (optional).
        """
        self.from_status = from_status
        self.to_status = to_status
        self.allowed_transitions = allowed_transitions or []

        if message is None:
            allowed_str = (
                f" Valid transitions: {sorted(s.value for s in self.allowed_transitions)}"
                if self.allowed_transitions
                else ""
            )
            message = (
                f"Invalid status transition: {from_status.value} -> "
                f"{to_status.value}.{allowed_str}"
            )
        super().__init__(message)


class SelectionProcessTerminalError(InvalidStateTransitionError):
    """Raised when attempting to move a completed or cancelled process.

    Completed and cancelled are terminal: a process is never resurrected.
    """

    def __init__(
        self,
        process_id: str,
        terminal_status: SelectionProcessStatus,
        to_status: SelectionProcessStatus,
    ) -> None:
        self.process_id = process_id
        self.terminal_status = terminal_status
        super().__init__(
            from_status=terminal_status,
            to_status=to_status,
            message=(
                f"Selection process {process_id} is {terminal_status.value}. "
                "Terminal processes cannot be modified."
            ),
        )


class InvalidProcessStatusError(SelectionProcessError):
    """Raised when an operation requires a different (non-transition) status.

    Used for operations that keep the status unchanged, such as editing
    dates or deleting.

    Attributes:
        process_id: ID of the process.
        current_status: Status the process is in.
        operation: The attempted operation.
    """

    def __init__(
        self,
        process_id: str,
        current_status: SelectionProcessStatus,
        operation: str,
    ) -> None:
        self.process_id = process_id
        self.current_status = current_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} a {current_status.value} selection process"
        )


class NotCurrentTurnError(SelectionProcessError):
    """Raised when a user tries to complete a turn they do not hold."""

    def __init__(self, process_id: str, user_id: str) -> None:
        self.process_id = process_id
        self.user_id = user_id
        super().__init__("It is not your turn to complete")


class NotAuthorizedError(SelectionProcessError):
    """Raised when a caller lacks manage permission for an admin action."""

    def __init__(self, user_id: str, action: str) -> None:
        self.user_id = user_id
        self.action = action
        super().__init__(f"User {user_id} is not permitted to {action}")


class ProcessNotFoundError(SelectionProcessError):
    """Raised when a selection process does not exist."""

    def __init__(self, process_id: str) -> None:
        self.process_id = process_id
        super().__init__(f"Selection process not found: {process_id}")


class MissingTurnOrderError(SelectionProcessError):
    """Raised when a wizard is submitted with neither a manual nor a computed order.

    This is the inconsistent-state branch of submission; in strict mode it
    blocks submission instead of falling back to raw selection order.
    """

    def __init__(self, algorithm: str) -> None:
        self.algorithm = algorithm
        super().__init__(
            f"No turn order available for algorithm '{algorithm}'. "
            "Return to the review step to compute the order."
        )


class RoutineAssignmentError(SelectionProcessError):
    """Raised when a routine instance cannot be claimed during a turn."""

    def __init__(self, instance_id: str, reason: str) -> None:
        self.instance_id = instance_id
        self.reason = reason
        super().__init__(f"Cannot assign routine {instance_id}: {reason}")
