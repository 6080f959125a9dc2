"""Base exception classes for the EquiDuty domain layer."""


class EquiDutyError(Exception):
    """Root of every error the selection engine raises.

    Backend failures (``EquiDutyApiError``) and refused selection process
    transitions (``SelectionProcessError``) both derive from it, so a
    caller can catch one type at the edge.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message
