"""Application-layer DTOs.

These are exchanged with collaborator ports. Infrastructure adapters map
them to and from wire formats.
"""

from equiduty.application.dtos.selection_process import (
    AssignRoutineResult,
    CompleteTurnResult,
    ComputeTurnOrderInput,
    CreateSelectionProcessInput,
    CurrentUser,
    UpdateSelectionDatesInput,
    format_calendar_date,
)

__all__: list[str] = [
    "AssignRoutineResult",
    "CompleteTurnResult",
    "ComputeTurnOrderInput",
    "CreateSelectionProcessInput",
    "CurrentUser",
    "UpdateSelectionDatesInput",
    "format_calendar_date",
]
