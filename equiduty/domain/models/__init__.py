"""Domain models for the selection process engine."""

from equiduty.domain.models.routine_instance import (
    RoutineInstance,
    RoutineInstanceStatus,
    WeekWindow,
    is_within_selection_window,
)
from equiduty.domain.models.selection_process import (
    CompleteTurnOutcome,
    SelectionProcess,
    SelectionProcessStatus,
    SelectionProcessSummary,
    SelectionTurn,
    TurnStatus,
    build_turns_from_member_order,
)
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import (
    ComputedOrder,
    ComputedTurnOrder,
    FailedOrder,
    ManualOrder,
    MissingOrder,
    PendingOrder,
    ReviewOrder,
    SelectionAlgorithm,
    SelectionHistory,
    SelectionHistoryTurn,
    TurnOrderMember,
    TurnOrderMetadata,
    TurnOrderRequestKey,
)

__all__: list[str] = [
    "CompleteTurnOutcome",
    "ComputedOrder",
    "ComputedTurnOrder",
    "FailedOrder",
    "ManualOrder",
    "MissingOrder",
    "PendingOrder",
    "ReviewOrder",
    "RoutineInstance",
    "RoutineInstanceStatus",
    "SelectionAlgorithm",
    "SelectionHistory",
    "SelectionHistoryTurn",
    "SelectionProcess",
    "SelectionProcessStatus",
    "SelectionProcessSummary",
    "SelectionTurn",
    "StableMemberInfo",
    "TurnOrderMember",
    "TurnOrderMetadata",
    "TurnOrderRequestKey",
    "TurnStatus",
    "WeekWindow",
    "build_turns_from_member_order",
    "is_within_selection_window",
]
