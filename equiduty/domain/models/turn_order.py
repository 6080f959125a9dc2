"""Turn order domain types.

This module defines the algorithms that decide an initial turn order, the
result of a turn-order computation, and the review-order state the
creation wizard holds before submission.

Review order is a tagged union rather than a pair of optional fields so
that "no order available" is a visible branch at submission time:

    PendingOrder   computation requested, result not yet received
    ComputedOrder  backend result for a non-manual algorithm
    ManualOrder    operator-arranged order (manual algorithm)
    FailedOrder    computation failed; submission is refused
    MissingOrder   nothing requested yet (initial state)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union


class SelectionAlgorithm(Enum):
    """Strategy used to compute the initial turn order.

    Algorithms:
        MANUAL: Operator arranges the order by hand (default).
        QUOTA_BASED: Reverse of the previous process order, with a points quota.
        POINTS_BALANCE: Members with the fewest recent points choose first.
        FAIR_ROTATION: Previous order rotated by one position.
    """

    MANUAL = "manual"
    QUOTA_BASED = "quota_based"
    POINTS_BALANCE = "points_balance"
    FAIR_ROTATION = "fair_rotation"

    @property
    def is_manual(self) -> bool:
        return self is SelectionAlgorithm.MANUAL


DEFAULT_ALGORITHM: SelectionAlgorithm = SelectionAlgorithm.MANUAL


@dataclass(frozen=True, eq=True)
class TurnOrderMember:
    """A member positioned in a turn order.

    Attributes:
        user_id: Member's user ID.
        user_name: Display name used in turn lists.
        user_email: Contact email (may be empty).
    """

    user_id: str
    user_name: str
    user_email: str = ""


@dataclass(frozen=True, eq=True)
class TurnOrderMetadata:
    """Algorithm-specific facts about a computed order.

    Informational only: nothing in the state machine reads these values.

    Attributes:
        quota_per_member: Points quota per member (quota_based).
        total_available_points: Points available in the window (quota_based).
        previous_process_id: Process the rotation was derived from.
        previous_process_name: Name of that process.
        member_points_map: Accumulated points per user (points_balance).
    """

    quota_per_member: float | None = None
    total_available_points: int | None = None
    previous_process_id: str | None = None
    previous_process_name: str | None = None
    member_points_map: Mapping[str, float] | None = None

    def __post_init__(self) -> None:
        if self.member_points_map is not None and not isinstance(
            self.member_points_map, MappingProxyType
        ):
            object.__setattr__(
                self, "member_points_map", MappingProxyType(dict(self.member_points_map))
            )

    @property
    def is_empty(self) -> bool:
        return (
            self.quota_per_member is None
            and self.total_available_points is None
            and self.previous_process_id is None
            and self.previous_process_name is None
            and self.member_points_map is None
        )


@dataclass(frozen=True, eq=True)
class ComputedTurnOrder:
    """Result of a turn-order computation.

    Attributes:
        turns: Members in turn order (first chooses first).
        algorithm: Algorithm that produced the order.
        metadata: Algorithm-specific facts for display.
    """

    turns: tuple[TurnOrderMember, ...]
    algorithm: SelectionAlgorithm
    metadata: TurnOrderMetadata = field(default_factory=TurnOrderMetadata)


@dataclass(frozen=True, eq=True)
class TurnOrderRequestKey:
    """Inputs a computed order depends on.

    A computed order is only valid for submission while the wizard's
    current inputs produce the same key.
    """

    algorithm: SelectionAlgorithm
    member_ids: tuple[str, ...]
    selection_start_date: date
    selection_end_date: date


@dataclass(frozen=True)
class MissingOrder:
    """No order has been requested or arranged."""


@dataclass(frozen=True)
class PendingOrder:
    """A computation is in flight for ``request_key``."""

    request_key: TurnOrderRequestKey


@dataclass(frozen=True)
class ComputedOrder:
    """A backend-computed order for ``request_key``."""

    order: ComputedTurnOrder
    request_key: TurnOrderRequestKey


@dataclass(frozen=True)
class ManualOrder:
    """An operator-arranged order, seeded from the selection order."""

    members: tuple[TurnOrderMember, ...]


@dataclass(frozen=True)
class FailedOrder:
    """The computation for ``request_key`` failed."""

    message: str
    request_key: TurnOrderRequestKey


ReviewOrder = Union[MissingOrder, PendingOrder, ComputedOrder, ManualOrder, FailedOrder]


def review_order_members(review_order: ReviewOrder) -> tuple[TurnOrderMember, ...] | None:
    """Return the members a review order would submit, or None if unavailable."""
    if isinstance(review_order, ManualOrder):
        return review_order.members
    if isinstance(review_order, ComputedOrder):
        return review_order.order.turns
    return None


@dataclass(frozen=True, eq=True)
class SelectionHistoryTurn:
    """A turn as recorded when its process completed."""

    user_id: str
    user_name: str
    order: int
    selections_count: int = 0
    total_points_picked: float = 0


@dataclass(frozen=True, eq=True)
class SelectionHistory:
    """Final turn order of a completed process, used by rotation algorithms.

    Attributes:
        process_id: ID of the completed process.
        process_name: Name of the completed process.
        stable_id: Stable the process belonged to.
        algorithm: Algorithm the process was created with.
        final_turn_order: Turns as they stood at completion.
        completed_at: Completion timestamp.
    """

    process_id: str
    process_name: str
    stable_id: str
    algorithm: SelectionAlgorithm
    final_turn_order: tuple[SelectionHistoryTurn, ...]
    completed_at: datetime

    def ordered_user_ids(self) -> list[str]:
        return [t.user_id for t in sorted(self.final_turn_order, key=lambda t: t.order)]
