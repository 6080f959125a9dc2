"""Turn-order algorithms.

Pure functions that turn a member list (plus history and points, where
the algorithm needs them) into a ComputedTurnOrder. The REST backend owns
the authoritative computation; these are used by the in-memory backend so
that local development and tests see the same orderings.

Orderings:
- manual: members in the given order
- fair_rotation: previous order shifted by one (second becomes first,
  first goes last)
- quota_based: previous order reversed; quota = available points / members
- points_balance: fewest accumulated points first

For the history-based algorithms, members absent from the history are
appended alphabetically, and with no history everyone is alphabetical.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

from equiduty.domain.models.turn_order import (
    ComputedTurnOrder,
    SelectionAlgorithm,
    SelectionHistory,
    TurnOrderMember,
    TurnOrderMetadata,
)


def _name_key(member: TurnOrderMember) -> tuple[str, str]:
    return (member.user_name.casefold(), member.user_id)


def alphabetical(members: Iterable[TurnOrderMember]) -> list[TurnOrderMember]:
    """Sort members by display name, case-insensitively."""
    return sorted(members, key=_name_key)


def _order_from_history(
    members: Sequence[TurnOrderMember], history_ids: Sequence[str]
) -> list[TurnOrderMember]:
    """Place members in history order, then append newcomers alphabetically.

    Members that appear in the history but are no longer selected are
    skipped.
    """
    remaining = {m.user_id: m for m in members}
    ordered: list[TurnOrderMember] = []
    for user_id in history_ids:
        member = remaining.pop(user_id, None)
        if member is not None:
            ordered.append(member)
    ordered.extend(alphabetical(remaining.values()))
    return ordered


def _history_metadata(history: SelectionHistory | None) -> dict[str, str | None]:
    if history is None:
        return {"previous_process_id": None, "previous_process_name": None}
    return {
        "previous_process_id": history.process_id,
        "previous_process_name": history.process_name,
    }


def compute_fair_rotation(
    members: Sequence[TurnOrderMember],
    history: SelectionHistory | None,
) -> ComputedTurnOrder:
    """Rotate the previous order by one position."""
    if history is None or not history.final_turn_order:
        ordered = alphabetical(members)
    else:
        last_order = history.ordered_user_ids()
        ordered = _order_from_history(members, last_order[1:] + last_order[:1])

    return ComputedTurnOrder(
        turns=tuple(ordered),
        algorithm=SelectionAlgorithm.FAIR_ROTATION,
        metadata=TurnOrderMetadata(**_history_metadata(history)),
    )


def _quota(total_points: int, member_count: int) -> float:
    """Points per member, rounded half up to one decimal."""
    share = Decimal(total_points) / Decimal(member_count)
    return float(share.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_quota_based(
    members: Sequence[TurnOrderMember],
    history: SelectionHistory | None,
    available_points: Iterable[int],
) -> ComputedTurnOrder:
    """Reverse the previous order and compute a per-member points quota.

    Args:
        members: Members taking part.
        history: Last completed process for the stable, if any.
        available_points: Points of each unassigned routine in the window.
    """
    total_available_points = sum(available_points)
    quota_per_member = (
        _quota(total_available_points, len(members)) if members else 0.0
    )

    if history is None or not history.final_turn_order:
        ordered = alphabetical(members)
    else:
        ordered = _order_from_history(members, list(reversed(history.ordered_user_ids())))

    return ComputedTurnOrder(
        turns=tuple(ordered),
        algorithm=SelectionAlgorithm.QUOTA_BASED,
        metadata=TurnOrderMetadata(
            quota_per_member=quota_per_member,
            total_available_points=total_available_points,
            **_history_metadata(history),
        ),
    )


def compute_points_balance(
    members: Sequence[TurnOrderMember],
    points_by_user: Mapping[str, float],
) -> ComputedTurnOrder:
    """Order members by accumulated points, lowest first.

    Ties are broken alphabetically.
    """
    points_map = {m.user_id: float(points_by_user.get(m.user_id, 0)) for m in members}
    ordered = sorted(members, key=lambda m: (points_map[m.user_id], *_name_key(m)))
    return ComputedTurnOrder(
        turns=tuple(ordered),
        algorithm=SelectionAlgorithm.POINTS_BALANCE,
        metadata=TurnOrderMetadata(member_points_map=points_map),
    )


def compute_turn_order(
    algorithm: SelectionAlgorithm,
    members: Sequence[TurnOrderMember],
    history: SelectionHistory | None = None,
    available_points: Iterable[int] = (),
    points_by_user: Mapping[str, float] | None = None,
) -> ComputedTurnOrder:
    """Dispatch to the algorithm-specific computation."""
    if algorithm is SelectionAlgorithm.FAIR_ROTATION:
        return compute_fair_rotation(members, history)
    if algorithm is SelectionAlgorithm.QUOTA_BASED:
        return compute_quota_based(members, history, available_points)
    if algorithm is SelectionAlgorithm.POINTS_BALANCE:
        return compute_points_balance(members, points_by_user or {})
    return ComputedTurnOrder(turns=tuple(members), algorithm=SelectionAlgorithm.MANUAL)
