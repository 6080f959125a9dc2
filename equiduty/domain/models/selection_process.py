"""Selection process domain model.

A selection process rotates responsibility among a fixed list of stable
members over a bounded date window: each member, in turn order, chooses
the routines they will perform, then completes their turn so the next
member can choose.

State Machine:
    DRAFT -> ACTIVE (admin starts; turn #1 becomes current)
    ACTIVE -> COMPLETED (last incomplete turn completed)
    ACTIVE -> CANCELLED (admin cancels; turns frozen)

Terminal States:
    COMPLETED and CANCELLED are terminal. A terminal process is never
    moved again; it may only be deleted (CANCELLED) or kept (COMPLETED).

Invariants:
    - Turn orders are exactly 1..N with no gaps or duplicates.
    - Each member holds at most one turn.
    - While ACTIVE, exactly one turn is current: the lowest-order
      incomplete turn. An ACTIVE process always has one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Sequence

from equiduty.domain.models.turn_order import (
    DEFAULT_ALGORITHM,
    SelectionAlgorithm,
    TurnOrderMember,
    TurnOrderMetadata,
)

NAME_MAX_LENGTH: int = 100
DESCRIPTION_MAX_LENGTH: int = 500


class SelectionProcessStatus(Enum):
    """Status in the selection process lifecycle.

    States:
        DRAFT: Created by the wizard, not yet started
        ACTIVE: Members are taking turns
        COMPLETED: Every turn has been completed (terminal)
        CANCELLED: Stopped by an admin (terminal)
    """

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Check if this status is terminal.

        Returns:
            True for COMPLETED and CANCELLED.
        """
        return self in TERMINAL_STATUSES

    def valid_transitions(self) -> frozenset[SelectionProcessStatus]:
        """Get valid transitions from this status.

        Returns:
            Frozenset of statuses this status can move to.
            Empty set for terminal statuses.
        """
        return STATUS_TRANSITION_MATRIX.get(self, frozenset())


TERMINAL_STATUSES: frozenset[SelectionProcessStatus] = frozenset(
    {
        SelectionProcessStatus.COMPLETED,
        SelectionProcessStatus.CANCELLED,
    }
)

# Forward-only: no status ever returns to an earlier one
STATUS_TRANSITION_MATRIX: dict[SelectionProcessStatus, frozenset[SelectionProcessStatus]] = {
    SelectionProcessStatus.DRAFT: frozenset({SelectionProcessStatus.ACTIVE}),
    SelectionProcessStatus.ACTIVE: frozenset(
        {
            SelectionProcessStatus.COMPLETED,
            SelectionProcessStatus.CANCELLED,
        }
    ),
    SelectionProcessStatus.COMPLETED: frozenset(),
    SelectionProcessStatus.CANCELLED: frozenset(),
}

# Statuses from which a process may be deleted
DELETABLE_STATUSES: frozenset[SelectionProcessStatus] = frozenset(
    {
        SelectionProcessStatus.DRAFT,
        SelectionProcessStatus.CANCELLED,
    }
)


class TurnStatus(Enum):
    """Status of a single turn.

    States:
        PENDING: Not yet this member's turn
        ACTIVE: Currently this member's turn to choose
        COMPLETED: Member has finished choosing
    """

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def format_date_range(start: date, end: date) -> str:
    """Format a selection window as ``"Mar 1, 2026 - Mar 31, 2026"``."""
    return f"{start:%b} {start.day}, {start.year} - {end:%b} {end.day}, {end.year}"


@dataclass(frozen=True, eq=True)
class SelectionTurn:
    """One member's slot in a selection process.

    Attributes:
        user_id: Member's user ID.
        user_name: Member's display name.
        user_email: Member's email (may be empty).
        order: 1-based position in the queue.
        status: Turn status.
        completed_at: When the turn was completed.
        selections_count: Number of routines chosen during this turn.
    """

    user_id: str
    user_name: str
    order: int
    user_email: str = ""
    status: TurnStatus = TurnStatus.PENDING
    completed_at: datetime | None = None
    selections_count: int = 0

    @property
    def completed(self) -> bool:
        return self.status is TurnStatus.COMPLETED

    def as_member(self) -> TurnOrderMember:
        return TurnOrderMember(
            user_id=self.user_id,
            user_name=self.user_name,
            user_email=self.user_email,
        )


def build_turns_from_member_order(
    members: Sequence[TurnOrderMember],
) -> tuple[SelectionTurn, ...]:
    """Create pending turns from an ordered member list.

    Args:
        members: Members in turn order.

    Returns:
        Turns with orders 1..N in the given order.
    """
    return tuple(
        SelectionTurn(
            user_id=member.user_id,
            user_name=member.user_name,
            user_email=member.user_email,
            order=index + 1,
        )
        for index, member in enumerate(members)
    )


def validate_turn_order(turns: Sequence[SelectionTurn]) -> None:
    """Check turn contiguity and member uniqueness.

    Raises:
        TurnOrderError: If orders are not exactly 1..N or a member repeats.
    """
    from equiduty.domain.errors.selection_process import TurnOrderError

    orders = sorted(turn.order for turn in turns)
    expected = list(range(1, len(turns) + 1))
    if orders != expected:
        raise TurnOrderError(
            f"Turn orders must be contiguous from 1 to {len(turns)}, got {orders}"
        )

    user_ids = [turn.user_id for turn in turns]
    if len(set(user_ids)) != len(user_ids):
        raise TurnOrderError("Each member may hold only one turn")


@dataclass(frozen=True)
class CompleteTurnOutcome:
    """Outcome of completing the current turn.

    Attributes:
        completed_turn: The turn that was just completed.
        next_turn: The turn that became current, or None.
        process_completed: True if no incomplete turns remain.
    """

    completed_turn: SelectionTurn
    next_turn: SelectionTurn | None
    process_completed: bool


@dataclass(frozen=True, eq=True)
class SelectionProcess:
    """A bounded-time rotation of responsibility among stable members.

    Transition methods return a new instance; the receiver is untouched.

    Attributes:
        id: Process ID assigned by the backend.
        organization_id: Owning organization.
        stable_id: Stable whose members take turns.
        name: Display name (max 100 chars).
        selection_start_date: First day of the selection window.
        selection_end_date: Last day of the selection window.
        turns: Turns sorted by order.
        status: Lifecycle status.
        algorithm: Algorithm that produced the initial order.
        description: Optional description (max 500 chars).
        metadata: Algorithm-specific facts, informational only.
        created_by: User who created the process.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC).
        started_at: When the process became active.
        completed_at: When the last turn was completed.
        cancelled_at: When the process was cancelled.
        cancellation_reason: Optional reason given on cancel.
    """

    id: str
    organization_id: str
    stable_id: str
    name: str
    selection_start_date: date
    selection_end_date: date
    turns: tuple[SelectionTurn, ...] = ()
    status: SelectionProcessStatus = SelectionProcessStatus.DRAFT
    algorithm: SelectionAlgorithm = DEFAULT_ALGORITHM
    description: str | None = None
    metadata: TurnOrderMetadata | None = None
    created_by: str = ""
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    def __post_init__(self) -> None:
        """Validate selection process fields."""
        from equiduty.domain.errors.selection_process import (
            SelectionProcessValidationError,
            TurnOrderError,
        )

        if not self.name.strip():
            raise SelectionProcessValidationError("name", "Name must not be empty")
        if len(self.name) > NAME_MAX_LENGTH:
            raise SelectionProcessValidationError(
                "name", f"Name cannot exceed {NAME_MAX_LENGTH} characters"
            )
        if self.description is not None and len(self.description) > DESCRIPTION_MAX_LENGTH:
            raise SelectionProcessValidationError(
                "description",
                f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
            )
        if self.selection_start_date >= self.selection_end_date:
            raise SelectionProcessValidationError(
                "selection_start_date", "Start date must be before end date"
            )

        validate_turn_order(self.turns)
        # Keep turns sorted so positional access follows turn order
        object.__setattr__(
            self, "turns", tuple(sorted(self.turns, key=lambda t: t.order))
        )

        if self.status is SelectionProcessStatus.ACTIVE:
            current = self.current_turn
            if current is None:
                raise TurnOrderError("An active process must have an incomplete turn")
            active_orders = [t.order for t in self.turns if t.status is TurnStatus.ACTIVE]
            if active_orders and active_orders != [current.order]:
                raise TurnOrderError(
                    f"Only turn {current.order} may be active, found {active_orders}"
                )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def current_turn(self) -> SelectionTurn | None:
        """The lowest-order incomplete turn while active, else None."""
        if self.status is not SelectionProcessStatus.ACTIVE:
            return None
        return next((t for t in self.turns if not t.completed), None)

    @property
    def completed_turns_count(self) -> int:
        return sum(1 for t in self.turns if t.completed)

    @property
    def total_members(self) -> int:
        return len(self.turns)

    @property
    def formatted_date_range(self) -> str:
        return format_date_range(self.selection_start_date, self.selection_end_date)

    def turn_for(self, user_id: str) -> SelectionTurn | None:
        return next((t for t in self.turns if t.user_id == user_id), None)

    def is_current_turn(self, user_id: str | None) -> bool:
        current = self.current_turn
        return current is not None and user_id is not None and current.user_id == user_id

    def turns_ahead(self, user_id: str | None) -> int:
        """Count incomplete turns ordered before the user's turn.

        Returns:
            0 if the user holds no turn.
        """
        turn = self.turn_for(user_id) if user_id is not None else None
        if turn is None:
            return 0
        return sum(1 for t in self.turns if t.order < turn.order and not t.completed)

    def contains_date(self, day: date) -> bool:
        """Check if ``day`` falls inside the selection window (inclusive)."""
        return self.selection_start_date <= day <= self.selection_end_date

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _check_transition(self, new_status: SelectionProcessStatus) -> None:
        """Enforce the transition matrix.

        Raises:
            SelectionProcessTerminalError: If the process is terminal.
            InvalidStateTransitionError: If the transition is not valid.
        """
        from equiduty.domain.errors.selection_process import (
            InvalidStateTransitionError,
            SelectionProcessTerminalError,
        )

        if self.status.is_terminal():
            raise SelectionProcessTerminalError(
                process_id=self.id,
                terminal_status=self.status,
                to_status=new_status,
            )

        valid_transitions = self.status.valid_transitions()
        if new_status not in valid_transitions:
            raise InvalidStateTransitionError(
                from_status=self.status,
                to_status=new_status,
                allowed_transitions=list(valid_transitions),
            )

    def start(self, now: datetime | None = None) -> SelectionProcess:
        """Move a draft process to active with turn #1 current.

        Raises:
            InvalidStateTransitionError: If the process is not a draft.
            TurnOrderError: If the process has no turns.
        """
        from equiduty.domain.errors.selection_process import TurnOrderError

        self._check_transition(SelectionProcessStatus.ACTIVE)
        if not self.turns:
            raise TurnOrderError("Cannot start a selection process with no members")

        timestamp = now or _utc_now()
        turns = tuple(
            replace(
                turn,
                status=TurnStatus.ACTIVE if index == 0 else TurnStatus.PENDING,
                completed_at=None,
            )
            for index, turn in enumerate(self.turns)
        )
        return replace(
            self,
            status=SelectionProcessStatus.ACTIVE,
            turns=turns,
            started_at=timestamp,
            updated_at=timestamp,
        )

    def complete_current_turn(
        self, now: datetime | None = None
    ) -> tuple[SelectionProcess, CompleteTurnOutcome]:
        """Complete the current turn and advance to the next incomplete one.

        When no incomplete turn remains the process becomes COMPLETED.

        Returns:
            The updated process and the outcome of the completion.

        Raises:
            InvalidProcessStatusError: If the process is not active.
        """
        from equiduty.domain.errors.selection_process import InvalidProcessStatusError

        current = self.current_turn
        if current is None:
            raise InvalidProcessStatusError(
                process_id=self.id,
                current_status=self.status,
                operation="complete turn in",
            )

        timestamp = now or _utc_now()
        next_turn = next(
            (t for t in self.turns if t.order > current.order and not t.completed),
            None,
        )

        turns = []
        for turn in self.turns:
            if turn.order == current.order:
                turn = replace(turn, status=TurnStatus.COMPLETED, completed_at=timestamp)
            elif next_turn is not None and turn.order == next_turn.order:
                turn = replace(turn, status=TurnStatus.ACTIVE)
            turns.append(turn)

        completed_turn = turns[current.order - 1]
        if next_turn is None:
            self._check_transition(SelectionProcessStatus.COMPLETED)
            updated = replace(
                self,
                status=SelectionProcessStatus.COMPLETED,
                turns=tuple(turns),
                completed_at=timestamp,
                updated_at=timestamp,
            )
            return updated, CompleteTurnOutcome(
                completed_turn=completed_turn,
                next_turn=None,
                process_completed=True,
            )

        updated = replace(self, turns=tuple(turns), updated_at=timestamp)
        return updated, CompleteTurnOutcome(
            completed_turn=completed_turn,
            next_turn=turns[next_turn.order - 1],
            process_completed=False,
        )

    def cancel(
        self, now: datetime | None = None, reason: str | None = None
    ) -> SelectionProcess:
        """Cancel an active process. Turns are frozen as they are.

        Raises:
            SelectionProcessTerminalError: If already completed or cancelled.
            InvalidStateTransitionError: If the process is a draft.
        """
        self._check_transition(SelectionProcessStatus.CANCELLED)
        timestamp = now or _utc_now()
        return replace(
            self,
            status=SelectionProcessStatus.CANCELLED,
            cancelled_at=timestamp,
            cancellation_reason=reason,
            updated_at=timestamp,
        )

    def with_dates(
        self,
        selection_start_date: date,
        selection_end_date: date,
        now: datetime | None = None,
    ) -> SelectionProcess:
        """Change the selection window of an active process.

        Turn order is not affected.

        Raises:
            InvalidProcessStatusError: If the process is not active.
            SelectionProcessValidationError: If start is not before end.
        """
        from equiduty.domain.errors.selection_process import InvalidProcessStatusError

        if self.status is not SelectionProcessStatus.ACTIVE:
            raise InvalidProcessStatusError(
                process_id=self.id,
                current_status=self.status,
                operation="update dates of",
            )
        return replace(
            self,
            selection_start_date=selection_start_date,
            selection_end_date=selection_end_date,
            updated_at=now or _utc_now(),
        )

    def record_selection(self, user_id: str) -> SelectionProcess:
        """Count one routine chosen by ``user_id`` during their turn."""
        turns = tuple(
            replace(t, selections_count=t.selections_count + 1) if t.user_id == user_id else t
            for t in self.turns
        )
        return replace(self, turns=turns, updated_at=_utc_now())

    def ensure_deletable(self) -> None:
        """Check that the process may be deleted.

        Raises:
            InvalidProcessStatusError: If the process is active or completed.
        """
        from equiduty.domain.errors.selection_process import InvalidProcessStatusError

        if self.status not in DELETABLE_STATUSES:
            raise InvalidProcessStatusError(
                process_id=self.id,
                current_status=self.status,
                operation="delete",
            )

    def to_summary(self, viewer_id: str | None = None) -> SelectionProcessSummary:
        current = self.current_turn
        return SelectionProcessSummary(
            id=self.id,
            name=self.name,
            status=self.status,
            selection_start_date=self.selection_start_date,
            selection_end_date=self.selection_end_date,
            total_members=self.total_members,
            completed_turns=self.completed_turns_count,
            current_turn_user_name=current.user_name if current else None,
            is_current_turn=self.is_current_turn(viewer_id),
            created_at=self.created_at,
        )


@dataclass(frozen=True, eq=True)
class SelectionProcessSummary:
    """List-view summary of a selection process."""

    id: str
    name: str
    status: SelectionProcessStatus
    selection_start_date: date
    selection_end_date: date
    total_members: int
    completed_turns: int
    current_turn_user_name: str | None
    is_current_turn: bool
    created_at: datetime

    @property
    def formatted_date_range(self) -> str:
        return format_date_range(self.selection_start_date, self.selection_end_date)
