"""In-memory selection process backend for development and testing.

Implements SelectionProcessApiProtocol, RoutineInstanceGatewayProtocol and
PermissionCheckerProtocol against in-process state, enforcing the same
rules the REST backend does:

- Admin actions require the acting user to hold manage permission.
- Turns may be completed by the current-turn holder or a manager.
- Dates may only change on active processes, not into the past, and the
  window must stay non-empty.
- Only draft and cancelled processes can be deleted.
- While a stable has an active process, only its current-turn holder may
  claim routines, and each claim is counted on their turn.
- Completing a process records its final order as selection history,
  which the rotation algorithms read.

Refusals raise domain errors (SelectionProcessError subclasses).

NOT suitable for production use.

Usage:
    backend = InMemorySelectionBackend(acting_user_id="admin", managers={"admin"})
    backend.add_stable_members("stable-1", [StableMemberInfo("u1", "Anna"), ...])

    # Inject errors for testing
    backend.set_error_on_next_call(ServerError(503))

    # Hold calls in flight to test concurrent dispatch
    backend.hold_calls()
    ...
    backend.release_calls()

    # Query operations after test
    ops = backend.get_operations_by_type("start_process")
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from equiduty.application.dtos.selection_process import (
    AssignRoutineResult,
    CompleteTurnResult,
    ComputeTurnOrderInput,
    CreateSelectionProcessInput,
    CurrentUser,
)
from equiduty.application.ports.permission_checker import MANAGE_SELECTION_PROCESSES
from equiduty.domain.errors.selection_process import (
    NotAuthorizedError,
    NotCurrentTurnError,
    ProcessNotFoundError,
    RoutineAssignmentError,
    SelectionProcessValidationError,
)
from equiduty.domain.models.routine_instance import (
    RoutineInstance,
    RoutineInstanceStatus,
    is_within_selection_window,
)
from equiduty.domain.models.selection_process import (
    SelectionProcess,
    SelectionProcessStatus,
    SelectionProcessSummary,
    build_turns_from_member_order,
)
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import (
    ComputedTurnOrder,
    SelectionHistory,
    SelectionHistoryTurn,
)
from equiduty.domain.services.turn_order_algorithms import compute_turn_order

MIN_PROCESS_MEMBERS: int = 2


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


@dataclass
class BackendOperation:
    """Record of an operation performed on the backend."""

    operation: str
    timestamp: datetime
    user_id: str
    details: dict[str, Any] = field(default_factory=dict)


class InMemorySelectionBackend:
    """In-memory stand-in for the EquiDuty REST backend.

    The acting user plays the role of the authenticated caller. Switch it
    with ``act_as()`` to exercise turn-holder and permission rules.

    Attributes:
        acting_user_id: User the calls are made as.
    """

    def __init__(
        self,
        acting_user_id: str = "",
        managers: Iterable[str] = (),
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the backend with empty storage.

        Args:
            acting_user_id: User the calls are made as.
            managers: Users holding manage_selection_processes.
            today: Current date, for the "not in the past" date rule.
            clock: Current time, for entity timestamps.
        """
        self.acting_user_id = acting_user_id
        self._managers: set[str] = set(managers)
        self._today = today
        self._clock = clock
        self._ids = itertools.count(1)

        self._processes: dict[str, SelectionProcess] = {}
        self._members: dict[str, list[StableMemberInfo]] = {}
        self._routines: dict[str, RoutineInstance] = {}
        self._routine_stables: dict[str, str] = {}
        self._history: dict[str, list[SelectionHistory]] = {}
        self._member_points: dict[str, dict[str, float]] = {}

        self._operations: list[BackendOperation] = []
        self._next_error: Exception | None = None
        self._gate: asyncio.Event | None = None

    # ═══════════════════════════════════════════════════════════════════════
    # INTERNALS
    # ═══════════════════════════════════════════════════════════════════════

    def _record_operation(self, operation: str, **details: Any) -> None:
        self._operations.append(
            BackendOperation(
                operation=operation,
                timestamp=self._clock(),
                user_id=self.acting_user_id,
                details=details,
            )
        )

    async def _begin(self, operation: str, **details: Any) -> None:
        """Record the call, wait while held, and raise an injected error."""
        self._record_operation(operation, **details)
        if self._gate is not None:
            await self._gate.wait()
        if self._next_error is not None:
            error, self._next_error = self._next_error, None
            raise error

    def _require_manager(self, action: str) -> None:
        if self.acting_user_id not in self._managers:
            raise NotAuthorizedError(self.acting_user_id, action)

    def _get(self, process_id: str) -> SelectionProcess:
        process = self._processes.get(process_id)
        if process is None:
            raise ProcessNotFoundError(process_id)
        return process

    def _active_process_for_stable(self, stable_id: str) -> SelectionProcess | None:
        return next(
            (
                p
                for p in self._processes.values()
                if p.stable_id == stable_id and p.status is SelectionProcessStatus.ACTIVE
            ),
            None,
        )

    def _routines_for_stable(self, stable_id: str) -> list[RoutineInstance]:
        return [
            r for r in self._routines.values() if self._routine_stables[r.id] == stable_id
        ]

    def _points_by_user(self, stable_id: str) -> dict[str, float]:
        """Explicit points if seeded, else points of completed routines."""
        if stable_id in self._member_points:
            return dict(self._member_points[stable_id])
        points: dict[str, float] = {}
        for routine in self._routines_for_stable(stable_id):
            if routine.assigned_to and routine.status is RoutineInstanceStatus.COMPLETED:
                points[routine.assigned_to] = (
                    points.get(routine.assigned_to, 0) + routine.points_value
                )
        return points

    def _record_history(self, process: SelectionProcess) -> None:
        routines = [
            r
            for r in self._routines_for_stable(process.stable_id)
            if process.contains_date(r.scheduled_date)
        ]
        final_turns = tuple(
            SelectionHistoryTurn(
                user_id=turn.user_id,
                user_name=turn.user_name,
                order=turn.order,
                selections_count=turn.selections_count,
                total_points_picked=sum(
                    r.points_value for r in routines if r.is_assigned_to(turn.user_id)
                ),
            )
            for turn in process.turns
        )
        self._history.setdefault(process.stable_id, []).append(
            SelectionHistory(
                process_id=process.id,
                process_name=process.name,
                stable_id=process.stable_id,
                algorithm=process.algorithm,
                final_turn_order=final_turns,
                completed_at=process.completed_at or self._clock(),
            )
        )

    # ═══════════════════════════════════════════════════════════════════════
    # SELECTION PROCESS API
    # ═══════════════════════════════════════════════════════════════════════

    async def list_processes(
        self, stable_id: str, status: SelectionProcessStatus | None = None
    ) -> list[SelectionProcessSummary]:
        await self._begin(
            "list_processes",
            stable_id=stable_id,
            status=status.value if status is not None else None,
        )
        processes = sorted(
            (
                p
                for p in self._processes.values()
                if p.stable_id == stable_id and (status is None or p.status is status)
            ),
            key=lambda p: p.created_at,
            reverse=True,
        )
        return [p.to_summary(self.acting_user_id) for p in processes]

    async def get_process(self, process_id: str) -> SelectionProcess:
        await self._begin("get_process", process_id=process_id)
        return self._get(process_id)

    async def get_stable_members(self, stable_id: str) -> list[StableMemberInfo]:
        await self._begin("get_stable_members", stable_id=stable_id)
        return list(self._members.get(stable_id, []))

    async def compute_turn_order(self, request: ComputeTurnOrderInput) -> ComputedTurnOrder:
        await self._begin(
            "compute_turn_order",
            stable_id=request.stable_id,
            algorithm=request.algorithm.value,
            member_ids=request.member_ids,
        )
        by_id = {m.user_id: m for m in self._members.get(request.stable_id, [])}
        unknown = [uid for uid in request.member_ids if uid not in by_id]
        if unknown:
            raise SelectionProcessValidationError(
                "member_ids", f"Not members of the stable: {', '.join(unknown)}"
            )
        members = [by_id[uid].as_turn_order_member() for uid in request.member_ids]

        history = self._history.get(request.stable_id)
        available_points = [
            r.points_value
            for r in self._routines_for_stable(request.stable_id)
            if not r.is_assigned
            and is_within_selection_window(
                r.scheduled_date,
                request.selection_start_date,
                request.selection_end_date,
            )
        ]
        return compute_turn_order(
            request.algorithm,
            members,
            history=history[-1] if history else None,
            available_points=available_points,
            points_by_user=self._points_by_user(request.stable_id),
        )

    async def create_process(self, request: CreateSelectionProcessInput) -> SelectionProcess:
        await self._begin(
            "create_process",
            stable_id=request.stable_id,
            name=request.name,
            member_ids=[m.user_id for m in request.member_order],
        )
        self._require_manager("create selection processes")
        if len(request.member_order) < MIN_PROCESS_MEMBERS:
            raise SelectionProcessValidationError(
                "member_order", f"At least {MIN_PROCESS_MEMBERS} members are required"
            )

        now = self._clock()
        process = SelectionProcess(
            id=f"sp-{next(self._ids)}",
            organization_id=request.organization_id,
            stable_id=request.stable_id,
            name=request.name,
            description=request.description,
            selection_start_date=request.selection_start_date,
            selection_end_date=request.selection_end_date,
            algorithm=request.algorithm,
            turns=build_turns_from_member_order(request.member_order),
            created_by=self.acting_user_id,
            created_at=now,
            updated_at=now,
        )
        self._processes[process.id] = process
        return process

    async def start_process(self, process_id: str) -> None:
        await self._begin("start_process", process_id=process_id)
        self._require_manager("start selection processes")
        self._processes[process_id] = self._get(process_id).start(self._clock())

    async def complete_turn(self, process_id: str) -> CompleteTurnResult:
        await self._begin("complete_turn", process_id=process_id)
        process = self._get(process_id)
        if (
            process.status is SelectionProcessStatus.ACTIVE
            and not process.is_current_turn(self.acting_user_id)
            and self.acting_user_id not in self._managers
        ):
            raise NotCurrentTurnError(process_id, self.acting_user_id)

        updated, outcome = process.complete_current_turn(self._clock())
        self._processes[process_id] = updated
        if outcome.process_completed:
            self._record_history(updated)
        return CompleteTurnResult(
            success=True,
            process_completed=outcome.process_completed,
            next_turn_user_id=outcome.next_turn.user_id if outcome.next_turn else None,
            next_turn_user_name=outcome.next_turn.user_name if outcome.next_turn else None,
        )

    async def cancel_process(self, process_id: str, reason: str | None = None) -> None:
        await self._begin("cancel_process", process_id=process_id, reason=reason)
        self._require_manager("cancel selection processes")
        self._processes[process_id] = self._get(process_id).cancel(self._clock(), reason)

    async def delete_process(self, process_id: str) -> None:
        await self._begin("delete_process", process_id=process_id)
        self._require_manager("delete selection processes")
        self._get(process_id).ensure_deletable()
        del self._processes[process_id]

    async def update_dates(
        self,
        process_id: str,
        selection_start_date: date,
        selection_end_date: date,
    ) -> None:
        await self._begin(
            "update_dates",
            process_id=process_id,
            selection_start_date=selection_start_date,
            selection_end_date=selection_end_date,
        )
        self._require_manager("update selection process dates")
        process = self._get(process_id)
        updated = process.with_dates(selection_start_date, selection_end_date, self._clock())

        today = self._today()
        # Unchanged dates may already lie in the past
        if selection_start_date != process.selection_start_date and selection_start_date < today:
            raise SelectionProcessValidationError(
                "selection_start_date", "Start date cannot be in the past"
            )
        if selection_end_date != process.selection_end_date and selection_end_date < today:
            raise SelectionProcessValidationError(
                "selection_end_date", "End date cannot be in the past"
            )
        self._processes[process_id] = updated

    # ═══════════════════════════════════════════════════════════════════════
    # ROUTINE INSTANCE GATEWAY
    # ═══════════════════════════════════════════════════════════════════════

    async def get_instances_for_date_range(
        self,
        stable_id: str,
        start_date: date,
        end_date: date,
    ) -> list[RoutineInstance]:
        await self._begin(
            "get_instances_for_date_range",
            stable_id=stable_id,
            start_date=start_date,
            end_date=end_date,
        )
        return sorted(
            (
                r
                for r in self._routines_for_stable(stable_id)
                if is_within_selection_window(r.scheduled_date, start_date, end_date)
            ),
            key=lambda r: (r.scheduled_date, r.scheduled_start_time),
        )

    async def assign_routine(
        self,
        instance_id: str,
        user_id: str,
        user_name: str,
    ) -> AssignRoutineResult:
        await self._begin("assign_routine", instance_id=instance_id, user_id=user_id)
        instance = self._routines.get(instance_id)
        if instance is None:
            raise RoutineAssignmentError(instance_id, "routine instance not found")
        if instance.status is not RoutineInstanceStatus.SCHEDULED:
            raise RoutineAssignmentError(
                instance_id, f"routine has status {instance.status.value}"
            )
        if instance.is_assigned:
            raise RoutineAssignmentError(instance_id, "routine is already assigned")

        stable_id = self._routine_stables[instance_id]
        active = self._active_process_for_stable(stable_id)
        if active is not None and not active.is_current_turn(self.acting_user_id):
            raise RoutineAssignmentError(instance_id, "it is not your turn to choose routines")

        self._routines[instance_id] = replace(
            instance, assigned_to=user_id, assigned_to_name=user_name
        )
        if active is not None:
            self._processes[active.id] = active.record_selection(user_id)
        return AssignRoutineResult(success=True)

    # ═══════════════════════════════════════════════════════════════════════
    # PERMISSION CHECKER
    # ═══════════════════════════════════════════════════════════════════════

    async def has_permission(self, user: CurrentUser, action: str) -> bool:
        await self._begin("has_permission", user_id=user.user_id, action=action)
        return action == MANAGE_SELECTION_PROCESSES and user.user_id in self._managers

    # ═══════════════════════════════════════════════════════════════════════
    # TESTING HELPERS
    # ═══════════════════════════════════════════════════════════════════════

    def act_as(self, user_id: str) -> None:
        """Make subsequent calls as ``user_id``."""
        self.acting_user_id = user_id

    def grant_manage(self, user_id: str) -> None:
        self._managers.add(user_id)

    def revoke_manage(self, user_id: str) -> None:
        self._managers.discard(user_id)

    def add_stable_members(self, stable_id: str, members: Iterable[StableMemberInfo]) -> None:
        self._members.setdefault(stable_id, []).extend(members)

    def add_routine_instances(
        self, stable_id: str, instances: Iterable[RoutineInstance]
    ) -> None:
        for instance in instances:
            self._routines[instance.id] = instance
            self._routine_stables[instance.id] = stable_id

    def add_process(self, process: SelectionProcess) -> None:
        """Store a pre-built process, bypassing creation rules."""
        self._processes[process.id] = process

    def add_history(self, history: SelectionHistory) -> None:
        self._history.setdefault(history.stable_id, []).append(history)

    def set_member_points(self, stable_id: str, points: Mapping[str, float]) -> None:
        """Override accumulated points used by points_balance."""
        self._member_points[stable_id] = dict(points)

    def set_error_on_next_call(self, error: Exception) -> None:
        """Configure an error to be raised by the next call of any operation.

        Args:
            error: Exception to raise.
        """
        self._next_error = error

    def hold_calls(self) -> None:
        """Make every call wait until release_calls()."""
        self._gate = asyncio.Event()

    def release_calls(self) -> None:
        if self._gate is not None:
            self._gate.set()
            self._gate = None

    def get_stored_process(self, process_id: str) -> SelectionProcess | None:
        return self._processes.get(process_id)

    def get_routine(self, instance_id: str) -> RoutineInstance | None:
        return self._routines.get(instance_id)

    def get_history(self, stable_id: str) -> list[SelectionHistory]:
        return list(self._history.get(stable_id, []))

    def get_operations_by_type(self, operation: str) -> list[BackendOperation]:
        return [op for op in self._operations if op.operation == operation]

    def get_operation_count(self) -> int:
        return len(self._operations)

    def clear_operations(self) -> None:
        """Clear only operation history."""
        self._operations.clear()

    def clear(self) -> None:
        """Clear all state."""
        self._processes.clear()
        self._members.clear()
        self._routines.clear()
        self._routine_stables.clear()
        self._history.clear()
        self._member_points.clear()
        self._operations.clear()
        self._next_error = None
        self.release_calls()
