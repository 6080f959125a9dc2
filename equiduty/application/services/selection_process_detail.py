"""Selection process detail controller.

Shows one process and runs the actions available on it:

    start_process     admin, draft
    complete_turn     current-turn holder or admin, active
    cancel_process    admin, active
    delete_process    admin, draft or cancelled
    save_dates        admin, active
    assign_routine_to_self  current-turn holder, active

Every action follows the same pattern: reject if another action is in
flight, check client-side preconditions, call the backend, then reload the
whole entity on success. The entity is never patched locally. Failures
leave the loaded entity in place and set ``action_error``.

A 7-day window of routine instances is kept alongside the process so the
current-turn holder can claim routines. Moving the window only reloads
routines.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Awaitable, Callable

from equiduty.application.dtos.selection_process import CompleteTurnResult, CurrentUser
from equiduty.application.ports.permission_checker import (
    MANAGE_SELECTION_PROCESSES,
    PermissionCheckerProtocol,
)
from equiduty.application.ports.routine_instance_gateway import (
    RoutineInstanceGatewayProtocol,
)
from equiduty.application.ports.selection_process_api import (
    SelectionProcessApiProtocol,
)
from equiduty.application.services.base import LoggingMixin, user_facing_message
from equiduty.application.services.observable import (
    ActionGuard,
    LatestRequestTracker,
    Observable,
)
from equiduty.domain.errors.selection_process import RoutineAssignmentError
from equiduty.domain.models.routine_instance import (
    RoutineInstance,
    RoutineInstanceStatus,
    WeekWindow,
)
from equiduty.domain.models.selection_process import (
    DELETABLE_STATUSES,
    SelectionProcess,
    SelectionProcessStatus,
)

NO_PERMISSION_MESSAGE = "You do not have permission to manage selection processes"


class SelectionProcessDetailController(Observable, LoggingMixin):
    """Controller for the selection process detail view.

    Attributes:
        process: Loaded process, or None before the first successful load.
        can_manage: Cached manage permission of the current user.
        is_loading: True while a page-level load is in flight.
        error_message: Page-level load failure (retry with load_data).
        is_action_loading: True while an action awaits the backend.
        action_error: Failure of the last action.
        success_message: Result of the last successful action.
        should_dismiss: True once the process was deleted.
        week: Routine window being shown.
        week_routines: Routine instances of ``week`` grouped by day.
        is_loading_routines: True while a routine load is in flight.
        routines_error: Failure of the last routine load.
    """

    def __init__(
        self,
        api: SelectionProcessApiProtocol,
        routines: RoutineInstanceGatewayProtocol,
        permissions: PermissionCheckerProtocol,
        process_id: str,
        current_user: CurrentUser,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._api = api
        self._routines = routines
        self._permissions = permissions
        self.process_id = process_id
        self.current_user = current_user
        self._today = today
        self._init_logger(component="selection_process_detail")
        self._init_observable()

        self._action_guard = ActionGuard()
        self._load_tracker = LatestRequestTracker()
        self._routines_tracker = LatestRequestTracker()

        self.process: SelectionProcess | None = None
        self.can_manage = False
        self.is_loading = False
        self.error_message: str | None = None
        self.is_action_loading = False
        self.action_error: str | None = None
        self.success_message: str | None = None
        self.should_dismiss = False

        self.week = WeekWindow.containing(today())
        self.week_routines: dict[date, list[RoutineInstance]] = {}
        self.is_loading_routines = False
        self.routines_error: str | None = None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def status(self) -> SelectionProcessStatus | None:
        return self.process.status if self.process else None

    @property
    def is_current_turn(self) -> bool:
        return self.process is not None and self.process.is_current_turn(
            self.current_user.user_id
        )

    @property
    def turns_ahead(self) -> int:
        if self.process is None:
            return 0
        return self.process.turns_ahead(self.current_user.user_id)

    @property
    def completed_turns_count(self) -> int:
        return self.process.completed_turns_count if self.process else 0

    @property
    def formatted_date_range(self) -> str:
        return self.process.formatted_date_range if self.process else ""

    @property
    def can_select_routines(self) -> bool:
        return self.status is SelectionProcessStatus.ACTIVE and self.is_current_turn

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_data(self) -> bool:
        """Load the process and the user's manage permission.

        Shows the page-level loading state. A failure sets ``error_message``
        without clearing an already loaded process.
        """
        return await self._load(show_loading=True)

    async def refresh(self) -> bool:
        """Reload without the page-level loading state."""
        return await self._load(show_loading=False)

    async def _load(self, show_loading: bool) -> bool:
        token = self._load_tracker.begin()
        log = self._log_operation("load_process", process_id=self.process_id)
        if show_loading:
            self.is_loading = True
        self.error_message = None
        self._publish()

        try:
            process = await self._api.get_process(self.process_id)
        except Exception as exc:
            if not self._load_tracker.is_current(token):
                return False
            log.error("process_load_failed", error=str(exc), exc_info=True)
            self.error_message = "Failed to load selection process"
            self.is_loading = False
            self._publish()
            return False

        can_manage = await self._check_can_manage()
        if not self._load_tracker.is_current(token):
            log.debug("superseded_load_discarded")
            return False

        self.process = process
        self.can_manage = can_manage
        self.is_loading = False
        self._publish()
        log.info("process_loaded", status=process.status.value, can_manage=can_manage)

        if process.status is SelectionProcessStatus.ACTIVE:
            await self.load_week_routines()
        return True

    async def _check_can_manage(self) -> bool:
        """Ask the permission collaborator; a failed check denies."""
        try:
            return await self._permissions.has_permission(
                self.current_user, MANAGE_SELECTION_PROCESSES
            )
        except Exception as exc:
            self._log_operation(
                "check_permission", user_id=self.current_user.user_id
            ).warning("permission_check_failed", error=str(exc), exc_info=True)
            return False

    async def load_week_routines(self) -> bool:
        """Load routine instances for the current week window.

        A load superseded by a later one (e.g. rapid week navigation) is
        discarded.
        """
        if self.process is None:
            return False
        token = self._routines_tracker.begin()
        week = self.week
        log = self._log_operation(
            "load_week_routines",
            stable_id=self.process.stable_id,
            week_start=week.start.isoformat(),
        )
        self.is_loading_routines = True
        self.routines_error = None
        self._publish()

        try:
            instances = await self._routines.get_instances_for_date_range(
                self.process.stable_id, week.start, week.end
            )
        except Exception as exc:
            if not self._routines_tracker.is_current(token):
                return False
            log.error("routines_load_failed", error=str(exc), exc_info=True)
            self.routines_error = "Failed to load routines"
            self.is_loading_routines = False
            self._publish()
            return False

        if not self._routines_tracker.is_current(token):
            log.debug("superseded_routines_load_discarded")
            return False

        self.week_routines = week.group_by_day(instances)
        self.is_loading_routines = False
        self._publish()
        return True

    async def navigate_week(self, by: int) -> None:
        """Move the routine window by ``by`` weeks and reload routines."""
        self.week = self.week.shifted(by)
        self._publish()
        await self.load_week_routines()

    async def go_to_today(self) -> None:
        self.week = WeekWindow.containing(self._today())
        self._publish()
        await self.load_week_routines()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _reject(self, action: str, message: str, **context: Any) -> bool:
        """Record a client-side precondition failure."""
        self._log_operation(action, process_id=self.process_id, **context).info(
            "action_precondition_failed", reason=message
        )
        self.action_error = message
        self.success_message = None
        self._publish()
        return False

    def _require_manage(self, action: str) -> bool:
        if self.can_manage:
            return True
        return self._reject(action, NO_PERMISSION_MESSAGE, user_id=self.current_user.user_id)

    async def _run_action(
        self,
        action: str,
        call: Callable[[], Awaitable[Any]],
        success_message: Callable[[Any], str],
        failure_message: str,
        reload: bool = True,
    ) -> bool:
        """Run one backend action under the in-flight guard.

        Args:
            action: Operation name for logging.
            call: Zero-argument coroutine factory making the backend call.
            success_message: Builds the success text from the call result.
            failure_message: Text shown for failures without a user message.
            reload: Reload the entity after success.

        Returns:
            True if the backend accepted the action.
        """
        log = self._log_operation(
            action, process_id=self.process_id, user_id=self.current_user.user_id
        )
        if not self._action_guard.try_begin(action):
            log.warning("action_rejected_in_flight", in_flight=self._action_guard.in_flight)
            return False

        self.is_action_loading = True
        self.action_error = None
        self.success_message = None
        self._publish()
        try:
            try:
                result = await call()
            except Exception as exc:
                log.error("action_failed", error=str(exc), exc_info=True)
                self.action_error = user_facing_message(exc, failure_message)
                return False

            self.success_message = success_message(result)
            log.info("action_succeeded")
            if reload:
                await self.refresh()
            return True
        finally:
            self._action_guard.end()
            self.is_action_loading = False
            self._publish()

    async def start_process(self) -> bool:
        """Start a draft process (admin only)."""
        if not self._require_manage("start_process"):
            return False
        if self.status is not SelectionProcessStatus.DRAFT:
            return self._reject("start_process", "Only draft processes can be started")
        return await self._run_action(
            "start_process",
            lambda: self._api.start_process(self.process_id),
            lambda _: "Selection process started",
            "Failed to start selection process",
        )

    async def complete_turn(self) -> bool:
        """Complete the current turn (holder or admin)."""
        if self.status is not SelectionProcessStatus.ACTIVE:
            return self._reject("complete_turn", "Only active processes have turns to complete")
        if not (self.is_current_turn or self.can_manage):
            return self._reject(
                "complete_turn",
                "It is not your turn to complete",
                user_id=self.current_user.user_id,
            )

        def describe(result: CompleteTurnResult) -> str:
            if result.process_completed:
                return "Turn completed. The selection process is complete"
            if result.next_turn_user_name:
                return f"Turn completed. Next up: {result.next_turn_user_name}"
            return "Turn completed"

        return await self._run_action(
            "complete_turn",
            lambda: self._api.complete_turn(self.process_id),
            describe,
            "Failed to complete turn",
        )

    async def cancel_process(self, reason: str | None = None) -> bool:
        """Cancel an active process (admin only)."""
        if not self._require_manage("cancel_process"):
            return False
        if self.status is not SelectionProcessStatus.ACTIVE:
            return self._reject("cancel_process", "Only active processes can be cancelled")
        return await self._run_action(
            "cancel_process",
            lambda: self._api.cancel_process(self.process_id, reason),
            lambda _: "Selection process cancelled",
            "Failed to cancel selection process",
        )

    async def delete_process(self) -> bool:
        """Delete a draft or cancelled process (admin only).

        On success the view should close (``should_dismiss``).
        """
        if not self._require_manage("delete_process"):
            return False
        if self.status not in DELETABLE_STATUSES:
            return self._reject(
                "delete_process", "Only draft or cancelled processes can be deleted"
            )
        deleted = await self._run_action(
            "delete_process",
            lambda: self._api.delete_process(self.process_id),
            lambda _: "Selection process deleted",
            "Failed to delete selection process",
            reload=False,
        )
        if deleted:
            self.should_dismiss = True
            self._publish()
        return deleted

    async def save_dates(self, selection_start_date: date, selection_end_date: date) -> bool:
        """Change the selection window of an active process (admin only)."""
        if not self._require_manage("save_dates"):
            return False
        if self.status is not SelectionProcessStatus.ACTIVE:
            return self._reject("save_dates", "Dates can only be changed on active processes")
        if selection_start_date >= selection_end_date:
            return self._reject("save_dates", "Start date must be before end date")
        return await self._run_action(
            "save_dates",
            lambda: self._api.update_dates(
                self.process_id, selection_start_date, selection_end_date
            ),
            lambda _: "Selection dates updated",
            "Failed to update selection dates",
        )

    async def assign_routine_to_self(self, instance_id: str) -> bool:
        """Claim an unassigned routine instance during the user's turn."""
        if not self.can_select_routines:
            return self._reject(
                "assign_routine_to_self",
                "You can only choose routines during your turn",
                instance_id=instance_id,
            )
        instance = self._find_week_routine(instance_id)
        if instance is None:
            return self._reject(
                "assign_routine_to_self", "Routine not found", instance_id=instance_id
            )
        if instance.is_assigned:
            return self._reject(
                "assign_routine_to_self",
                "Routine is already assigned",
                instance_id=instance_id,
            )
        if instance.status is not RoutineInstanceStatus.SCHEDULED:
            return self._reject(
                "assign_routine_to_self",
                f"Cannot assign routine with status: {instance.status.value}",
                instance_id=instance_id,
            )
        if self.process is None or not self.process.contains_date(instance.scheduled_date):
            return self._reject(
                "assign_routine_to_self",
                "Routine is outside the selection period",
                instance_id=instance_id,
            )

        async def assign() -> str | None:
            result = await self._routines.assign_routine(
                instance_id,
                self.current_user.user_id,
                self.current_user.display_name,
            )
            if not result.success:
                raise RoutineAssignmentError(
                    instance_id, result.message or "assignment refused"
                )
            return result.message

        return await self._run_action(
            "assign_routine_to_self",
            assign,
            lambda message: message or f"{instance.template_name} assigned to you",
            "Failed to assign routine",
        )

    def _find_week_routine(self, instance_id: str) -> RoutineInstance | None:
        for instances in self.week_routines.values():
            for instance in instances:
                if instance.id == instance_id:
                    return instance
        return None
