"""Selection process creation wizard.

Drives the four-step creation flow:

    DETAILS -> MEMBERS -> ALGORITHM -> REVIEW -> create_process()

Each step has a gate that must hold before ``next_step()`` leaves it.
Entering MEMBERS loads the stable's members (once per stable); entering
REVIEW seeds a manual order or requests a computed one from the backend.

The review order is a tagged union (see ``equiduty.domain.models.turn_order``).
A computed order is tied to the inputs it was computed from, so changing
members, dates or algorithm after review makes it unusable until review is
entered again. Results of a superseded computation are discarded.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import IntEnum
from typing import Callable

from equiduty.application.dtos.selection_process import (
    ComputeTurnOrderInput,
    CreateSelectionProcessInput,
)
from equiduty.application.ports.selection_process_api import (
    SelectionProcessApiProtocol,
)
from equiduty.application.services.base import LoggingMixin, user_facing_message
from equiduty.application.services.observable import Observable
from equiduty.config.client_config import SelectionProcessRules
from equiduty.domain.errors.selection_process import MissingTurnOrderError
from equiduty.domain.models.selection_process import SelectionProcess
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import (
    DEFAULT_ALGORITHM,
    ComputedOrder,
    FailedOrder,
    ManualOrder,
    MissingOrder,
    PendingOrder,
    ReviewOrder,
    SelectionAlgorithm,
    TurnOrderMember,
    TurnOrderRequestKey,
)

DEFAULT_WINDOW_DAYS: int = 7


class WizardStep(IntEnum):
    """Wizard steps in order."""

    DETAILS = 0
    MEMBERS = 1
    ALGORITHM = 2
    REVIEW = 3


class CreateSelectionProcessWizard(Observable, LoggingMixin):
    """Controller for creating a selection process.

    State is read directly from attributes; views subscribe to be notified
    of changes. Async methods never raise for backend failures: they
    record a message and return.

    Attributes:
        current_step: Step being shown.
        selected_member_ids: Selected user IDs in selection order.
        selected_algorithm: Algorithm for the initial turn order.
        review_order: Order that would be submitted, or why there is none.
        available_members: Members of the stable, once loaded.
        is_loading_members: True while the member fetch is in flight.
        members_error: Message from the last failed member fetch.
        review_error: Message from the last failed computation.
        is_submitting: True while create_process() awaits the backend.
        error_message: Message from the last failed submission.
        created_process: Process returned by a successful submission.
        is_cancelled: True once cancel() discarded the draft.
    """

    def __init__(
        self,
        api: SelectionProcessApiProtocol,
        organization_id: str,
        stable_id: str,
        rules: SelectionProcessRules | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the wizard.

        Args:
            api: Backend for members, turn-order computation and creation.
            organization_id: Organization the process belongs to.
            stable_id: Stable whose members take turns.
            rules: Validation rules (defaults apply if None).
            today: Provider of the current date, for the default window.
        """
        self._api = api
        self.organization_id = organization_id
        self.stable_id = stable_id
        self._rules = rules or SelectionProcessRules()
        self._today = today
        self._init_logger(component="selection_process_wizard")
        self._init_observable()

        self._members_loaded_for: str | None = None
        self.available_members: list[StableMemberInfo] = []
        self.is_loading_members = False
        self.members_error: str | None = None
        self._reset_draft()

    def _reset_draft(self) -> None:
        start = self._today()
        self.current_step = WizardStep.DETAILS
        self._name = ""
        self._description = ""
        self._start_date = start
        self._end_date = start + timedelta(days=DEFAULT_WINDOW_DAYS)
        self.selected_member_ids: list[str] = []
        self.selected_algorithm: SelectionAlgorithm = DEFAULT_ALGORITHM
        self.review_order: ReviewOrder = MissingOrder()
        self.review_error: str | None = None
        self.is_submitting = False
        self.error_message: str | None = None
        self.created_process: SelectionProcess | None = None
        self.is_cancelled = False

    # ------------------------------------------------------------------
    # Step 0: details
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value
        self._publish()

    @property
    def description(self) -> str:
        return self._description

    @description.setter
    def description(self, value: str) -> None:
        self._description = value
        self._publish()

    @property
    def start_date(self) -> date:
        return self._start_date

    @start_date.setter
    def start_date(self, value: date) -> None:
        self._start_date = value
        self._publish()

    @property
    def end_date(self) -> date:
        return self._end_date

    @end_date.setter
    def end_date(self, value: date) -> None:
        self._end_date = value
        self._publish()

    @property
    def field_errors(self) -> dict[str, str]:
        """Per-field validation messages for the details step."""
        errors: dict[str, str] = {}
        name = self._name.strip()
        if not name:
            errors["name"] = "Name is required"
        elif len(name) > self._rules.name_max_length:
            errors["name"] = (
                f"Name must be at most {self._rules.name_max_length} characters"
            )

        if len(self._description) > self._rules.description_max_length:
            errors["description"] = (
                "Description must be at most "
                f"{self._rules.description_max_length} characters"
            )

        if self._start_date >= self._end_date:
            errors["end_date"] = "End date must be after start date"
        elif (self._end_date - self._start_date).days > self._rules.max_window_days:
            errors["end_date"] = (
                f"Selection window must be at most {self._rules.max_window_days} days"
            )
        return errors

    @property
    def can_proceed_from_details(self) -> bool:
        return not self.field_errors

    # ------------------------------------------------------------------
    # Step 1: members
    # ------------------------------------------------------------------

    async def load_members(self) -> None:
        """Fetch the stable's members unless already loaded for this stable.

        A failed fetch is not cached; entering the step again retries.
        """
        if self._members_loaded_for == self.stable_id or self.is_loading_members:
            return

        log = self._log_operation("load_members", stable_id=self.stable_id)
        self.is_loading_members = True
        self.members_error = None
        self._publish()
        try:
            members = await self._api.get_stable_members(self.stable_id)
        except Exception as exc:
            log.error("members_load_failed", error=str(exc), exc_info=True)
            self.members_error = "Failed to load stable members"
        else:
            self.available_members = list(members)
            self._members_loaded_for = self.stable_id
            log.info("members_loaded", member_count=len(self.available_members))
        finally:
            self.is_loading_members = False
            self._publish()

    @property
    def selected_members(self) -> list[StableMemberInfo]:
        """Selected members in selection order."""
        by_id = {m.user_id: m for m in self.available_members}
        return [by_id[uid] for uid in self.selected_member_ids if uid in by_id]

    def is_member_selected(self, user_id: str) -> bool:
        return user_id in self.selected_member_ids

    def toggle_member(self, user_id: str) -> None:
        if user_id in self.selected_member_ids:
            self.selected_member_ids.remove(user_id)
        else:
            self.selected_member_ids.append(user_id)
        self._publish()

    def select_all_members(self) -> None:
        """Select every available member, keeping existing selection order."""
        for member in self.available_members:
            if member.user_id not in self.selected_member_ids:
                self.selected_member_ids.append(member.user_id)
        self._publish()

    def deselect_all_members(self) -> None:
        self.selected_member_ids.clear()
        self._publish()

    @property
    def can_proceed_from_members(self) -> bool:
        return len(self.selected_member_ids) >= self._rules.min_members

    # ------------------------------------------------------------------
    # Step 2: algorithm
    # ------------------------------------------------------------------

    def select_algorithm(self, algorithm: SelectionAlgorithm) -> None:
        self.selected_algorithm = algorithm
        self._publish()

    @property
    def can_proceed_from_algorithm(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Step 3: review
    # ------------------------------------------------------------------

    def _request_key(self) -> TurnOrderRequestKey:
        return TurnOrderRequestKey(
            algorithm=self.selected_algorithm,
            member_ids=tuple(self.selected_member_ids),
            selection_start_date=self._start_date,
            selection_end_date=self._end_date,
        )

    def _selection_as_turn_order(self) -> tuple[TurnOrderMember, ...]:
        return tuple(m.as_turn_order_member() for m in self.selected_members)

    def _manual_order_matches_selection(self, order: ManualOrder) -> bool:
        return sorted(m.user_id for m in order.members) == sorted(self.selected_member_ids)

    async def enter_review(self) -> None:
        """Prepare the review order for the current inputs.

        Manual: seed from the selection order, keeping an existing
        arrangement if the same members are still selected.
        Otherwise: compute, unless a result or request for the same inputs
        already exists.
        """
        if self.selected_algorithm.is_manual:
            current = self.review_order
            if not (
                isinstance(current, ManualOrder)
                and self._manual_order_matches_selection(current)
            ):
                self.review_order = ManualOrder(members=self._selection_as_turn_order())
            self.review_error = None
            self._publish()
            return

        key = self._request_key()
        current = self.review_order
        if isinstance(current, (ComputedOrder, PendingOrder)) and current.request_key == key:
            return
        await self.compute_turn_order()

    async def compute_turn_order(self) -> None:
        """Request a computed order for the current inputs.

        The result is applied only if no newer request or input change
        superseded it.
        """
        key = self._request_key()
        log = self._log_operation(
            "compute_turn_order",
            stable_id=self.stable_id,
            algorithm=key.algorithm.value,
            member_count=len(key.member_ids),
        )
        self.review_order = PendingOrder(request_key=key)
        self.review_error = None
        self._publish()

        request = ComputeTurnOrderInput(
            stable_id=self.stable_id,
            algorithm=key.algorithm,
            member_ids=key.member_ids,
            selection_start_date=key.selection_start_date,
            selection_end_date=key.selection_end_date,
        )
        try:
            order = await self._api.compute_turn_order(request)
        except Exception as exc:
            if not self._is_pending_for(key):
                log.info("stale_turn_order_failure_discarded")
                return
            log.error("turn_order_computation_failed", error=str(exc), exc_info=True)
            message = user_facing_message(exc, "Failed to compute turn order")
            self.review_order = FailedOrder(message=message, request_key=key)
            self.review_error = message
        else:
            if not self._is_pending_for(key):
                log.info("stale_turn_order_discarded")
                return
            self.review_order = ComputedOrder(order=order, request_key=key)
            log.info("turn_order_computed", turn_count=len(order.turns))
        self._publish()

    def _is_pending_for(self, key: TurnOrderRequestKey) -> bool:
        current = self.review_order
        return isinstance(current, PendingOrder) and current.request_key == key

    def move_member(self, from_index: int, to_index: int) -> None:
        """Move a member within a manual review order.

        Out-of-range indexes and non-manual orders are ignored.
        """
        current = self.review_order
        if not isinstance(current, ManualOrder):
            return
        members = list(current.members)
        if not (0 <= from_index < len(members) and 0 <= to_index < len(members)):
            return
        members.insert(to_index, members.pop(from_index))
        self.review_order = ManualOrder(members=tuple(members))
        self._publish()

    @property
    def review_members(self) -> tuple[TurnOrderMember, ...]:
        """Members as listed on the review step, first turn first."""
        current = self.review_order
        if isinstance(current, ManualOrder):
            return current.members
        if isinstance(current, ComputedOrder):
            return current.order.turns
        return ()

    @property
    def is_computing_order(self) -> bool:
        return isinstance(self.review_order, PendingOrder)

    @property
    def can_submit(self) -> bool:
        return not (
            self.is_submitting
            or isinstance(self.review_order, (PendingOrder, FailedOrder))
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def can_proceed_from(self, step: WizardStep) -> bool:
        if step is WizardStep.DETAILS:
            return self.can_proceed_from_details
        if step is WizardStep.MEMBERS:
            return self.can_proceed_from_members
        if step is WizardStep.ALGORITHM:
            return self.can_proceed_from_algorithm
        return False

    async def next_step(self) -> bool:
        """Advance one step if the current step's gate holds."""
        if self.current_step is WizardStep.REVIEW:
            return False
        if not self.can_proceed_from(self.current_step):
            return False
        await self._enter_step(WizardStep(self.current_step + 1))
        return True

    async def previous_step(self) -> bool:
        if self.current_step is WizardStep.DETAILS:
            return False
        await self._enter_step(WizardStep(self.current_step - 1))
        return True

    async def go_to_step(self, step: WizardStep) -> None:
        """Jump directly to ``step``, running its entry effects."""
        await self._enter_step(step)

    async def _enter_step(self, step: WizardStep) -> None:
        self.current_step = step
        self._publish()
        if step is WizardStep.MEMBERS:
            await self.load_members()
        elif step is WizardStep.REVIEW:
            await self.enter_review()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _resolve_member_order(self) -> tuple[TurnOrderMember, ...]:
        """Pick the member order to submit.

        Raises:
            MissingTurnOrderError: If no usable order exists and rules are strict.
        """
        current = self.review_order
        if self.selected_algorithm.is_manual:
            if isinstance(current, ManualOrder) and self._manual_order_matches_selection(
                current
            ):
                return current.members
        elif isinstance(current, ComputedOrder) and current.request_key == self._request_key():
            return current.order.turns

        if self._rules.strict_turn_order:
            raise MissingTurnOrderError(self.selected_algorithm.value)

        self._log_operation(
            "create_process",
            stable_id=self.stable_id,
            algorithm=self.selected_algorithm.value,
            review_order=type(current).__name__,
        ).warning("turn_order_missing_using_selection_order")
        return self._selection_as_turn_order()

    async def create_process(self) -> bool:
        """Submit the draft.

        On success the draft is reset and the new process is kept in
        ``created_process``. On failure the draft stays for another attempt.

        Returns:
            True if the backend created the process (see created_process).
        """
        if not self.can_submit:
            return False

        log = self._log_operation(
            "create_process",
            stable_id=self.stable_id,
            algorithm=self.selected_algorithm.value,
        )
        if not (self.can_proceed_from_details and self.can_proceed_from_members):
            self.error_message = "Please complete all required fields"
            self._publish()
            return False

        try:
            member_order = self._resolve_member_order()
        except MissingTurnOrderError as exc:
            log.warning("turn_order_missing", review_order=type(self.review_order).__name__)
            self.error_message = str(exc)
            self._publish()
            return False

        request = CreateSelectionProcessInput(
            organization_id=self.organization_id,
            stable_id=self.stable_id,
            name=self._name.strip(),
            description=self._description.strip() or None,
            selection_start_date=self._start_date,
            selection_end_date=self._end_date,
            algorithm=self.selected_algorithm,
            member_order=member_order,
        )

        self.is_submitting = True
        self.error_message = None
        self._publish()
        try:
            process = await self._api.create_process(request)
        except Exception as exc:
            log.error("process_creation_failed", error=str(exc), exc_info=True)
            self.error_message = user_facing_message(
                exc, "Failed to create selection process"
            )
            return False
        else:
            self._reset_draft()
            self.created_process = process
            log.info("process_created", process_id=process.id, turn_count=len(member_order))
            return True
        finally:
            self.is_submitting = False
            self._publish()

    def cancel(self) -> None:
        """Discard the draft. The member cache is kept."""
        self._log_operation("cancel", stable_id=self.stable_id).info("wizard_cancelled")
        self._reset_draft()
        self.is_cancelled = True
        self._publish()
