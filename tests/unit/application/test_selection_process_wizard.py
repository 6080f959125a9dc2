"""Unit tests for CreateSelectionProcessWizard.

Tests:
- Step gates (details, members) and navigation
- Member loading (once per stable, failures retried)
- Manual and computed review orders
- Stale computation results are discarded
- Submission in strict and lenient turn-order modes
- Submission failures and cancellation
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from equiduty.application.services.selection_process_wizard import (
    DEFAULT_WINDOW_DAYS,
    CreateSelectionProcessWizard,
    WizardStep,
)
from equiduty.config.client_config import SelectionProcessRules
from equiduty.domain.errors.api import BadRequestError, ServerError
from equiduty.domain.models.selection_process import SelectionProcessStatus
from equiduty.domain.models.turn_order import (
    ComputedOrder,
    FailedOrder,
    ManualOrder,
    MissingOrder,
    PendingOrder,
    SelectionAlgorithm,
)
from equiduty.infrastructure.stubs.in_memory_selection_backend import (
    InMemorySelectionBackend,
)

TODAY = date(2026, 3, 4)


@pytest.fixture
def backend(stable_members) -> InMemorySelectionBackend:
    """Backend acting as a manager, with three stable members."""
    backend = InMemorySelectionBackend(
        acting_user_id="u-admin", managers={"u-admin"}, today=lambda: TODAY
    )
    backend.add_stable_members("stable-1", stable_members)
    return backend


@pytest.fixture
def wizard(backend: InMemorySelectionBackend) -> CreateSelectionProcessWizard:
    """Wizard for stable-1 with default rules."""
    return CreateSelectionProcessWizard(
        api=backend,
        organization_id="org-1",
        stable_id="stable-1",
        today=lambda: TODAY,
    )


async def _advance_to_review(
    wizard: CreateSelectionProcessWizard,
    member_ids: list[str],
    algorithm: SelectionAlgorithm = SelectionAlgorithm.MANUAL,
) -> None:
    wizard.name = "March routines"
    assert await wizard.next_step()
    for user_id in member_ids:
        wizard.toggle_member(user_id)
    assert await wizard.next_step()
    wizard.select_algorithm(algorithm)
    assert await wizard.next_step()
    assert wizard.current_step is WizardStep.REVIEW


class TestInitialState:
    """Test the wizard's starting draft."""

    def test_defaults(self, wizard: CreateSelectionProcessWizard) -> None:
        """The draft starts empty with a one-week window from today."""
        assert wizard.current_step is WizardStep.DETAILS
        assert wizard.name == ""
        assert wizard.start_date == TODAY
        assert wizard.end_date == TODAY + timedelta(days=DEFAULT_WINDOW_DAYS)
        assert wizard.selected_algorithm is SelectionAlgorithm.MANUAL
        assert isinstance(wizard.review_order, MissingOrder)
        assert wizard.created_process is None


class TestDetailsGate:
    """Test the details step gate."""

    def test_empty_name_blocks(self, wizard: CreateSelectionProcessWizard) -> None:
        """A blank name is required."""
        wizard.name = "   "

        assert wizard.field_errors["name"] == "Name is required"
        assert not wizard.can_proceed_from_details

    def test_short_name_allowed(self, wizard: CreateSelectionProcessWizard) -> None:
        """Any non-blank name within the limit passes."""
        wizard.name = "AB"

        assert wizard.field_errors == {}
        assert wizard.can_proceed_from_details

    def test_long_name_blocks(self, wizard: CreateSelectionProcessWizard) -> None:
        """Names over 100 characters are rejected."""
        wizard.name = "x" * 101

        assert "name" in wizard.field_errors

    def test_long_description_blocks(self, wizard: CreateSelectionProcessWizard) -> None:
        """Descriptions over 500 characters are rejected."""
        wizard.name = "March"
        wizard.description = "d" * 501

        assert "description" in wizard.field_errors
        assert not wizard.can_proceed_from_details

    @pytest.mark.parametrize("days", [0, -1])
    def test_end_not_after_start_blocks(
        self, wizard: CreateSelectionProcessWizard, days: int
    ) -> None:
        """The end date must be strictly after the start date."""
        wizard.name = "March"
        wizard.end_date = wizard.start_date + timedelta(days=days)

        assert wizard.field_errors == {"end_date": "End date must be after start date"}

    def test_window_longer_than_rules_blocks(self, backend) -> None:
        """The configured max window applies."""
        wizard = CreateSelectionProcessWizard(
            api=backend,
            organization_id="org-1",
            stable_id="stable-1",
            rules=SelectionProcessRules(max_window_days=10),
            today=lambda: TODAY,
        )
        wizard.name = "March"
        wizard.end_date = TODAY + timedelta(days=11)

        assert "end_date" in wizard.field_errors

    @pytest.mark.asyncio
    async def test_next_step_refused_when_invalid(
        self, wizard: CreateSelectionProcessWizard
    ) -> None:
        """next_step() stays on details while the gate fails."""
        assert not await wizard.next_step()
        assert wizard.current_step is WizardStep.DETAILS

    def test_setters_publish(self, wizard: CreateSelectionProcessWizard) -> None:
        """Subscribers hear about every field change."""
        calls: list[int] = []
        wizard.subscribe(lambda: calls.append(1))

        wizard.name = "March"
        wizard.end_date = TODAY + timedelta(days=3)

        assert len(calls) == 2


class TestMembersStep:
    """Test member loading and selection."""

    @pytest.mark.asyncio
    async def test_entering_members_loads_once(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Members are fetched on first entry only."""
        wizard.name = "March"
        await wizard.next_step()
        await wizard.previous_step()
        await wizard.next_step()

        assert wizard.current_step is WizardStep.MEMBERS
        assert [m.user_id for m in wizard.available_members] == [
            "u-anna",
            "u-bertil",
            "u-cecilia",
        ]
        assert len(backend.get_operations_by_type("get_stable_members")) == 1

    @pytest.mark.asyncio
    async def test_failed_load_is_retried(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """A failed fetch sets an error and is not cached."""
        backend.set_error_on_next_call(ServerError(503))

        await wizard.go_to_step(WizardStep.MEMBERS)

        assert wizard.members_error == "Failed to load stable members"
        assert wizard.available_members == []
        assert not wizard.is_loading_members

        await wizard.go_to_step(WizardStep.MEMBERS)

        assert wizard.members_error is None
        assert len(wizard.available_members) == 3

    @pytest.mark.parametrize(
        ("count", "allowed"), [(0, False), (1, False), (2, True), (3, True)]
    )
    @pytest.mark.asyncio
    async def test_minimum_members_gate(
        self, wizard: CreateSelectionProcessWizard, count: int, allowed: bool
    ) -> None:
        """At least two members must be selected."""
        await wizard.go_to_step(WizardStep.MEMBERS)
        for member in wizard.available_members[:count]:
            wizard.toggle_member(member.user_id)

        assert wizard.can_proceed_from_members is allowed
        assert await wizard.next_step() is allowed

    @pytest.mark.asyncio
    async def test_selection_order_is_kept(
        self, wizard: CreateSelectionProcessWizard
    ) -> None:
        """Selected members are listed in the order they were picked."""
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.toggle_member("u-cecilia")
        wizard.toggle_member("u-anna")

        assert [m.user_id for m in wizard.selected_members] == ["u-cecilia", "u-anna"]
        assert wizard.is_member_selected("u-anna")

    @pytest.mark.asyncio
    async def test_toggle_deselects(self, wizard: CreateSelectionProcessWizard) -> None:
        """Toggling twice removes the member."""
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.toggle_member("u-anna")
        wizard.toggle_member("u-anna")

        assert wizard.selected_member_ids == []

    @pytest.mark.asyncio
    async def test_select_and_deselect_all(
        self, wizard: CreateSelectionProcessWizard
    ) -> None:
        """Select all appends missing members after existing picks."""
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.toggle_member("u-cecilia")

        wizard.select_all_members()
        assert wizard.selected_member_ids == ["u-cecilia", "u-anna", "u-bertil"]

        wizard.deselect_all_members()
        assert wizard.selected_member_ids == []


class TestManualReview:
    """Test manual review orders."""

    @pytest.mark.asyncio
    async def test_review_seeds_selection_order(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Manual review starts from the selection order without a backend call."""
        await _advance_to_review(wizard, ["u-bertil", "u-anna", "u-cecilia"])

        assert isinstance(wizard.review_order, ManualOrder)
        assert [m.user_id for m in wizard.review_members] == [
            "u-bertil",
            "u-anna",
            "u-cecilia",
        ]
        assert backend.get_operations_by_type("compute_turn_order") == []

    @pytest.mark.asyncio
    async def test_move_member(self, wizard: CreateSelectionProcessWizard) -> None:
        """Members can be moved within the manual order."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil", "u-cecilia"])

        wizard.move_member(2, 0)

        assert [m.user_id for m in wizard.review_members] == [
            "u-cecilia",
            "u-anna",
            "u-bertil",
        ]

    @pytest.mark.asyncio
    async def test_move_member_out_of_range_ignored(
        self, wizard: CreateSelectionProcessWizard
    ) -> None:
        """Bad indexes leave the order as it was."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])
        before = wizard.review_order

        wizard.move_member(0, 5)
        wizard.move_member(-1, 0)

        assert wizard.review_order == before

    @pytest.mark.asyncio
    async def test_arrangement_kept_when_reentering(
        self, wizard: CreateSelectionProcessWizard
    ) -> None:
        """Going back and forth keeps a rearranged order for the same members."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])
        wizard.move_member(1, 0)

        await wizard.previous_step()
        await wizard.next_step()

        assert [m.user_id for m in wizard.review_members] == ["u-bertil", "u-anna"]

    @pytest.mark.asyncio
    async def test_arrangement_reset_when_members_change(
        self, wizard: CreateSelectionProcessWizard
    ) -> None:
        """A different member set reseeds the manual order."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])
        wizard.move_member(1, 0)

        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.toggle_member("u-cecilia")
        await wizard.go_to_step(WizardStep.REVIEW)

        assert [m.user_id for m in wizard.review_members] == [
            "u-anna",
            "u-bertil",
            "u-cecilia",
        ]


class TestComputedReview:
    """Test computed review orders."""

    @pytest.mark.asyncio
    async def test_review_computes_order(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Non-manual algorithms request a computed order."""
        backend.set_member_points("stable-1", {"u-anna": 9, "u-bertil": 1, "u-cecilia": 5})

        await _advance_to_review(
            wizard,
            ["u-anna", "u-bertil", "u-cecilia"],
            SelectionAlgorithm.POINTS_BALANCE,
        )

        assert isinstance(wizard.review_order, ComputedOrder)
        assert [m.user_id for m in wizard.review_members] == [
            "u-bertil",
            "u-cecilia",
            "u-anna",
        ]
        assert not wizard.is_computing_order
        assert wizard.can_submit

    @pytest.mark.asyncio
    async def test_same_inputs_not_recomputed(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Re-entering review with unchanged inputs reuses the result."""
        await _advance_to_review(
            wizard, ["u-anna", "u-bertil"], SelectionAlgorithm.FAIR_ROTATION
        )

        await wizard.previous_step()
        await wizard.next_step()

        assert len(backend.get_operations_by_type("compute_turn_order")) == 1

    @pytest.mark.asyncio
    async def test_changed_inputs_recomputed(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Changing the algorithm triggers a new computation on entry."""
        await _advance_to_review(
            wizard, ["u-anna", "u-bertil"], SelectionAlgorithm.FAIR_ROTATION
        )

        await wizard.previous_step()
        wizard.select_algorithm(SelectionAlgorithm.QUOTA_BASED)
        await wizard.next_step()

        assert len(backend.get_operations_by_type("compute_turn_order")) == 2
        assert isinstance(wizard.review_order, ComputedOrder)
        assert wizard.review_order.order.algorithm is SelectionAlgorithm.QUOTA_BASED

    @pytest.mark.asyncio
    async def test_failure_blocks_submission(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """A failed computation is shown and submission is refused."""
        wizard.name = "March"
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.select_all_members()
        wizard.select_algorithm(SelectionAlgorithm.FAIR_ROTATION)
        backend.set_error_on_next_call(ServerError(500))

        await wizard.go_to_step(WizardStep.REVIEW)

        assert isinstance(wizard.review_order, FailedOrder)
        assert wizard.review_error == "Failed to compute turn order"
        assert not wizard.can_submit
        assert not await wizard.create_process()
        assert backend.get_operations_by_type("create_process") == []

    @pytest.mark.asyncio
    async def test_backend_validation_message_shown(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Validation refusals from the backend are shown verbatim."""
        wizard.name = "March"
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.select_all_members()
        wizard.select_algorithm(SelectionAlgorithm.QUOTA_BASED)
        backend.set_error_on_next_call(BadRequestError("No routines in the window"))

        await wizard.go_to_step(WizardStep.REVIEW)

        assert wizard.review_error == "No routines in the window"

    @pytest.mark.asyncio
    async def test_retry_after_failure(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """compute_turn_order() can be retried explicitly."""
        wizard.name = "March"
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.select_all_members()
        wizard.select_algorithm(SelectionAlgorithm.FAIR_ROTATION)
        backend.set_error_on_next_call(ServerError(500))
        await wizard.go_to_step(WizardStep.REVIEW)

        await wizard.compute_turn_order()

        assert isinstance(wizard.review_order, ComputedOrder)
        assert wizard.review_error is None

    @pytest.mark.asyncio
    async def test_stale_result_discarded(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Only the result for the latest inputs is applied."""
        wizard.name = "March"
        await wizard.go_to_step(WizardStep.MEMBERS)
        wizard.select_all_members()
        wizard.select_algorithm(SelectionAlgorithm.FAIR_ROTATION)

        backend.hold_calls()
        first = asyncio.create_task(wizard.go_to_step(WizardStep.REVIEW))
        await asyncio.sleep(0)
        assert isinstance(wizard.review_order, PendingOrder)

        wizard.select_algorithm(SelectionAlgorithm.QUOTA_BASED)
        second = asyncio.create_task(wizard.compute_turn_order())
        await asyncio.sleep(0)
        backend.release_calls()
        await asyncio.gather(first, second)

        assert isinstance(wizard.review_order, ComputedOrder)
        assert wizard.review_order.order.algorithm is SelectionAlgorithm.QUOTA_BASED
        assert wizard.review_order.request_key.algorithm is SelectionAlgorithm.QUOTA_BASED


class TestSubmission:
    """Test create_process()."""

    @pytest.mark.asyncio
    async def test_manual_order_submitted(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Manual A, B, C becomes turns 1, 2, 3 in a draft process."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil", "u-cecilia"])

        assert await wizard.create_process()

        process = wizard.created_process
        assert process is not None
        assert process.status is SelectionProcessStatus.DRAFT
        assert [(t.user_id, t.order) for t in process.turns] == [
            ("u-anna", 1),
            ("u-bertil", 2),
            ("u-cecilia", 3),
        ]
        assert process.name == "March routines"
        assert process.algorithm is SelectionAlgorithm.MANUAL
        assert not wizard.is_submitting

    @pytest.mark.asyncio
    async def test_successful_submit_discards_draft(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """After creation the wizard starts over; the created process remains."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])

        assert await wizard.create_process()

        assert wizard.created_process is not None
        assert wizard.current_step is WizardStep.DETAILS
        assert wizard.name == ""
        assert wizard.selected_member_ids == []
        assert isinstance(wizard.review_order, MissingOrder)
        assert wizard.error_message is None
        assert not wizard.is_cancelled
        assert [m.user_id for m in wizard.available_members] == [
            "u-anna",
            "u-bertil",
            "u-cecilia",
        ]

    @pytest.mark.asyncio
    async def test_rearranged_order_submitted(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """The submitted order is the arranged one."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil", "u-cecilia"])
        wizard.move_member(0, 2)

        await wizard.create_process()

        op = backend.get_operations_by_type("create_process")[0]
        assert op.details["member_ids"] == ["u-bertil", "u-cecilia", "u-anna"]

    @pytest.mark.asyncio
    async def test_computed_order_submitted(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """A valid computed order is submitted as is."""
        backend.set_member_points("stable-1", {"u-anna": 9, "u-bertil": 1})
        await _advance_to_review(
            wizard, ["u-anna", "u-bertil"], SelectionAlgorithm.POINTS_BALANCE
        )

        assert await wizard.create_process()

        assert wizard.created_process is not None
        assert [t.user_id for t in wizard.created_process.turns] == ["u-bertil", "u-anna"]

    @pytest.mark.asyncio
    async def test_stale_computed_order_refused_in_strict_mode(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """A computed order for other inputs is never silently replaced."""
        await _advance_to_review(
            wizard, ["u-anna", "u-bertil", "u-cecilia"], SelectionAlgorithm.FAIR_ROTATION
        )
        wizard.toggle_member("u-cecilia")

        assert not await wizard.create_process()

        assert wizard.error_message is not None
        assert "No turn order available" in wizard.error_message
        assert backend.get_operations_by_type("create_process") == []

    @pytest.mark.asyncio
    async def test_selection_order_used_in_lenient_mode(
        self, backend: InMemorySelectionBackend
    ) -> None:
        """Lenient rules fall back to the selection order."""
        wizard = CreateSelectionProcessWizard(
            api=backend,
            organization_id="org-1",
            stable_id="stable-1",
            rules=SelectionProcessRules(strict_turn_order=False),
            today=lambda: TODAY,
        )
        await _advance_to_review(
            wizard, ["u-cecilia", "u-anna", "u-bertil"], SelectionAlgorithm.FAIR_ROTATION
        )
        wizard.toggle_member("u-bertil")

        assert await wizard.create_process()

        assert wizard.created_process is not None
        assert [t.user_id for t in wizard.created_process.turns] == [
            "u-cecilia",
            "u-anna",
        ]

    @pytest.mark.asyncio
    async def test_incomplete_fields_refused(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Jumping past invalid steps does not allow submission."""
        await wizard.go_to_step(WizardStep.REVIEW)

        assert not await wizard.create_process()

        assert wizard.error_message == "Please complete all required fields"
        assert backend.get_operations_by_type("create_process") == []

    @pytest.mark.asyncio
    async def test_backend_failure_keeps_draft(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """A failed submission reports a generic message and can be retried."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])
        backend.set_error_on_next_call(ServerError(503))

        assert not await wizard.create_process()

        assert wizard.error_message == "Failed to create selection process"
        assert wizard.created_process is None
        assert wizard.name == "March routines"
        assert await wizard.create_process()
        assert wizard.error_message is None

    @pytest.mark.asyncio
    async def test_permission_refusal_message_shown(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """Domain refusals from the backend carry their own message."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])
        backend.revoke_manage("u-admin")

        assert not await wizard.create_process()

        assert wizard.error_message == (
            "User u-admin is not permitted to create selection processes"
        )


class TestCancel:
    """Test cancel()."""

    @pytest.mark.asyncio
    async def test_cancel_resets_draft_and_keeps_members(
        self, wizard: CreateSelectionProcessWizard, backend: InMemorySelectionBackend
    ) -> None:
        """The draft is discarded but members are not fetched again."""
        await _advance_to_review(wizard, ["u-anna", "u-bertil"])

        wizard.cancel()

        assert wizard.is_cancelled
        assert wizard.current_step is WizardStep.DETAILS
        assert wizard.name == ""
        assert wizard.selected_member_ids == []
        assert isinstance(wizard.review_order, MissingOrder)
        assert len(wizard.available_members) == 3

        wizard.name = "Again"
        await wizard.next_step()
        assert len(backend.get_operations_by_type("get_stable_members")) == 1
