"""Unit tests for selection process DTOs."""

from __future__ import annotations

from datetime import date

import pytest

from equiduty.application.dtos.selection_process import (
    CompleteTurnResult,
    CreateSelectionProcessInput,
    UpdateSelectionDatesInput,
    format_calendar_date,
)
from equiduty.application.services.base import user_facing_message
from equiduty.domain.errors import (
    BadRequestError,
    NotCurrentTurnError,
    SelectionProcessValidationError,
    ServerError,
)
from equiduty.domain.models.turn_order import SelectionAlgorithm, TurnOrderMember


class TestPayloads:
    """Test request serialization."""

    def test_calendar_date_format(self) -> None:
        """Dates are zero-padded yyyy-MM-dd."""
        assert format_calendar_date(date(2026, 3, 4)) == "2026-03-04"

    def test_description_included_when_set(self) -> None:
        """Non-empty descriptions are sent."""
        payload = CreateSelectionProcessInput(
            organization_id="org-1",
            stable_id="stable-1",
            name="March",
            selection_start_date=date(2026, 3, 1),
            selection_end_date=date(2026, 3, 8),
            algorithm=SelectionAlgorithm.QUOTA_BASED,
            member_order=(TurnOrderMember("u-anna", "Anna"),),
            description="Spring rotation",
        ).to_dict()

        assert payload["description"] == "Spring rotation"
        assert payload["algorithm"] == "quota_based"

    def test_update_dates(self) -> None:
        assert UpdateSelectionDatesInput(date(2026, 3, 2), date(2026, 3, 9)).to_dict() == {
            "selectionStartDate": "2026-03-02",
            "selectionEndDate": "2026-03-09",
        }


class TestCompleteTurnResult:
    """Test response parsing."""

    def test_from_dict(self) -> None:
        """Missing next turn fields are None."""
        result = CompleteTurnResult.from_dict({"success": True, "processCompleted": True})

        assert result.success
        assert result.process_completed
        assert result.next_turn_user_id is None

    def test_missing_completed_flag(self) -> None:
        with pytest.raises(KeyError):
            CompleteTurnResult.from_dict({"success": True})


class TestUserFacingMessage:
    """Test which backend errors reach the user verbatim."""

    def test_bad_request_passes_through(self) -> None:
        assert user_facing_message(BadRequestError("Too long"), "Failed") == "Too long"

    def test_domain_error_passes_through(self) -> None:
        error = NotCurrentTurnError("sp-1", "u-anna")

        assert user_facing_message(error, "Failed") == "It is not your turn to complete"

    def test_validation_error_hides_field_name(self) -> None:
        """Only the message is shown; the field stays available to callers."""
        error = SelectionProcessValidationError(
            "selection_start_date", "Start date cannot be in the past"
        )

        assert user_facing_message(error, "Failed") == "Start date cannot be in the past"
        assert error.field == "selection_start_date"

    def test_other_errors_use_fallback(self) -> None:
        assert user_facing_message(ServerError(500), "Failed") == "Failed"
        assert user_facing_message(RuntimeError("boom"), "Failed") == "Failed"
