"""Selection process DTOs for the application layer.

Request and response objects exchanged with the backend collaborator.
Request DTOs serialize themselves to the camelCase JSON payloads the
REST backend expects; selection window dates travel as calendar-date
strings (``yyyy-MM-dd``), never timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from equiduty.domain.models.turn_order import SelectionAlgorithm, TurnOrderMember

CALENDAR_DATE_FORMAT = "%Y-%m-%d"


def format_calendar_date(value: date) -> str:
    """Serialize a date as ``yyyy-MM-dd``."""
    return value.strftime(CALENDAR_DATE_FORMAT)


def _member_to_dict(member: TurnOrderMember) -> dict[str, str]:
    return {
        "userId": member.user_id,
        "userName": member.user_name,
        "userEmail": member.user_email,
    }


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in user the controllers act on behalf of.

    Attributes:
        user_id: User ID.
        display_name: Name written on claimed routines.
        organization_id: Organization whose permissions apply.
        email: Email address, if known.
    """

    user_id: str
    display_name: str
    organization_id: str
    email: str | None = None


@dataclass(frozen=True)
class ComputeTurnOrderInput:
    """Request to compute a turn order for a non-manual algorithm."""

    stable_id: str
    algorithm: SelectionAlgorithm
    member_ids: tuple[str, ...]
    selection_start_date: date
    selection_end_date: date

    def to_dict(self) -> dict[str, Any]:
        """Convert to API payload dict."""
        return {
            "stableId": self.stable_id,
            "algorithm": self.algorithm.value,
            "memberIds": list(self.member_ids),
            "selectionStartDate": format_calendar_date(self.selection_start_date),
            "selectionEndDate": format_calendar_date(self.selection_end_date),
        }


@dataclass(frozen=True)
class CreateSelectionProcessInput:
    """Request to create a draft selection process.

    ``member_order`` is the final turn order; turn N is ``member_order[N-1]``.
    """

    organization_id: str
    stable_id: str
    name: str
    selection_start_date: date
    selection_end_date: date
    algorithm: SelectionAlgorithm
    member_order: tuple[TurnOrderMember, ...]
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to API payload dict.

        ``description`` is omitted when empty.
        """
        payload: dict[str, Any] = {
            "organizationId": self.organization_id,
            "stableId": self.stable_id,
            "name": self.name,
            "selectionStartDate": format_calendar_date(self.selection_start_date),
            "selectionEndDate": format_calendar_date(self.selection_end_date),
            "algorithm": self.algorithm.value,
            "memberOrder": [_member_to_dict(m) for m in self.member_order],
        }
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True)
class UpdateSelectionDatesInput:
    """Request to change the selection window of an active process."""

    selection_start_date: date
    selection_end_date: date

    def to_dict(self) -> dict[str, str]:
        return {
            "selectionStartDate": format_calendar_date(self.selection_start_date),
            "selectionEndDate": format_calendar_date(self.selection_end_date),
        }


@dataclass(frozen=True)
class CompleteTurnResult:
    """Response from completing the current turn.

    Attributes:
        success: Whether the backend accepted the completion.
        next_turn_user_id: Holder of the new current turn, if any.
        next_turn_user_name: Their display name.
        process_completed: True if that was the last incomplete turn.
    """

    success: bool
    process_completed: bool
    next_turn_user_id: str | None = None
    next_turn_user_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompleteTurnResult:
        """Create from API response dict."""
        return cls(
            success=bool(data.get("success", True)),
            process_completed=bool(data["processCompleted"]),
            next_turn_user_id=data.get("nextTurnUserId"),
            next_turn_user_name=data.get("nextTurnUserName"),
        )


@dataclass(frozen=True)
class AssignRoutineResult:
    """Response from claiming a routine instance."""

    success: bool
    message: str | None = None
