"""
Pytest configuration and shared fixtures for EquiDuty selection tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for port fakes, InMemorySelectionBackend for behaviour
- Unit tests go in tests/unit/
"""

from datetime import date, datetime, timezone
from typing import Callable

import pytest

from equiduty.domain.models.selection_process import (
    SelectionProcess,
    SelectionProcessStatus,
    SelectionTurn,
    TurnStatus,
    build_turns_from_member_order,
)
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import TurnOrderMember

TODAY = date(2026, 3, 4)
NOW = datetime(2026, 3, 4, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from equiduty import __version__

    return __version__


@pytest.fixture
def today() -> date:
    """Fixed current date (a Wednesday)."""
    return TODAY


@pytest.fixture
def stable_members() -> list[StableMemberInfo]:
    """Anna, Bertil and Cecilia, in that order."""
    return [
        StableMemberInfo(user_id="u-anna", display_name="Anna", email="anna@example.com"),
        StableMemberInfo(user_id="u-bertil", display_name="Bertil", email="bertil@example.com"),
        StableMemberInfo(user_id="u-cecilia", display_name="Cecilia"),
    ]


@pytest.fixture
def make_process() -> Callable[..., SelectionProcess]:
    """Factory for selection processes with three members.

    Keyword arguments override SelectionProcess fields. ``completed``
    marks the first N turns completed; with status ACTIVE the next turn
    becomes active.
    """

    def _make(
        status: SelectionProcessStatus = SelectionProcessStatus.DRAFT,
        completed: int = 0,
        members: tuple[TurnOrderMember, ...] | None = None,
        **overrides: object,
    ) -> SelectionProcess:
        members = members or (
            TurnOrderMember("u-anna", "Anna", "anna@example.com"),
            TurnOrderMember("u-bertil", "Bertil", "bertil@example.com"),
            TurnOrderMember("u-cecilia", "Cecilia"),
        )
        turns: list[SelectionTurn] = []
        for turn in build_turns_from_member_order(members):
            if turn.order <= completed:
                turn = SelectionTurn(
                    user_id=turn.user_id,
                    user_name=turn.user_name,
                    user_email=turn.user_email,
                    order=turn.order,
                    status=TurnStatus.COMPLETED,
                    completed_at=NOW,
                )
            elif status is SelectionProcessStatus.ACTIVE and turn.order == completed + 1:
                turn = SelectionTurn(
                    user_id=turn.user_id,
                    user_name=turn.user_name,
                    user_email=turn.user_email,
                    order=turn.order,
                    status=TurnStatus.ACTIVE,
                )
            turns.append(turn)

        fields: dict[str, object] = {
            "id": "sp-1",
            "organization_id": "org-1",
            "stable_id": "stable-1",
            "name": "March routines",
            "selection_start_date": date(2026, 3, 1),
            "selection_end_date": date(2026, 3, 31),
            "turns": tuple(turns),
            "status": status,
            "created_by": "u-admin",
            "created_at": NOW,
            "updated_at": NOW,
        }
        fields.update(overrides)
        return SelectionProcess(**fields)  # type: ignore[arg-type]

    return _make
