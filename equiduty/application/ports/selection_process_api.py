"""Selection process backend port.

The REST backend is the source of truth for selection processes. It
enforces the status transition matrix and permission checks; controllers
treat every call here as a request that may be refused.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from equiduty.application.dtos.selection_process import (
    CompleteTurnResult,
    ComputeTurnOrderInput,
    CreateSelectionProcessInput,
)
from equiduty.domain.models.selection_process import (
    SelectionProcess,
    SelectionProcessStatus,
    SelectionProcessSummary,
)
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import ComputedTurnOrder


class SelectionProcessApiProtocol(Protocol):
    """Protocol for selection process backend operations.

    Implementations:
    - HttpSelectionProcessApi: REST adapter (production)
    - InMemorySelectionBackend: in-process backend (development/testing)

    Every method may raise an EquiDutyApiError (HTTP adapter) or a domain
    SelectionProcessError (in-memory backend) when the backend refuses.
    """

    async def list_processes(
        self, stable_id: str, status: SelectionProcessStatus | None = None
    ) -> list[SelectionProcessSummary]:
        """List processes for a stable, newest first.

        Args:
            stable_id: Stable whose processes to list.
            status: Only list processes in this status, if given.
        """
        ...

    async def get_process(self, process_id: str) -> SelectionProcess:
        """Fetch a full process with its turns.

        Raises:
            ProcessNotFoundError / NotFoundError: If the process does not exist.
        """
        ...

    async def get_stable_members(self, stable_id: str) -> list[StableMemberInfo]:
        """List members of a stable eligible to take part."""
        ...

    async def compute_turn_order(
        self, request: ComputeTurnOrderInput
    ) -> ComputedTurnOrder:
        """Compute an initial turn order for a non-manual algorithm."""
        ...

    async def create_process(
        self, request: CreateSelectionProcessInput
    ) -> SelectionProcess:
        """Create a draft process from a final member order."""
        ...

    async def start_process(self, process_id: str) -> None:
        """Move a draft process to active."""
        ...

    async def complete_turn(self, process_id: str) -> CompleteTurnResult:
        """Complete the current turn and advance."""
        ...

    async def cancel_process(self, process_id: str, reason: str | None = None) -> None:
        """Cancel an active process."""
        ...

    async def delete_process(self, process_id: str) -> None:
        """Delete a draft or cancelled process."""
        ...

    async def update_dates(
        self,
        process_id: str,
        selection_start_date: date,
        selection_end_date: date,
    ) -> None:
        """Change the selection window of an active process."""
        ...
