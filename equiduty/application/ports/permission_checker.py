"""Permission port.

Admin actions on selection processes are gated on the
``manage_selection_processes`` organization permission. Controllers cache
the answer; the backend still enforces it on every request.
"""

from __future__ import annotations

from typing import Protocol

from equiduty.application.dtos.selection_process import CurrentUser

MANAGE_SELECTION_PROCESSES: str = "manage_selection_processes"


class PermissionCheckerProtocol(Protocol):
    """Protocol for organization permission checks."""

    async def has_permission(self, user: CurrentUser, action: str) -> bool:
        """Check whether ``user`` may perform ``action`` in their organization."""
        ...
