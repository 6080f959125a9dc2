"""Routine instance port.

Routine instances belong to the routine collaborator. During an active
selection process the current-turn holder claims unassigned instances
through this port.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from equiduty.application.dtos.selection_process import AssignRoutineResult
from equiduty.domain.models.routine_instance import RoutineInstance


class RoutineInstanceGatewayProtocol(Protocol):
    """Protocol for reading and claiming routine instances."""

    async def get_instances_for_date_range(
        self,
        stable_id: str,
        start_date: date,
        end_date: date,
    ) -> list[RoutineInstance]:
        """List instances scheduled in ``[start_date, end_date]``."""
        ...

    async def assign_routine(
        self,
        instance_id: str,
        user_id: str,
        user_name: str,
    ) -> AssignRoutineResult:
        """Assign an instance to a user.

        The backend refuses when the instance is already assigned or the
        user does not hold the current turn of an active process.
        """
        ...
