"""REST adapter for RoutineInstanceGatewayProtocol."""

from __future__ import annotations

from datetime import date

from equiduty.application.dtos.selection_process import (
    AssignRoutineResult,
    format_calendar_date,
)
from equiduty.domain.models.routine_instance import RoutineInstance
from equiduty.infrastructure.adapters.http.client import EquiDutyHttpClient, decode
from equiduty.infrastructure.adapters.http.wire_models import RoutineInstancesResponse


class HttpRoutineInstanceGateway:
    """Routine instance reads and self-assignment over the REST API.

    Endpoints (relative to ``/api/v1``):
        GET  /routines/instances/stable/{stableId}?startDate&endDate
        POST /routines/instances/{id}/assign
    """

    def __init__(self, client: EquiDutyHttpClient) -> None:
        self._client = client

    async def get_instances_for_date_range(
        self,
        stable_id: str,
        start_date: date,
        end_date: date,
    ) -> list[RoutineInstance]:
        data = await self._client.request(
            "GET",
            f"/routines/instances/stable/{stable_id}",
            params={
                "startDate": format_calendar_date(start_date),
                "endDate": format_calendar_date(end_date),
            },
        )
        response = decode(RoutineInstancesResponse, data or {})
        return [r.to_domain() for r in response.routine_instances]

    async def assign_routine(
        self,
        instance_id: str,
        user_id: str,
        user_name: str,
    ) -> AssignRoutineResult:
        data = await self._client.request(
            "POST",
            f"/routines/instances/{instance_id}/assign",
            json={"assignedTo": user_id, "assignedToName": user_name},
        )
        message = data.get("message") if isinstance(data, dict) else None
        return AssignRoutineResult(success=True, message=message)
