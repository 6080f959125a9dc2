"""REST adapter for SelectionProcessApiProtocol."""

from __future__ import annotations

from datetime import date

from equiduty.application.dtos.selection_process import (
    CompleteTurnResult,
    ComputeTurnOrderInput,
    CreateSelectionProcessInput,
    UpdateSelectionDatesInput,
)
from equiduty.domain.errors.api import DecodingError
from equiduty.domain.errors.selection_process import SelectionProcessError
from equiduty.domain.models.selection_process import (
    SelectionProcess,
    SelectionProcessStatus,
    SelectionProcessSummary,
)
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import ComputedTurnOrder
from equiduty.infrastructure.adapters.http.client import EquiDutyHttpClient, decode
from equiduty.infrastructure.adapters.http.wire_models import (
    ComputedTurnOrderWire,
    SelectionProcessListResponse,
    SelectionProcessWire,
    StableMembersResponse,
)

SELECTION_PROCESSES_PATH = "/selection-processes"


class HttpSelectionProcessApi:
    """Selection process operations over the EquiDuty REST API.

    Endpoints (relative to ``/api/v1``):
        GET    /selection-processes?stableId=[&status=]
        GET    /selection-processes/{id}
        GET    /stables/{stableId}/members
        POST   /selection-processes/compute-order
        POST   /selection-processes
        POST   /selection-processes/{id}/start
        POST   /selection-processes/{id}/complete-turn
        POST   /selection-processes/{id}/cancel
        DELETE /selection-processes/{id}
        PATCH  /selection-processes/{id}/dates
    """

    def __init__(self, client: EquiDutyHttpClient) -> None:
        self._client = client

    async def list_processes(
        self, stable_id: str, status: SelectionProcessStatus | None = None
    ) -> list[SelectionProcessSummary]:
        params = {"stableId": stable_id}
        if status is not None:
            params["status"] = status.value
        data = await self._client.request("GET", SELECTION_PROCESSES_PATH, params=params)
        response = decode(SelectionProcessListResponse, data or {})
        return [s.to_domain() for s in response.selection_processes]

    async def get_process(self, process_id: str) -> SelectionProcess:
        data = await self._client.request("GET", f"{SELECTION_PROCESSES_PATH}/{process_id}")
        return self._to_process(data)

    async def get_stable_members(self, stable_id: str) -> list[StableMemberInfo]:
        data = await self._client.request("GET", f"/stables/{stable_id}/members")
        response = decode(StableMembersResponse, data or {})
        return [m.to_domain() for m in response.members]

    async def compute_turn_order(self, request: ComputeTurnOrderInput) -> ComputedTurnOrder:
        data = await self._client.request(
            "POST", f"{SELECTION_PROCESSES_PATH}/compute-order", json=request.to_dict()
        )
        return decode(ComputedTurnOrderWire, data).to_domain()

    async def create_process(self, request: CreateSelectionProcessInput) -> SelectionProcess:
        data = await self._client.request(
            "POST", SELECTION_PROCESSES_PATH, json=request.to_dict()
        )
        return self._to_process(data)

    async def start_process(self, process_id: str) -> None:
        await self._client.request("POST", f"{SELECTION_PROCESSES_PATH}/{process_id}/start")

    async def complete_turn(self, process_id: str) -> CompleteTurnResult:
        data = await self._client.request(
            "POST", f"{SELECTION_PROCESSES_PATH}/{process_id}/complete-turn"
        )
        if not isinstance(data, dict) or "processCompleted" not in data:
            raise DecodingError("Unexpected CompleteTurnResult payload")
        return CompleteTurnResult.from_dict(data)

    async def cancel_process(self, process_id: str, reason: str | None = None) -> None:
        body = {"reason": reason} if reason else {}
        await self._client.request(
            "POST", f"{SELECTION_PROCESSES_PATH}/{process_id}/cancel", json=body
        )

    async def delete_process(self, process_id: str) -> None:
        await self._client.request("DELETE", f"{SELECTION_PROCESSES_PATH}/{process_id}")

    async def update_dates(
        self,
        process_id: str,
        selection_start_date: date,
        selection_end_date: date,
    ) -> None:
        body = UpdateSelectionDatesInput(
            selection_start_date=selection_start_date,
            selection_end_date=selection_end_date,
        ).to_dict()
        await self._client.request(
            "PATCH", f"{SELECTION_PROCESSES_PATH}/{process_id}/dates", json=body
        )

    @staticmethod
    def _to_process(data: object) -> SelectionProcess:
        wire = decode(SelectionProcessWire, data)
        try:
            return wire.to_domain()
        except SelectionProcessError as e:
            # Domain invariants rejected what the backend sent
            raise DecodingError(f"Invalid selection process {wire.id}: {e}") from e
