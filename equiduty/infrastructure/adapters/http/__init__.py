"""HTTP adapters for the EquiDuty REST backend (httpx)."""

from equiduty.infrastructure.adapters.http.client import EquiDutyHttpClient, TokenProvider
from equiduty.infrastructure.adapters.http.permission_checker import HttpPermissionChecker
from equiduty.infrastructure.adapters.http.routine_instance_gateway import (
    HttpRoutineInstanceGateway,
)
from equiduty.infrastructure.adapters.http.selection_process_api import (
    HttpSelectionProcessApi,
)

__all__: list[str] = [
    "EquiDutyHttpClient",
    "HttpPermissionChecker",
    "HttpRoutineInstanceGateway",
    "HttpSelectionProcessApi",
    "TokenProvider",
]
