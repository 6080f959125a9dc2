"""Application ports: Protocols for the collaborators controllers depend on."""

from equiduty.application.ports.permission_checker import (
    MANAGE_SELECTION_PROCESSES,
    PermissionCheckerProtocol,
)
from equiduty.application.ports.routine_instance_gateway import (
    RoutineInstanceGatewayProtocol,
)
from equiduty.application.ports.selection_process_api import (
    SelectionProcessApiProtocol,
)

__all__: list[str] = [
    "MANAGE_SELECTION_PROCESSES",
    "PermissionCheckerProtocol",
    "RoutineInstanceGatewayProtocol",
    "SelectionProcessApiProtocol",
]
