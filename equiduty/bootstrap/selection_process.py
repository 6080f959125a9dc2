"""Bootstrap wiring for selection process collaborators and controllers.

Controllers receive their collaborators through constructors. This module
builds those collaborators once (HTTP adapters by default, or the
in-memory backend for local development) and hands out controllers wired
to them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable

import httpx

from equiduty.application.dtos.selection_process import CurrentUser
from equiduty.application.ports.permission_checker import PermissionCheckerProtocol
from equiduty.application.ports.routine_instance_gateway import (
    RoutineInstanceGatewayProtocol,
)
from equiduty.application.ports.selection_process_api import (
    SelectionProcessApiProtocol,
)
from equiduty.application.services.selection_process_detail import (
    SelectionProcessDetailController,
)
from equiduty.application.services.selection_process_list import (
    SelectionProcessListController,
)
from equiduty.application.services.selection_process_wizard import (
    CreateSelectionProcessWizard,
)
from equiduty.config.client_config import (
    EquiDutyConfig,
    SelectionProcessRules,
    load_config,
)
from equiduty.infrastructure.adapters.http import (
    EquiDutyHttpClient,
    HttpPermissionChecker,
    HttpRoutineInstanceGateway,
    HttpSelectionProcessApi,
    TokenProvider,
)
from equiduty.infrastructure.stubs.in_memory_selection_backend import (
    InMemorySelectionBackend,
)


@dataclass(frozen=True)
class SelectionCollaborators:
    """Collaborators shared by all selection process controllers."""

    api: SelectionProcessApiProtocol
    routines: RoutineInstanceGatewayProtocol
    permissions: PermissionCheckerProtocol
    rules: SelectionProcessRules


_collaborators: SelectionCollaborators | None = None


def build_http_collaborators(
    config: EquiDutyConfig,
    token_provider: TokenProvider | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SelectionCollaborators:
    """Wire the REST adapters around one shared HTTP client."""
    client = EquiDutyHttpClient(config.api, token_provider=token_provider, transport=transport)
    return SelectionCollaborators(
        api=HttpSelectionProcessApi(client),
        routines=HttpRoutineInstanceGateway(client),
        permissions=HttpPermissionChecker(client),
        rules=config.rules,
    )


def build_in_memory_collaborators(
    backend: InMemorySelectionBackend,
    rules: SelectionProcessRules | None = None,
) -> SelectionCollaborators:
    """Wire every port to one in-memory backend."""
    return SelectionCollaborators(
        api=backend,
        routines=backend,
        permissions=backend,
        rules=rules or SelectionProcessRules(),
    )


def get_collaborators() -> SelectionCollaborators:
    """Get the collaborators, building HTTP adapters from env on first use.

    Returns:
        SelectionCollaborators instance.
    """
    global _collaborators
    if _collaborators is None:
        _collaborators = build_http_collaborators(load_config())
    return _collaborators


def set_collaborators(collaborators: SelectionCollaborators | None) -> None:
    """Set the collaborators (for tests or local development).

    Args:
        collaborators: Collaborators to use, or None to rebuild on next use.
    """
    global _collaborators
    _collaborators = collaborators


def create_wizard(
    organization_id: str,
    stable_id: str,
    today: Callable[[], date] = date.today,
) -> CreateSelectionProcessWizard:
    collaborators = get_collaborators()
    return CreateSelectionProcessWizard(
        api=collaborators.api,
        organization_id=organization_id,
        stable_id=stable_id,
        rules=collaborators.rules,
        today=today,
    )


def create_detail_controller(
    process_id: str,
    current_user: CurrentUser,
    today: Callable[[], date] = date.today,
) -> SelectionProcessDetailController:
    collaborators = get_collaborators()
    return SelectionProcessDetailController(
        api=collaborators.api,
        routines=collaborators.routines,
        permissions=collaborators.permissions,
        process_id=process_id,
        current_user=current_user,
        today=today,
    )


def create_list_controller() -> SelectionProcessListController:
    return SelectionProcessListController(api=get_collaborators().api)
