"""REST adapter for PermissionCheckerProtocol.

Fetches the caller's effective permissions once per user and organization
and answers from the cache. The cache is dropped whenever the backend refuses
a request for a missing permission, so a revoked or newly granted
permission is picked up on the next check.
"""

from __future__ import annotations

import structlog

from equiduty.application.dtos.selection_process import CurrentUser
from equiduty.infrastructure.adapters.http.client import EquiDutyHttpClient, decode
from equiduty.infrastructure.adapters.http.wire_models import MyPermissionsResponse

logger = structlog.get_logger()


class HttpPermissionChecker:
    """Organization permission checks over the REST API.

    Endpoint (relative to ``/api/v1``):
        GET /organizations/{orgId}/permissions/my
    """

    def __init__(self, client: EquiDutyHttpClient) -> None:
        self._client = client
        self._cache: dict[tuple[str, str], MyPermissionsResponse] = {}
        client.add_permission_denied_listener(self.invalidate)

    async def has_permission(self, user: CurrentUser, action: str) -> bool:
        key = (user.user_id, user.organization_id)
        permissions = self._cache.get(key)
        if permissions is None:
            data = await self._client.request(
                "GET", f"/organizations/{user.organization_id}/permissions/my"
            )
            permissions = decode(MyPermissionsResponse, data or {})
            self._cache[key] = permissions
            logger.debug(
                "permissions_cached",
                user_id=user.user_id,
                organization_id=user.organization_id,
                permission_count=len(permissions.permissions),
            )
        return permissions.allows(action)

    def invalidate(self, organization_id: str | None = None) -> None:
        """Drop cached permissions of every user in one organization, or all."""
        if organization_id is None:
            self._cache.clear()
        else:
            for key in [k for k in self._cache if k[1] == organization_id]:
                del self._cache[key]
