"""Pydantic models for the EquiDuty REST wire format.

The backend speaks camelCase JSON. Selection window and routine dates are
calendar dates; older backends send them as ISO timestamps, so only the
date part is read. Each model converts itself to the domain type with
``to_domain()``; unknown fields are ignored.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from equiduty.domain.models.routine_instance import RoutineInstance, RoutineInstanceStatus
from equiduty.domain.models.selection_process import (
    SelectionProcess,
    SelectionProcessStatus,
    SelectionProcessSummary,
    SelectionTurn,
    TurnStatus,
)
from equiduty.domain.models.stable_member import StableMemberInfo
from equiduty.domain.models.turn_order import (
    DEFAULT_ALGORITHM,
    ComputedTurnOrder,
    SelectionAlgorithm,
    TurnOrderMember,
    TurnOrderMetadata,
)


def _parse_calendar_date(value: Any) -> Any:
    """Accept ``yyyy-MM-dd`` or a full ISO timestamp; keep the date part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


CalendarDate = Annotated[date, BeforeValidator(_parse_calendar_date)]


class WireModel(BaseModel):
    """Base for wire models: camelCase aliases, immutable, extra fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class SelectionTurnWire(WireModel):
    user_id: str
    user_name: str
    user_email: str = ""
    order: int
    status: TurnStatus = TurnStatus.PENDING
    completed_at: datetime | None = None
    selections_count: int = 0

    def to_domain(self) -> SelectionTurn:
        return SelectionTurn(
            user_id=self.user_id,
            user_name=self.user_name,
            user_email=self.user_email,
            order=self.order,
            status=self.status,
            completed_at=self.completed_at,
            selections_count=self.selections_count,
        )


class SelectionProcessWire(WireModel):
    """A selection process as returned by GET /selection-processes/{id}."""

    id: str
    organization_id: str
    stable_id: str
    name: str
    description: str | None = None
    selection_start_date: CalendarDate
    selection_end_date: CalendarDate
    turns: list[SelectionTurnWire] = Field(default_factory=list)
    status: SelectionProcessStatus
    # Missing on legacy processes, which were all manual
    algorithm: SelectionAlgorithm | None = None
    quota_per_member: float | None = None
    total_available_points: int | None = None
    created_by: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    def to_domain(self) -> SelectionProcess:
        metadata = TurnOrderMetadata(
            quota_per_member=self.quota_per_member,
            total_available_points=self.total_available_points,
        )
        timestamps: dict[str, datetime] = {}
        if self.created_at is not None:
            timestamps["created_at"] = self.created_at
        if self.updated_at is not None:
            timestamps["updated_at"] = self.updated_at
        return SelectionProcess(
            id=self.id,
            organization_id=self.organization_id,
            stable_id=self.stable_id,
            name=self.name,
            description=self.description,
            selection_start_date=self.selection_start_date,
            selection_end_date=self.selection_end_date,
            turns=tuple(t.to_domain() for t in self.turns),
            status=self.status,
            algorithm=self.algorithm or DEFAULT_ALGORITHM,
            metadata=None if metadata.is_empty else metadata,
            created_by=self.created_by,
            started_at=self.started_at,
            completed_at=self.completed_at,
            cancelled_at=self.cancelled_at,
            cancellation_reason=self.cancellation_reason,
            **timestamps,
        )


class SelectionProcessSummaryWire(WireModel):
    id: str
    name: str
    status: SelectionProcessStatus
    selection_start_date: CalendarDate
    selection_end_date: CalendarDate
    total_members: int
    completed_turns: int
    current_turn_user_name: str | None = None
    is_current_turn: bool = False
    created_at: datetime

    def to_domain(self) -> SelectionProcessSummary:
        return SelectionProcessSummary(
            id=self.id,
            name=self.name,
            status=self.status,
            selection_start_date=self.selection_start_date,
            selection_end_date=self.selection_end_date,
            total_members=self.total_members,
            completed_turns=self.completed_turns,
            current_turn_user_name=self.current_turn_user_name,
            is_current_turn=self.is_current_turn,
            created_at=self.created_at,
        )


class SelectionProcessListResponse(WireModel):
    selection_processes: list[SelectionProcessSummaryWire] = Field(default_factory=list)


class StableMemberWire(WireModel):
    user_id: str
    display_name: str | None = None
    email: str | None = None
    role: str | None = None

    def to_domain(self) -> StableMemberInfo:
        return StableMemberInfo(
            user_id=self.user_id,
            display_name=self.display_name,
            email=self.email,
            role=self.role,
        )


class StableMembersResponse(WireModel):
    members: list[StableMemberWire] = Field(default_factory=list)


class TurnOrderMemberWire(WireModel):
    user_id: str
    user_name: str
    user_email: str = ""

    def to_domain(self) -> TurnOrderMember:
        return TurnOrderMember(
            user_id=self.user_id,
            user_name=self.user_name,
            user_email=self.user_email,
        )


class TurnOrderMetadataWire(WireModel):
    quota_per_member: float | None = None
    total_available_points: int | None = None
    previous_process_id: str | None = None
    previous_process_name: str | None = None
    member_points_map: dict[str, float] | None = None


class ComputedTurnOrderWire(WireModel):
    turns: list[TurnOrderMemberWire]
    algorithm: SelectionAlgorithm
    metadata: TurnOrderMetadataWire = Field(default_factory=TurnOrderMetadataWire)

    def to_domain(self) -> ComputedTurnOrder:
        return ComputedTurnOrder(
            turns=tuple(t.to_domain() for t in self.turns),
            algorithm=self.algorithm,
            metadata=TurnOrderMetadata(
                quota_per_member=self.metadata.quota_per_member,
                total_available_points=self.metadata.total_available_points,
                previous_process_id=self.metadata.previous_process_id,
                previous_process_name=self.metadata.previous_process_name,
                member_points_map=self.metadata.member_points_map,
            ),
        )


class RoutineInstanceWire(WireModel):
    id: str
    template_name: str
    scheduled_date: CalendarDate
    scheduled_start_time: str = "00:00"
    assigned_to: str | None = None
    assigned_to_name: str | None = None
    points_value: int = 0
    status: RoutineInstanceStatus = RoutineInstanceStatus.SCHEDULED

    def to_domain(self) -> RoutineInstance:
        return RoutineInstance(
            id=self.id,
            template_name=self.template_name,
            scheduled_date=self.scheduled_date,
            scheduled_start_time=self.scheduled_start_time,
            assigned_to=self.assigned_to,
            assigned_to_name=self.assigned_to_name,
            points_value=self.points_value,
            status=self.status,
        )


class RoutineInstancesResponse(WireModel):
    routine_instances: list[RoutineInstanceWire] = Field(default_factory=list)


class MyPermissionsResponse(WireModel):
    """Response of GET /organizations/{orgId}/permissions/my."""

    permissions: dict[str, bool] = Field(default_factory=dict)
    roles: list[str] = Field(default_factory=list)

    def allows(self, action: str) -> bool:
        return self.permissions.get(action, False)
