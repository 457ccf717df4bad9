"""Schemas for rocks, individual goals and scorecard metrics."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .base import CadenceBaseModel, PillarRef, ProfileRef, TimestampMixin


# =============================================================================
# ROCKS
# =============================================================================


class RockCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    owner_id: UUID | None = None
    pillar_id: UUID | None = None
    rock_level: str | None = None
    parent_rock_id: UUID | None = None
    status: str | None = None
    quarter: int | None = Field(default=None, ge=1, le=4)
    year: int | None = None
    due_date: date | None = None


class RockUpdate(RockCreate):
    pass


class RockResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    title: str
    description: str | None = None
    owner_id: UUID | None = None
    pillar_id: UUID | None = None
    rock_level: str
    parent_rock_id: UUID | None = None
    status: str
    quarter: int | None = None
    year: int | None = None
    due_date: date | None = None
    owner: ProfileRef | None = None
    pillar: PillarRef | None = None


# =============================================================================
# GOALS
# =============================================================================


class GoalCreate(BaseModel):
    title: str | None = None
    description: str | None = None
    owner_id: UUID | None = None
    rock_id: UUID | None = None
    target_value: float | None = None
    current_value: float | None = None
    unit: str | None = None
    status: str | None = None
    due_date: date | None = None
    quarter: int | None = Field(default=None, ge=1, le=4)
    year: int | None = None


class GoalUpdate(GoalCreate):
    pass


class RockRef(CadenceBaseModel):
    id: UUID
    title: str
    status: str


class GoalResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    title: str
    description: str | None = None
    owner_id: UUID
    rock_id: UUID | None = None
    target_value: float | None = None
    current_value: float | None = None
    unit: str | None = None
    status: str
    due_date: date | None = None
    quarter: int | None = None
    year: int | None = None
    progress: int = 0
    owner: ProfileRef | None = None
    rock: RockRef | None = None


# =============================================================================
# METRICS
# =============================================================================


class MetricCreate(BaseModel):
    name: str | None = None
    description: str | None = None
    owner_id: UUID | None = None
    goal: float | None = None
    unit: str | None = None
    frequency: str | None = None
    data_source_id: UUID | None = None
    threshold_red: float | None = None
    threshold_yellow: float | None = None
    display_order: int | None = None


class MetricUpdate(MetricCreate):
    is_active: bool | None = None


class MetricResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    name: str
    description: str | None = None
    owner_id: UUID | None = None
    goal: float | None = None
    unit: str | None = None
    frequency: str
    source: str
    data_source_id: UUID | None = None
    threshold_red: float | None = None
    threshold_yellow: float | None = None
    display_order: int
    is_active: bool
    owner: ProfileRef | None = None


class MetricListItem(MetricResponse):
    current_value: float | None = None
    recorded_at: datetime | None = None
    status: str
    trend: str


class MetricValueCreate(BaseModel):
    value: float | None = None
    notes: str | None = None
    recorded_at: datetime | None = None


class MetricValueResponse(CadenceBaseModel):
    id: UUID
    metric_id: UUID
    value: float
    recorded_at: datetime
    source: str
    notes: str | None = None
