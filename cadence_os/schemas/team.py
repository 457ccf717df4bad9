"""Schemas for pillars and team members."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from .base import CadenceBaseModel, PillarRef, ProfileRef, TimestampMixin


class PillarCreate(BaseModel):
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    color: str | None = None
    sort_order: int | None = None
    leader_id: UUID | None = None


class PillarUpdate(PillarCreate):
    pass


class PillarResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    sort_order: int
    leader_id: UUID | None = None
    leader: ProfileRef | None = None
    member_count: int = 0


class PillarDetailResponse(PillarResponse):
    members: list[ProfileRef] = []


class TeamMemberCreate(BaseModel):
    email: str | None = None
    full_name: str | None = None
    title: str | None = None
    role: str | None = None
    access_level: str | None = None
    pillar_id: UUID | None = None
    is_pillar_lead: bool | None = None
    responsibilities: list[str] | None = None


class TeamMemberUpdate(BaseModel):
    full_name: str | None = None
    title: str | None = None
    role: str | None = None
    avatar_url: str | None = None
    access_level: str | None = None
    pillar_id: UUID | None = None
    is_pillar_lead: bool | None = None
    responsibilities: list[str] | None = None
    receives_briefing: bool | None = None
    briefing_time: str | None = None
    timezone: str | None = None
    status: str | None = None


class TeamMemberResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    email: str
    full_name: str
    title: str | None = None
    role: str | None = None
    avatar_url: str | None = None
    access_level: str
    pillar_id: UUID | None = None
    is_pillar_lead: bool = False
    responsibilities: list[str] = []
    receives_briefing: bool = True
    briefing_time: str
    timezone: str
    status: str
    invited_at: datetime | None = None
    pillar: PillarRef | None = None
