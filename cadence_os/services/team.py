"""
Team Service: pillars and team members.

Pillars group people and rocks. Team members are profiles; creating one
sends nobody an email, it just reserves a profile in `invited` status that
is claimed when the person first signs in with the same address.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import AccessLevel, Pillar, Profile, ProfileStatus
from .common import NotFoundError, PermissionDeniedError, ValidationError, utcnow

logger = logging.getLogger(__name__)

PILLAR_FIELDS = {"name", "slug", "description", "color", "sort_order", "leader_id"}

SELF_EDITABLE_FIELDS = {"avatar_url", "receives_briefing", "briefing_time", "timezone"}
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS | {
    "full_name", "title", "role", "access_level", "pillar_id",
    "is_pillar_lead", "responsibilities", "status",
}


def slugify(name: str) -> str:
    """'Sales & Marketing' -> 'sales--marketing'."""
    slug = re.sub(r"\s+", "-", name.lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


@dataclass
class PillarWithCount:
    pillar: Pillar
    member_count: int


# =============================================================================
# PILLARS
# =============================================================================


class PillarService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _member_counts(self, organization_id: UUID) -> dict[UUID, int]:
        result = await self.session.execute(
            select(Profile.pillar_id, func.count(Profile.id))
            .where(
                Profile.organization_id == organization_id,
                Profile.pillar_id.is_not(None),
                Profile.status == ProfileStatus.ACTIVE,
            )
            .group_by(Profile.pillar_id)
        )
        return {pillar_id: count for pillar_id, count in result.all()}

    async def list_pillars(self, organization_id: UUID) -> list[PillarWithCount]:
        result = await self.session.execute(
            select(Pillar)
            .options(selectinload(Pillar.leader))
            .where(Pillar.organization_id == organization_id)
            .order_by(Pillar.sort_order.asc(), Pillar.name.asc())
        )
        counts = await self._member_counts(organization_id)
        return [PillarWithCount(p, counts.get(p.id, 0)) for p in result.scalars()]

    async def get_pillar(self, organization_id: UUID, pillar_id: UUID) -> Pillar:
        result = await self.session.execute(
            select(Pillar)
            .options(selectinload(Pillar.leader))
            .where(Pillar.id == pillar_id, Pillar.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        pillar = result.scalar_one_or_none()
        if not pillar:
            raise NotFoundError("Pillar not found")
        return pillar

    async def list_members(self, organization_id: UUID, pillar_id: UUID) -> list[Profile]:
        await self.get_pillar(organization_id, pillar_id)
        result = await self.session.execute(
            select(Profile)
            .where(Profile.pillar_id == pillar_id, Profile.status == ProfileStatus.ACTIVE)
            .order_by(Profile.is_pillar_lead.desc(), Profile.full_name.asc())
        )
        return list(result.scalars())

    async def create_pillar(self, organization_id: UUID, data: dict[str, Any]) -> Pillar:
        if not data.get("name"):
            raise ValidationError("Name is required")

        values = {k: v for k, v in data.items() if k in PILLAR_FIELDS and v is not None}
        values.setdefault("slug", slugify(values["name"]))

        existing = await self.session.scalar(
            select(Pillar.id).where(
                Pillar.organization_id == organization_id, Pillar.slug == values["slug"]
            )
        )
        if existing:
            raise ValidationError("A pillar with this slug already exists")

        pillar = Pillar(organization_id=organization_id, **values)
        self.session.add(pillar)
        await self.session.flush()
        if pillar.leader_id:
            await self._set_leader(pillar.id, pillar.leader_id)
        logger.info(f"Created pillar {pillar.slug} for org {organization_id}")
        return await self.get_pillar(organization_id, pillar.id)

    async def _set_leader(self, pillar_id: UUID, leader_id: UUID) -> None:
        await self.session.execute(
            update(Profile)
            .where(Profile.pillar_id == pillar_id, Profile.is_pillar_lead.is_(True))
            .values(is_pillar_lead=False)
        )
        await self.session.execute(
            update(Profile).where(Profile.id == leader_id).values(is_pillar_lead=True)
        )

    async def update_pillar(
        self, organization_id: UUID, pillar_id: UUID, updates: dict[str, Any]
    ) -> Pillar:
        pillar = await self.get_pillar(organization_id, pillar_id)
        changes = {k: v for k, v in updates.items() if k in PILLAR_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")

        if changes.get("leader_id"):
            await self._set_leader(pillar.id, changes["leader_id"])
        for key, value in changes.items():
            setattr(pillar, key, value)
        await self.session.flush()
        return await self.get_pillar(organization_id, pillar_id)

    async def delete_pillar(self, organization_id: UUID, pillar_id: UUID) -> None:
        pillar = await self.get_pillar(organization_id, pillar_id)
        assigned = await self.session.scalar(
            select(func.count(Profile.id)).where(Profile.pillar_id == pillar_id)
        )
        if assigned:
            raise ValidationError("Cannot delete pillar with assigned team members")
        await self.session.delete(pillar)
        await self.session.flush()
        logger.info(f"Deleted pillar {pillar_id}")


# =============================================================================
# TEAM MEMBERS
# =============================================================================


class TeamMemberService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_members(
        self, organization_id: UUID, include_inactive: bool = False
    ) -> list[Profile]:
        query = (
            select(Profile)
            .options(selectinload(Profile.pillar))
            .where(Profile.organization_id == organization_id)
            .order_by(Profile.full_name.asc())
        )
        if not include_inactive:
            query = query.where(Profile.status != ProfileStatus.INACTIVE)
        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_member(self, organization_id: UUID, member_id: UUID) -> Profile:
        result = await self.session.execute(
            select(Profile)
            .options(selectinload(Profile.pillar))
            .where(Profile.id == member_id, Profile.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        member = result.scalar_one_or_none()
        if not member:
            raise NotFoundError("Team member not found")
        return member

    async def create_member(self, organization_id: UUID, data: dict[str, Any]) -> Profile:
        """Reserve an invited profile for someone who has not signed in yet."""
        email = (data.get("email") or "").strip().lower()
        if not email or not data.get("full_name"):
            raise ValidationError("Email and full_name are required")

        existing = await self.session.scalar(
            select(Profile.id).where(func.lower(Profile.email) == email)
        )
        if existing:
            raise ValidationError("A team member with this email already exists")

        values = {
            k: v for k, v in data.items()
            if k in ADMIN_EDITABLE_FIELDS and k != "status" and v is not None
        }
        if "access_level" in values:
            values["access_level"] = AccessLevel(values["access_level"])

        member = Profile(
            organization_id=organization_id,
            auth_provider_id=f"pending_{email}",
            email=email,
            status=ProfileStatus.INVITED,
            invited_at=utcnow(),
            **values,
        )
        self.session.add(member)
        await self.session.flush()
        logger.info(f"Invited team member {email} to org {organization_id}")
        return await self.get_member(organization_id, member.id)

    async def update_member(
        self,
        organization_id: UUID,
        member_id: UUID,
        profile_id: UUID,
        is_admin: bool,
        updates: dict[str, Any],
    ) -> Profile:
        """Self may edit personal preferences; admins may edit everything."""
        member = await self.get_member(organization_id, member_id)
        if not is_admin and member.id != profile_id:
            raise PermissionDeniedError("Forbidden")

        allowed = ADMIN_EDITABLE_FIELDS if is_admin else SELF_EDITABLE_FIELDS
        changes = {k: v for k, v in updates.items() if k in allowed}
        if not changes:
            raise ValidationError("No valid fields to update")

        if changes.get("access_level") is not None:
            changes["access_level"] = AccessLevel(changes["access_level"])
        if changes.get("status") is not None:
            changes["status"] = ProfileStatus(changes["status"])

        for key, value in changes.items():
            setattr(member, key, value)
        await self.session.flush()
        return await self.get_member(organization_id, member_id)

    async def deactivate_member(
        self, organization_id: UUID, member_id: UUID, profile_id: UUID
    ) -> Profile:
        if member_id == profile_id:
            raise ValidationError("Cannot deactivate yourself")
        member = await self.get_member(organization_id, member_id)
        member.status = ProfileStatus.INACTIVE
        await self.session.flush()
        logger.info(f"Deactivated team member {member_id}")
        return await self.get_member(organization_id, member_id)
