"""Rocks and individual goals."""

import logging
import math
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import GoalStatus, IndividualGoal, Rock, RockLevel, RockStatus
from .common import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    current_quarter,
)

logger = logging.getLogger(__name__)

ROCK_FIELDS = {
    "title", "description", "owner_id", "pillar_id", "rock_level",
    "parent_rock_id", "status", "quarter", "year", "due_date",
}
GOAL_FIELDS = {
    "title", "description", "rock_id", "target_value", "current_value",
    "unit", "status", "due_date", "quarter", "year",
}


def goal_progress(current_value: float | None, target_value: float | None) -> int:
    """Percent complete, capped at 100; 0 without a positive target."""
    if not target_value or target_value <= 0:
        return 0
    percent = (current_value or 0) / target_value * 100
    return min(100, math.floor(percent + 0.5))


@dataclass
class RockFilters:
    quarter: int | None = None
    year: int | None = None
    status: str | None = None
    owner_id: UUID | None = None
    level: str | None = None


# =============================================================================
# ROCKS
# =============================================================================


class RockService:
    """Quarterly rocks. Admin/ELT create, owner or leadership edit, admin deletes."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_rocks(self, organization_id: UUID, filters: RockFilters) -> list[Rock]:
        query = (
            select(Rock)
            .options(selectinload(Rock.owner), selectinload(Rock.pillar))
            .where(Rock.organization_id == organization_id)
            .order_by(Rock.created_at.desc())
        )
        if filters.quarter is not None:
            query = query.where(Rock.quarter == filters.quarter)
        if filters.year is not None:
            query = query.where(Rock.year == filters.year)
        if filters.status:
            try:
                query = query.where(Rock.status == RockStatus(filters.status))
            except ValueError:
                raise ValidationError(f"Invalid status: {filters.status}")
        if filters.owner_id:
            query = query.where(Rock.owner_id == filters.owner_id)
        if filters.level:
            try:
                query = query.where(Rock.rock_level == RockLevel(filters.level))
            except ValueError:
                raise ValidationError(f"Invalid level: {filters.level}")

        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_rock(self, organization_id: UUID, rock_id: UUID) -> Rock:
        result = await self.session.execute(
            select(Rock)
            .options(selectinload(Rock.owner), selectinload(Rock.pillar))
            .where(Rock.id == rock_id, Rock.organization_id == organization_id)
            .execution_options(populate_existing=True)
        )
        rock = result.scalar_one_or_none()
        if not rock:
            raise NotFoundError("Rock not found")
        return rock

    async def create_rock(
        self, organization_id: UUID, is_leadership: bool, data: dict[str, Any]
    ) -> Rock:
        if not is_leadership:
            raise PermissionDeniedError("Forbidden")
        if not data.get("title") or not data.get("owner_id"):
            raise ValidationError("Title and owner_id are required")

        quarter, year = current_quarter()
        values = {k: v for k, v in data.items() if k in ROCK_FIELDS and v is not None}
        values.setdefault("quarter", quarter)
        values.setdefault("year", year)
        values["status"] = RockStatus(values.get("status", RockStatus.NOT_STARTED))
        values["rock_level"] = RockLevel(values.get("rock_level", RockLevel.COMPANY))

        rock = Rock(organization_id=organization_id, **values)
        self.session.add(rock)
        await self.session.flush()
        logger.info(f"Created rock {rock.id} for Q{rock.quarter} {rock.year}")
        return await self.get_rock(organization_id, rock.id)

    async def update_rock(
        self,
        organization_id: UUID,
        rock_id: UUID,
        profile_id: UUID,
        is_leadership: bool,
        updates: dict[str, Any],
    ) -> Rock:
        rock = await self.get_rock(organization_id, rock_id)
        if not is_leadership and rock.owner_id != profile_id:
            raise PermissionDeniedError("Forbidden")

        changes = {k: v for k, v in updates.items() if k in ROCK_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")
        if changes.get("status") is not None:
            changes["status"] = RockStatus(changes["status"])
        if changes.get("rock_level") is not None:
            changes["rock_level"] = RockLevel(changes["rock_level"])

        for key, value in changes.items():
            setattr(rock, key, value)
        await self.session.flush()
        return await self.get_rock(organization_id, rock_id)

    async def delete_rock(self, organization_id: UUID, rock_id: UUID, is_admin: bool) -> None:
        if not is_admin:
            raise PermissionDeniedError("Forbidden")
        rock = await self.get_rock(organization_id, rock_id)
        await self.session.delete(rock)
        await self.session.flush()
        logger.info(f"Deleted rock {rock_id}")


# =============================================================================
# INDIVIDUAL GOALS
# =============================================================================


class GoalService:
    """Personal goals with derived progress."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_goals(
        self,
        organization_id: UUID,
        owner_id: UUID | None = None,
        rock_id: UUID | None = None,
        status: str | None = None,
    ) -> list[IndividualGoal]:
        query = (
            select(IndividualGoal)
            .options(selectinload(IndividualGoal.owner), selectinload(IndividualGoal.rock))
            .where(IndividualGoal.organization_id == organization_id)
            .order_by(
                IndividualGoal.due_date.asc().nulls_last(),
                IndividualGoal.created_at.desc(),
            )
        )
        if owner_id:
            query = query.where(IndividualGoal.owner_id == owner_id)
        if rock_id:
            query = query.where(IndividualGoal.rock_id == rock_id)
        if status:
            try:
                query = query.where(IndividualGoal.status == GoalStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")
        result = await self.session.execute(query)
        return list(result.scalars())

    async def get_goal(self, organization_id: UUID, goal_id: UUID) -> IndividualGoal:
        result = await self.session.execute(
            select(IndividualGoal)
            .options(selectinload(IndividualGoal.owner), selectinload(IndividualGoal.rock))
            .where(
                IndividualGoal.id == goal_id,
                IndividualGoal.organization_id == organization_id,
            )
            .execution_options(populate_existing=True)
        )
        goal = result.scalar_one_or_none()
        if not goal:
            raise NotFoundError("Goal not found")
        return goal

    async def create_goal(
        self,
        organization_id: UUID,
        profile_id: UUID,
        is_leadership: bool,
        data: dict[str, Any],
    ) -> IndividualGoal:
        if not data.get("title"):
            raise ValidationError("Title is required")

        owner_id = data.get("owner_id") or profile_id
        if owner_id != profile_id and not is_leadership:
            raise PermissionDeniedError("Can only create goals for yourself")

        if data.get("rock_id"):
            rock = await self.session.scalar(
                select(Rock.id).where(
                    Rock.id == data["rock_id"], Rock.organization_id == organization_id
                )
            )
            if not rock:
                raise NotFoundError("Rock not found")

        values = {k: v for k, v in data.items() if k in GOAL_FIELDS and v is not None}
        values["status"] = GoalStatus(values.get("status", GoalStatus.ON_TRACK))
        goal = IndividualGoal(organization_id=organization_id, owner_id=owner_id, **values)
        self.session.add(goal)
        await self.session.flush()
        return await self.get_goal(organization_id, goal.id)

    async def update_goal(
        self,
        organization_id: UUID,
        goal_id: UUID,
        profile_id: UUID,
        is_leadership: bool,
        updates: dict[str, Any],
    ) -> IndividualGoal:
        goal = await self.get_goal(organization_id, goal_id)
        if goal.owner_id != profile_id and not is_leadership:
            raise PermissionDeniedError("Forbidden")

        changes = {k: v for k, v in updates.items() if k in GOAL_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")
        if changes.get("status") is not None:
            changes["status"] = GoalStatus(changes["status"])

        for key, value in changes.items():
            setattr(goal, key, value)
        await self.session.flush()
        return await self.get_goal(organization_id, goal_id)

    async def delete_goal(
        self,
        organization_id: UUID,
        goal_id: UUID,
        profile_id: UUID,
        is_leadership: bool,
    ) -> None:
        goal = await self.get_goal(organization_id, goal_id)
        if goal.owner_id != profile_id and not is_leadership:
            raise PermissionDeniedError("Forbidden")
        await self.session.delete(goal)
        await self.session.flush()
