"""Scorecard service: metrics, recorded values, and goal classification.

"Below goal" is never stored. It is derived at read time by comparing a
metric's most recent value against its goal.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import Metric, MetricValue
from .common import NotFoundError, PermissionDeniedError, ValidationError, utcnow

logger = logging.getLogger(__name__)

DEFAULT_VALUES_LIMIT = 52  # one year of weekly values

METRIC_FIELDS = (
    "name",
    "description",
    "owner_id",
    "goal",
    "unit",
    "frequency",
    "data_source_id",
    "threshold_red",
    "threshold_yellow",
    "display_order",
    "is_active",
)


# =============================================================================
# CLASSIFICATION
# =============================================================================


def is_below_goal(value: float | None, goal: float | None) -> bool:
    """A metric is below goal iff value and goal are both known and value < goal."""
    if value is None or goal is None:
        return False
    return value < goal


def goal_bucket(value: float | None, goal: float | None) -> str | None:
    """Return 'on_track', 'off_track', or None when either side is unknown."""
    if value is None or goal is None:
        return None
    return "off_track" if value < goal else "on_track"


def threshold_status(
    value: float | None,
    goal: float | None,
    threshold_red: float | None,
    threshold_yellow: float | None,
) -> str:
    """Scorecard colour from the red/yellow thresholds."""
    if value is None or goal is None:
        return "on_track"
    if threshold_red is not None and value <= threshold_red:
        return "off_track"
    if threshold_yellow is not None and value <= threshold_yellow:
        return "at_risk"
    return "on_track"


def trend(values: list[float]) -> str:
    """Direction of the latest value against the one before it."""
    if len(values) < 2:
        return "flat"
    if values[0] > values[1]:
        return "up"
    if values[0] < values[1]:
        return "down"
    return "flat"


async def latest_values(
    session: AsyncSession,
    metric_ids: list[UUID],
    per_metric: int = 1,
) -> dict[UUID, list[MetricValue]]:
    """Most recent values for each metric, newest first."""
    if not metric_ids:
        return {}
    ranked = (
        select(
            MetricValue.id,
            func.row_number()
            .over(
                partition_by=MetricValue.metric_id,
                order_by=(MetricValue.recorded_at.desc(), MetricValue.id.desc()),
            )
            .label("value_rank"),
        )
        .where(MetricValue.metric_id.in_(metric_ids))
        .subquery()
    )
    result = await session.execute(
        select(MetricValue)
        .join(ranked, ranked.c.id == MetricValue.id)
        .where(ranked.c.value_rank <= per_metric)
        .order_by(MetricValue.metric_id, ranked.c.value_rank)
    )
    grouped: dict[UUID, list[MetricValue]] = {}
    for value in result.scalars():
        grouped.setdefault(value.metric_id, []).append(value)
    return grouped


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class MetricWithValue:
    """A metric joined with its latest recorded value."""
    metric: Metric
    current_value: float | None
    recorded_at: datetime | None
    trend: str = "flat"

    @property
    def status(self) -> str:
        return threshold_status(
            self.current_value,
            self.metric.goal,
            self.metric.threshold_red,
            self.metric.threshold_yellow,
        )

    @property
    def below_goal(self) -> bool:
        return is_below_goal(self.current_value, self.metric.goal)

    def snapshot(self) -> dict[str, Any]:
        """Plain JSON form stored on a meeting when it starts."""
        owner = self.metric.owner
        return {
            "id": str(self.metric.id),
            "name": self.metric.name,
            "goal": self.metric.goal,
            "unit": self.metric.unit,
            "current_value": self.current_value,
            "owner": {"id": str(owner.id), "full_name": owner.full_name} if owner else None,
        }


async def load_metrics_with_values(
    session: AsyncSession,
    organization_id: UUID,
    active_only: bool = True,
    with_goal_only: bool = False,
) -> list[MetricWithValue]:
    """Load org metrics in display order with their latest values attached."""
    query = (
        select(Metric)
        .options(selectinload(Metric.owner))
        .where(Metric.organization_id == organization_id)
        .order_by(Metric.display_order.asc(), Metric.created_at.asc())
    )
    if active_only:
        query = query.where(Metric.is_active.is_(True))
    if with_goal_only:
        query = query.where(Metric.goal.is_not(None))

    metrics = list((await session.execute(query)).scalars())
    values = await latest_values(session, [m.id for m in metrics], per_metric=2)

    out = []
    for metric in metrics:
        recent = values.get(metric.id, [])
        latest = recent[0] if recent else None
        out.append(
            MetricWithValue(
                metric=metric,
                current_value=latest.value if latest else None,
                recorded_at=latest.recorded_at if latest else None,
                trend=trend([v.value for v in recent]),
            )
        )
    return out


# =============================================================================
# SERVICE
# =============================================================================


class ScorecardService:
    """CRUD for metrics and their values."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_metrics(self, organization_id: UUID) -> list[MetricWithValue]:
        return await load_metrics_with_values(self.session, organization_id, active_only=False)

    async def get_metric(self, organization_id: UUID, metric_id: UUID) -> Metric:
        result = await self.session.execute(
            select(Metric)
            .options(selectinload(Metric.owner))
            .where(Metric.id == metric_id, Metric.organization_id == organization_id)
        )
        metric = result.scalar_one_or_none()
        if not metric:
            raise NotFoundError("Metric not found")
        return metric

    async def create_metric(self, organization_id: UUID, data: dict[str, Any]) -> Metric:
        if not data.get("name") or not data.get("owner_id"):
            raise ValidationError("Name and owner_id are required")

        if data.get("display_order") is None:
            max_order = await self.session.scalar(
                select(func.max(Metric.display_order)).where(
                    Metric.organization_id == organization_id
                )
            )
            data["display_order"] = (max_order or 0) + 1

        metric = Metric(
            organization_id=organization_id,
            frequency=data.pop("frequency", None) or "weekly",
            **{k: v for k, v in data.items() if k in METRIC_FIELDS},
        )
        self.session.add(metric)
        await self.session.flush()
        return await self.get_metric(organization_id, metric.id)

    async def update_metric(
        self, organization_id: UUID, metric_id: UUID, updates: dict[str, Any]
    ) -> Metric:
        metric = await self.get_metric(organization_id, metric_id)
        changes = {k: v for k, v in updates.items() if k in METRIC_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")
        for key, value in changes.items():
            setattr(metric, key, value)
        await self.session.flush()
        return await self.get_metric(organization_id, metric_id)

    async def delete_metric(self, organization_id: UUID, metric_id: UUID) -> None:
        metric = await self.get_metric(organization_id, metric_id)
        await self.session.delete(metric)
        await self.session.flush()

    async def list_values(
        self, organization_id: UUID, metric_id: UUID, limit: int = DEFAULT_VALUES_LIMIT
    ) -> list[MetricValue]:
        await self.get_metric(organization_id, metric_id)
        result = await self.session.execute(
            select(MetricValue)
            .where(MetricValue.metric_id == metric_id)
            .order_by(MetricValue.recorded_at.desc())
            .limit(limit)
        )
        return list(result.scalars())

    async def record_value(
        self,
        organization_id: UUID,
        metric_id: UUID,
        profile_id: UUID,
        is_admin: bool,
        value: float | None,
        notes: str | None = None,
        recorded_at: datetime | None = None,
    ) -> MetricValue:
        """Record a manual value. Only admins and the metric owner may do this."""
        metric = await self.get_metric(organization_id, metric_id)
        if not is_admin and metric.owner_id != profile_id:
            raise PermissionDeniedError("Forbidden")
        if value is None:
            raise ValidationError("Value is required")

        metric_value = MetricValue(
            metric_id=metric_id,
            value=value,
            notes=notes,
            recorded_at=recorded_at or utcnow(),
            source="manual",
        )
        self.session.add(metric_value)
        await self.session.flush()
        logger.info(f"Recorded value {value} for metric {metric_id}")
        return metric_value
