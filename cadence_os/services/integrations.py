"""
Integrations Service: per-organization integration settings and data sources.

Integration rows hold the settings for one provider type each (upserted by
type). Data sources describe how a scorecard metric is pulled from HubSpot
or BigQuery; syncing itself runs outside this service.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models import DataSource, DataSourceType, Integration, IntegrationType, Metric
from .common import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

VALID_INTEGRATION_TYPES = [t.value for t in IntegrationType]
INTEGRATION_FIELDS = {"name", "is_active", "config"}

DATA_SOURCE_FIELDS = {
    "name", "description", "hubspot_object", "hubspot_property",
    "hubspot_aggregation", "hubspot_filters", "bigquery_query",
    "bigquery_value_column", "unit",
}
BIGQUERY_PLACEHOLDERS = ("{{start}}", "{{end}}")


# =============================================================================
# INTEGRATIONS
# =============================================================================


class IntegrationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_integrations(self, organization_id: UUID) -> list[Integration]:
        result = await self.session.execute(
            select(Integration)
            .where(Integration.organization_id == organization_id)
            .order_by(Integration.type.asc())
        )
        return list(result.scalars())

    async def get_integration(self, organization_id: UUID, integration_id: UUID) -> Integration:
        result = await self.session.execute(
            select(Integration).where(
                Integration.id == integration_id,
                Integration.organization_id == organization_id,
            )
        )
        integration = result.scalar_one_or_none()
        if not integration:
            raise NotFoundError("Integration not found")
        return integration

    async def upsert_integration(
        self, organization_id: UUID, data: dict[str, Any]
    ) -> Integration:
        """One row per (organization, type); posting an existing type updates it."""
        if not data.get("type") or not data.get("name"):
            raise ValidationError("Type and name are required")
        if data["type"] not in VALID_INTEGRATION_TYPES:
            raise ValidationError(
                f"Invalid type. Must be one of: {', '.join(VALID_INTEGRATION_TYPES)}"
            )
        integration_type = IntegrationType(data["type"])

        result = await self.session.execute(
            select(Integration).where(
                Integration.organization_id == organization_id,
                Integration.type == integration_type,
            )
        )
        integration = result.scalar_one_or_none()
        if integration is None:
            integration = Integration(organization_id=organization_id, type=integration_type)
            self.session.add(integration)

        integration.name = data["name"]
        integration.is_active = bool(data.get("is_active", False))
        integration.config = data.get("config") or {}
        await self.session.flush()
        await self.session.refresh(integration)
        logger.info(f"Saved {integration_type.value} integration for org {organization_id}")
        return integration

    async def update_integration(
        self, organization_id: UUID, integration_id: UUID, updates: dict[str, Any]
    ) -> Integration:
        integration = await self.get_integration(organization_id, integration_id)
        changes = {k: v for k, v in updates.items() if k in INTEGRATION_FIELDS and v is not None}
        if not changes:
            raise ValidationError("No valid fields to update")
        for key, value in changes.items():
            setattr(integration, key, value)
        await self.session.flush()
        await self.session.refresh(integration)
        return integration

    async def delete_integration(self, organization_id: UUID, integration_id: UUID) -> None:
        integration = await self.get_integration(organization_id, integration_id)
        await self.session.delete(integration)
        await self.session.flush()


# =============================================================================
# DATA SOURCES
# =============================================================================


def validate_data_source(source_type: DataSourceType, values: dict[str, Any]) -> None:
    """Check the provider-specific fields a data source needs."""
    if source_type == DataSourceType.HUBSPOT:
        for field in ("hubspot_object", "hubspot_property", "hubspot_aggregation"):
            if not values.get(field):
                raise ValidationError(f"{field} is required for HubSpot data sources")
    else:
        for field in ("bigquery_query", "bigquery_value_column"):
            if not values.get(field):
                raise ValidationError(f"{field} is required for BigQuery data sources")
        validate_bigquery_query(values["bigquery_query"])


def validate_bigquery_query(query: str) -> None:
    if not all(placeholder in query for placeholder in BIGQUERY_PLACEHOLDERS):
        raise ValidationError("BigQuery query must include {{start}} and {{end}} placeholders")


@dataclass
class DataSourceWithUsage:
    data_source: DataSource
    metrics_count: int


class DataSourceService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _usage(self, data_source_id: UUID) -> int:
        count = await self.session.scalar(
            select(func.count(Metric.id)).where(Metric.data_source_id == data_source_id)
        )
        return count or 0

    async def list_data_sources(self, organization_id: UUID) -> list[DataSourceWithUsage]:
        result = await self.session.execute(
            select(DataSource)
            .options(selectinload(DataSource.creator))
            .where(DataSource.organization_id == organization_id)
            .order_by(DataSource.created_at.desc())
        )
        sources = list(result.scalars())

        counts = await self.session.execute(
            select(Metric.data_source_id, func.count(Metric.id))
            .where(Metric.data_source_id.in_([s.id for s in sources]))
            .group_by(Metric.data_source_id)
        )
        usage = {source_id: count for source_id, count in counts.all()}
        return [DataSourceWithUsage(s, usage.get(s.id, 0)) for s in sources]

    async def get_data_source(self, organization_id: UUID, data_source_id: UUID) -> DataSource:
        result = await self.session.execute(
            select(DataSource)
            .options(selectinload(DataSource.creator))
            .where(
                DataSource.id == data_source_id,
                DataSource.organization_id == organization_id,
            )
            .execution_options(populate_existing=True)
        )
        source = result.scalar_one_or_none()
        if not source:
            raise NotFoundError("Data source not found")
        return source

    async def list_metrics_using(self, data_source_id: UUID) -> list[Metric]:
        result = await self.session.execute(
            select(Metric).where(Metric.data_source_id == data_source_id).order_by(Metric.name)
        )
        return list(result.scalars())

    async def create_data_source(
        self, organization_id: UUID, created_by: UUID, data: dict[str, Any]
    ) -> DataSource:
        if not data.get("name"):
            raise ValidationError("Name is required")
        if data.get("source_type") not in [t.value for t in DataSourceType]:
            raise ValidationError("source_type must be 'hubspot' or 'bigquery'")
        source_type = DataSourceType(data["source_type"])

        values = {k: v for k, v in data.items() if k in DATA_SOURCE_FIELDS and v is not None}
        validate_data_source(source_type, values)

        source = DataSource(
            organization_id=organization_id,
            source_type=source_type,
            created_by=created_by,
            **values,
        )
        self.session.add(source)
        await self.session.flush()
        logger.info(f"Created {source_type.value} data source {source.id}")
        return await self.get_data_source(organization_id, source.id)

    async def update_data_source(
        self, organization_id: UUID, data_source_id: UUID, updates: dict[str, Any]
    ) -> DataSource:
        source = await self.get_data_source(organization_id, data_source_id)
        changes = {k: v for k, v in updates.items() if k in DATA_SOURCE_FIELDS}
        if not changes:
            raise ValidationError("No valid fields to update")
        if changes.get("bigquery_query"):
            validate_bigquery_query(changes["bigquery_query"])

        for key, value in changes.items():
            setattr(source, key, value)
        await self.session.flush()
        return await self.get_data_source(organization_id, data_source_id)

    async def delete_data_source(self, organization_id: UUID, data_source_id: UUID) -> None:
        source = await self.get_data_source(organization_id, data_source_id)
        in_use = await self._usage(source.id)
        if in_use:
            raise ValidationError(f"Cannot delete: {in_use} metric(s) are using this data source")
        await self.session.delete(source)
        await self.session.flush()
