"""Schemas for integrations, data sources, OAuth and briefings."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from .base import CadenceBaseModel, ProfileRef, TimestampMixin


# =============================================================================
# INTEGRATIONS
# =============================================================================


class IntegrationUpsert(BaseModel):
    type: str | None = None
    name: str | None = None
    is_active: bool = False
    config: dict[str, Any] | None = None


class IntegrationUpdate(BaseModel):
    name: str | None = None
    is_active: bool | None = None
    config: dict[str, Any] | None = None


class IntegrationResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    type: str
    name: str
    is_active: bool
    config: dict[str, Any] = Field(default_factory=dict)
    last_sync_at: datetime | None = None


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str


# =============================================================================
# DATA SOURCES
# =============================================================================


class DataSourceCreate(BaseModel):
    name: str | None = None
    description: str | None = None
    source_type: str | None = None
    hubspot_object: str | None = None
    hubspot_property: str | None = None
    hubspot_aggregation: str | None = None
    hubspot_filters: list[dict[str, Any]] | None = None
    bigquery_query: str | None = None
    bigquery_value_column: str | None = None
    unit: str | None = None


class DataSourceUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    hubspot_object: str | None = None
    hubspot_property: str | None = None
    hubspot_aggregation: str | None = None
    hubspot_filters: list[dict[str, Any]] | None = None
    bigquery_query: str | None = None
    bigquery_value_column: str | None = None
    unit: str | None = None


class DataSourceResponse(CadenceBaseModel, TimestampMixin):
    id: UUID
    name: str
    description: str | None = None
    source_type: str
    hubspot_object: str | None = None
    hubspot_property: str | None = None
    hubspot_aggregation: str | None = None
    hubspot_filters: list[dict[str, Any]] | None = None
    bigquery_query: str | None = None
    bigquery_value_column: str | None = None
    unit: str | None = None
    created_by: UUID | None = None
    creator: ProfileRef | None = None
    metrics_count: int = 0


# =============================================================================
# BRIEFINGS
# =============================================================================


class BriefingResponse(BaseModel):
    id: UUID | None = None
    profile_id: UUID | None = None
    briefing_date: date
    content: dict[str, Any]
    generated_at: datetime
    viewed_at: datetime | None = None
    is_cached: bool = False
    is_fallback: bool = False
    fallback_reason: str | None = None
