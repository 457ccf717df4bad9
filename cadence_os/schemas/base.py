"""Base schemas and common types for the Cadence API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class CadenceBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


class TimestampMixin(BaseModel):
    """Mixin for created/updated timestamps."""

    created_at: datetime
    updated_at: datetime | None = None


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorResponse(CadenceBaseModel):
    """Standard error response format."""

    error: str
    request_id: str | None = None


class SuccessResponse(CadenceBaseModel):
    success: bool = True


# =============================================================================
# COMMON REFERENCE SCHEMAS
# =============================================================================


class ProfileRef(CadenceBaseModel):
    """Minimal profile reference for embedding in responses."""

    id: UUID
    full_name: str
    email: str | None = None
    avatar_url: str | None = None


class PillarRef(CadenceBaseModel):
    id: UUID
    name: str
    color: str | None = None
