"""API routes for Cadence OS."""

from fastapi import APIRouter

from .briefings import router as briefings_router
from .data_sources import router as data_sources_router
from .integrations import router as integrations_router
from .l10 import router as l10_router
from .metrics import router as metrics_router
from .rocks import router as rocks_router
from .team import router as team_router
from .work import router as work_router

# Main API router
api_router = APIRouter()

# L10 meetings, including the IDS queue and resolution
api_router.include_router(l10_router)

# Planning and scorecard
api_router.include_router(rocks_router)
api_router.include_router(metrics_router)

# People and work items
api_router.include_router(team_router)
api_router.include_router(work_router)

# Integrations (Slack, Google Calendar, data sources)
api_router.include_router(integrations_router)
api_router.include_router(data_sources_router)

api_router.include_router(briefings_router)

__all__ = ["api_router"]
