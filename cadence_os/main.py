"""Cadence OS: Main FastAPI Application.

Backend for running a company on EOS: weekly L10 meetings with IDS,
rocks and goals, the scorecard, and a daily AI briefing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import api_router
from .core import close_db, get_settings, init_db
from .schemas import ErrorResponse

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    # Startup - skip init_db in production (tables already exist)
    if settings.environment != "production":
        try:
            await init_db()
        except Exception as e:
            logger.warning(f"Could not initialize database: {e}")
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Cadence OS API

    The operating system for an EOS-run business.

    ### Key Features

    - **L10 Meetings**: Fixed agenda, headlines, to-do review, and an IDS queue with resolution.
    - **Rocks & Goals**: Quarterly priorities at company, pillar and individual level.
    - **Scorecard**: Weekly metrics with thresholds, status and trend.
    - **Daily Briefings**: LLM-written summaries of what needs attention today.
    - **Integrations**: Slack workspace and Google Calendar via OAuth.

    ### Authentication

    All endpoints require a valid token in the `Authorization: Bearer <token>` header.
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)

# CORS middleware with explicit origins (credentials require explicit origins, not "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["*"],
    max_age=86400,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render every HTTP error as `{"error": message}`."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=message).model_dump(exclude_none=True),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="Internal server error").model_dump(exclude_none=True),
    )


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cadence_os.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
