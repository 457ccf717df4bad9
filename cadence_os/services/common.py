"""Shared service-layer exceptions and helpers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# EXCEPTIONS
# =============================================================================


class CadenceError(Exception):
    """Base exception for service operations."""
    pass


class NotFoundError(CadenceError):
    """Entity does not exist or is outside the caller's organization."""
    pass


class PermissionDeniedError(CadenceError):
    """Caller's access level does not allow the operation."""
    pass


class ValidationError(CadenceError):
    """Request is missing a required field or carries an invalid value."""
    pass


class InvalidTransitionError(CadenceError):
    """Operation not allowed in the entity's current status."""
    pass


# =============================================================================
# TIME
# =============================================================================


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def current_quarter(today: date | None = None) -> tuple[int, int]:
    """Return (quarter, year) for a date."""
    today = today or utcnow().date()
    return (today.month - 1) // 3 + 1, today.year


# =============================================================================
# CONCURRENT READS
# =============================================================================


ReadFn = Callable[[AsyncSession], Awaitable[T]]


async def _run_read(
    session_factory: async_sessionmaker[AsyncSession],
    read: ReadFn,
) -> Any:
    async with session_factory() as session:
        return await read(session)


async def gather_reads(
    session_factory: async_sessionmaker[AsyncSession],
    *reads: ReadFn,
) -> list[Any]:
    """Run independent reads concurrently, one session per read.

    Any failure propagates once all reads settle.
    """
    results = await asyncio.gather(
        *(_run_read(session_factory, read) for read in reads),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


async def gather_reads_or_empty(
    session_factory: async_sessionmaker[AsyncSession],
    **reads: ReadFn,
) -> dict[str, Any]:
    """Run named reads concurrently; a failed read yields an empty list."""
    names = list(reads)
    results = await asyncio.gather(
        *(_run_read(session_factory, reads[name]) for name in names),
        return_exceptions=True,
    )
    out: dict[str, Any] = {}
    for name, result in zip(names, results):
        if isinstance(result, Exception):
            logger.error(f"Read '{name}' failed: {result}")
            out[name] = []
        elif isinstance(result, BaseException):
            raise result
        else:
            out[name] = result
    return out
