"""
Briefing Cron Job: pre-generate today's briefing for everyone who gets one.

Runs ahead of the working day so the first page load is served from the
cached row instead of waiting on the LLM.

Typical cron schedule: 0 6 * * * (daily at 6 AM UTC)
"""

import asyncio
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import get_settings
from ..core.database import create_engine_for, create_session_factory
from ..models import Profile, ProfileStatus
from ..services.briefing import BriefingGenerator, BriefingService

logger = logging.getLogger(__name__)


# =============================================================================
# ALERTING
# =============================================================================


async def send_alert(
    title: str,
    message: str,
    severity: str = "error",
    details: dict | None = None,
    webhook_url: str | None = None,
) -> None:
    """
    Send an alert when the job fails.

    Always logs; also posts to the Slack incoming webhook when one is
    configured.
    """
    log_message = f"[CRON ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    else:
        logger.error(log_message)

    webhook_url = webhook_url or get_settings().briefing_alerts_webhook_url
    if webhook_url:
        try:
            await _send_slack_alert(webhook_url, title, message, severity, details)
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack alert: {e}")


async def _send_slack_alert(
    webhook_url: str,
    title: str,
    message: str,
    severity: str,
    details: dict | None,
) -> None:
    color = "#dc2626" if severity == "critical" else "#f59e0b"

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"🚨 {title}", "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message},
        },
    ]

    if details:
        details_text = "\n".join([f"• *{k}*: {v}" for k, v in details.items()])
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": details_text},
        })

    blocks.append({
        "type": "context",
        "elements": [
            {
                "type": "mrkdwn",
                "text": f"Severity: *{severity.upper()}* | Time: {datetime.now(timezone.utc).isoformat()}",
            },
        ],
    })

    async with httpx.AsyncClient() as client:
        response = await client.post(
            webhook_url,
            json={"attachments": [{"color": color, "blocks": blocks}]},
            timeout=10,
        )
        response.raise_for_status()


# =============================================================================
# JOB
# =============================================================================


async def list_recipients(session: AsyncSession) -> list[Profile]:
    """Active profiles in an organization that opted into briefings."""
    result = await session.execute(
        select(Profile)
        .where(
            Profile.receives_briefing.is_(True),
            Profile.status == ProfileStatus.ACTIVE,
            Profile.organization_id.is_not(None),
        )
        .order_by(Profile.organization_id, Profile.full_name)
    )
    return list(result.scalars())


async def generate_briefings(
    session_factory: async_sessionmaker[AsyncSession],
    generator: BriefingGenerator | None = None,
    regenerate: bool = False,
) -> dict[str, Any]:
    """
    Generate today's briefing for every recipient.

    Each profile gets its own transaction, so one failure does not roll
    back briefings already stored for others.
    """
    generator = generator or BriefingGenerator()
    results: dict[str, Any] = {
        "profiles": 0,
        "generated": 0,
        "cached": 0,
        "fallbacks": 0,
        "failed": 0,
        "errors": [],
    }

    async with session_factory() as session:
        recipients = await list_recipients(session)
    results["profiles"] = len(recipients)
    logger.info(f"Generating briefings for {len(recipients)} profiles")

    for profile in recipients:
        try:
            async with session_factory() as session:
                async with session.begin():
                    service = BriefingService(session, session_factory, generator=generator)
                    briefing = await service.get_briefing(profile, regenerate=regenerate)
        except Exception as e:
            logger.exception(f"Briefing failed for profile {profile.id}")
            results["failed"] += 1
            results["errors"].append(f"{profile.id}: {e}")
            continue

        if briefing.is_fallback:
            results["fallbacks"] += 1
            results["errors"].append(f"{profile.id}: {briefing.fallback_reason}")
        elif briefing.is_cached:
            results["cached"] += 1
        else:
            results["generated"] += 1

    return results


async def run_briefing_job(
    database_url: str | None = None,
    regenerate: bool = False,
) -> dict[str, Any]:
    """
    Main entry point for the briefing cron job.

    Returns:
        Job result summary
    """
    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting briefing job at {start_time.isoformat()}")

    engine = create_engine_for(database_url or get_settings().database_url)
    session_factory = create_session_factory(engine)

    try:
        results = await generate_briefings(session_factory, regenerate=regenerate)
    except Exception as e:
        logger.error(f"Briefing job failed: {e}")
        await send_alert(
            title="Briefing Cron Job Failed",
            message="The daily briefing job crashed unexpectedly.",
            severity="critical",
            details={
                "error": str(e),
                "traceback": traceback.format_exc()[-500:],
                "started_at": start_time.isoformat(),
            },
        )
        raise
    finally:
        await engine.dispose()

    end_time = datetime.now(timezone.utc)
    results["started_at"] = start_time.isoformat()
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"Briefing job completed in {results['duration_seconds']:.2f}s: "
        f"{results['generated']} generated, {results['cached']} cached, "
        f"{results['fallbacks']} fallbacks, {results['failed']} failed"
    )

    if results["failed"] or results["fallbacks"]:
        await send_alert(
            title="Briefing Job Completed with Warnings",
            message=(
                f"{results['failed']} briefings failed and "
                f"{results['fallbacks']} fell back to placeholder content."
            ),
            severity="warning",
            details={
                "profiles": results["profiles"],
                "generated": results["generated"],
                "errors": results["errors"][:5],
            },
        )

    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the briefing job."""
    import argparse

    parser = argparse.ArgumentParser(description="Pre-generate today's daily briefings")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database connection string (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--regenerate",
        action="store_true",
        help="Regenerate briefings that already exist for today",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        results = asyncio.run(run_briefing_job(args.database_url, regenerate=args.regenerate))
    except Exception as e:
        logger.error(f"Job failed: {e}")
        sys.exit(1)
    logger.info(f"Job completed: {results}")


if __name__ == "__main__":
    main()
