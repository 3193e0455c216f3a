"""
In-process periodic sweeps: recurring meeting generation and reminders.

An alternative to calling POST /api/cron/meetings from an external cron.

Config (in .env):
    SCHEDULER_ENABLED=true
    SCHEDULER_INTERVAL_MIN=60
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.config import get_settings
from oneonone.database import AsyncSessionLocal
from oneonone.services.effects import Effects, build_effects
from oneonone.services.recurring import run_regeneration_sweep
from oneonone.services.reminders import run_reminder_sweep

logger = logging.getLogger(__name__)


async def run_meeting_sweeps(db: AsyncSession, effects: Effects, now: Optional[datetime] = None) -> dict:
    """
    Run regeneration then reminders.
    Returns the counts reported by the cron endpoint.
    """
    generated = await run_regeneration_sweep(db, effects, now)
    reminders = await run_reminder_sweep(db, effects, now)

    return {
        "recurring_meetings_created": generated["created"],
        "reminders_24h_sent": reminders["reminders_24h_sent"],
        "reminders_1h_sent": reminders["reminders_1h_sent"],
        "errors": generated["errors"] + reminders["errors"],
    }


async def start_meeting_scheduler():
    """Background loop that runs the meeting sweeps at a configured interval."""
    settings = get_settings()

    if not settings.SCHEDULER_ENABLED:
        logger.info("In-process scheduler disabled, expecting an external cron caller")
        return

    interval = max(settings.SCHEDULER_INTERVAL_MIN, 1) * 60
    logger.info(f"Meeting scheduler started: sweeping every {settings.SCHEDULER_INTERVAL_MIN} min")

    # Initial delay to let the app finish startup
    await asyncio.sleep(30)

    while True:
        try:
            async with AsyncSessionLocal() as db:
                result = await run_meeting_sweeps(db, build_effects(db))
            if result["recurring_meetings_created"] or result["errors"]:
                logger.info(f"Meeting sweep result: {result}")
        except Exception as e:
            logger.error(f"Meeting scheduler error: {e}")

        await asyncio.sleep(interval)
