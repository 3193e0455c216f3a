"""
Meeting reminders: one notification pass 24 hours out (plus an email to the
employee) and one 1 hour out, each sent at most once per meeting.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.config import get_settings
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.services.effects import Effects
from oneonone.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# (hours ahead, flag column, send email)
REMINDER_PASSES = (
    (24, "reminder_24h_sent", True),
    (1, "reminder_1h_sent", False),
)


async def _due_meeting_ids(db: AsyncSession, now: datetime, hours: int, flag: str) -> list[int]:
    result = await db.execute(
        select(Meeting.id)
        .where(
            Meeting.status == MeetingStatus.SCHEDULED,
            getattr(Meeting, flag) == False,
            Meeting.meeting_date >= now,
            Meeting.meeting_date <= now + timedelta(hours=hours),
        )
        .order_by(Meeting.meeting_date)
    )
    return list(result.scalars().all())


def _hours_left(meeting: Meeting, now: datetime, window: int) -> int:
    """Whole hours until the meeting, rounded up and capped at the pass window"""
    seconds = (meeting.meeting_date - now).total_seconds()
    return max(1, min(window, math.ceil(seconds / 3600)))


async def run_reminder_sweep(
    db: AsyncSession,
    effects: Effects,
    now: Optional[datetime] = None,
) -> dict:
    """Returns {"reminders_24h_sent", "reminders_1h_sent", "errors"}"""
    settings = get_settings()
    counts = {"reminders_24h_sent": 0, "reminders_1h_sent": 0, "errors": []}

    if not settings.ENABLE_EMAIL_REMINDERS:
        logger.info("Meeting reminders disabled, skipping reminder sweep")
        return counts

    now = now or utcnow()
    for hours, flag, send_email in REMINDER_PASSES:
        for meeting_id in await _due_meeting_ids(db, now, hours, flag):
            try:
                meeting = await db.get(Meeting, meeting_id, populate_existing=True)
                await effects.meeting_reminder(
                    meeting, hours_until=_hours_left(meeting, now, hours), send_email=send_email
                )
                setattr(meeting, flag, True)
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(f"Error sending {hours}h reminder for meeting {meeting_id}: {e}")
                counts["errors"].append(f"Failed to send {hours}h reminder for meeting {meeting_id}")
                continue
            counts[f"reminders_{hours}h_sent"] += 1

    logger.info(
        f"Reminder sweep: {counts['reminders_24h_sent']} x 24h, "
        f"{counts['reminders_1h_sent']} x 1h, {len(counts['errors'])} error(s)"
    )
    return counts
