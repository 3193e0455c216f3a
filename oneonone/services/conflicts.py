"""
Double-booking detection for proposed and scheduled meetings
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.config import get_settings
from oneonone.models.meeting import Meeting, ACTIVE_STATUSES
from oneonone.models.user import User

settings = get_settings()


async def find_conflict(
    db: AsyncSession,
    candidate_time: datetime,
    party_a_id: int,
    party_b_id: int,
    exclude_meeting_id: Optional[int] = None,
) -> Optional[Meeting]:
    """
    Return an active meeting involving either party within
    +/- CONFLICT_WINDOW_MINUTES of candidate_time, or None.

    Either party may appear as employee or reporter on the other meeting
    (a manager can also be someone's report).
    """
    window = timedelta(minutes=settings.CONFLICT_WINDOW_MINUTES)
    query = (
        select(Meeting)
        .where(
            Meeting.status.in_(ACTIVE_STATUSES),
            Meeting.meeting_date >= candidate_time - window,
            Meeting.meeting_date <= candidate_time + window,
            or_(
                Meeting.employee_id == party_a_id,
                Meeting.reporter_id == party_a_id,
                Meeting.employee_id == party_b_id,
                Meeting.reporter_id == party_b_id,
            ),
        )
        .limit(1)
    )
    if exclude_meeting_id is not None:
        query = query.where(Meeting.id != exclude_meeting_id)

    result = await db.execute(query)
    return result.unique().scalar_one_or_none()


def describe_conflict(conflict: Meeting, party_a: User, party_b: User) -> str:
    """User-facing message naming who is busy and with whom"""
    busy = party_a if party_a.id in (conflict.employee_id, conflict.reporter_id) else party_b
    other = conflict.reporter if busy.id == conflict.employee_id else conflict.employee
    other_name = other.name if other else "someone else"
    when = conflict.meeting_date.strftime("%b %d %Y %H:%M UTC")
    return f"{busy.name} already has a meeting with {other_name} at {when}. Please choose a different time."
