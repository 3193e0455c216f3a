"""
Shared router helpers: loading meetings and mapping workflow results to HTTP errors
"""
from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.models.meeting import Meeting
from oneonone.services.results import Outcome, TransitionResult

OUTCOME_STATUS = {
    Outcome.INVALID_TRANSITION: 400,
    Outcome.VALIDATION: 400,
    Outcome.UNAUTHORIZED: 403,
    Outcome.NOT_FOUND: 404,
    Outcome.CONFLICT: 409,
}


def raise_for_result(result: TransitionResult) -> Any:
    """Return the result's value, or raise the HTTPException matching its outcome"""
    if result.ok:
        return result.value
    raise HTTPException(status_code=OUTCOME_STATUS[result.outcome], detail=result.message)


async def get_meeting_or_404(db: AsyncSession, meeting_id: int) -> Meeting:
    result = await db.execute(
        select(Meeting).where(Meeting.id == meeting_id).execution_options(populate_existing=True)
    )
    meeting = result.unique().scalar_one_or_none()
    if not meeting:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting
