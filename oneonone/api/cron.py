"""
Cron endpoint - recurring meeting generation and reminders, called by an external scheduler.

Call hourly: POST /api/cron/meetings with header `x-cron-secret: $CRON_SECRET`.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.config import get_settings
from oneonone.database import get_db
from oneonone.services.effects import Effects, get_effects
from oneonone.services.scheduler import run_meeting_sweeps

router = APIRouter()
logger = logging.getLogger(__name__)


class CronResult(BaseModel):
    success: bool = True
    recurring_meetings_created: int
    reminders_24h_sent: int
    reminders_1h_sent: int
    errors: List[str]


def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)):
    """Open when CRON_SECRET is unset, except in production where the endpoint is disabled"""
    settings = get_settings()
    if not settings.CRON_SECRET:
        if settings.ENVIRONMENT == "production":
            logger.error("CRON_SECRET is not set, cron endpoint is disabled in production")
            raise HTTPException(status_code=503, detail="Cron not configured")
        return
    if x_cron_secret != settings.CRON_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/meetings", response_model=CronResult, dependencies=[Depends(verify_cron_secret)])
async def run_meeting_cron(
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects)
):
    """Generate due recurring meetings, then send 24h / 1h reminders"""
    result = await run_meeting_sweeps(db, effects)
    return CronResult(**result)
