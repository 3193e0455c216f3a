"""
Recurring schedule API endpoints - standing one-on-one cadences
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, field_validator

from oneonone.database import get_db
from oneonone.models.user import User
from oneonone.models.recurring_schedule import RecurringSchedule, RecurringFrequency
from oneonone.api.auth import get_current_user
from oneonone.api.deps import raise_for_result
from oneonone.api.meetings import MeetingResponse, UserSummary
from oneonone.services import recurring
from oneonone.services.effects import Effects, get_effects
from oneonone.utils.validators import validate_day_of_week, validate_time_of_day

router = APIRouter()


# --- Pydantic Schemas ---

class ScheduleResponse(BaseModel):
    id: int
    reporter_id: int
    employee_id: int
    employee: Optional[UserSummary]
    reporter: Optional[UserSummary]
    frequency: RecurringFrequency
    day_of_week: int
    time_of_day: str
    next_meeting_date: datetime
    is_active: bool
    last_generated_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class ScheduleDetailResponse(ScheduleResponse):
    recent_meetings: List[MeetingResponse] = []


class ScheduleCreatedResponse(BaseModel):
    schedule: ScheduleResponse
    meeting: MeetingResponse


class ScheduleCreate(BaseModel):
    employee_id: int
    frequency: Optional[RecurringFrequency] = None
    day_of_week: int
    time_of_day: str

    @field_validator("day_of_week")
    @classmethod
    def check_day(cls, v):
        return validate_day_of_week(v)

    @field_validator("time_of_day")
    @classmethod
    def check_time(cls, v):
        return validate_time_of_day(v)


class ScheduleUpdate(BaseModel):
    frequency: Optional[RecurringFrequency] = None
    day_of_week: Optional[int] = None
    time_of_day: Optional[str] = None
    is_active: Optional[bool] = None
    cancel_future_meetings: bool = False

    @field_validator("day_of_week")
    @classmethod
    def check_day(cls, v):
        return v if v is None else validate_day_of_week(v)

    @field_validator("time_of_day")
    @classmethod
    def check_time(cls, v):
        return v if v is None else validate_time_of_day(v)


# --- Helper ---

async def _get_schedule_or_404(db: AsyncSession, user: User, schedule_id: int) -> RecurringSchedule:
    schedule = await recurring.get_owned_schedule(db, user, schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule


# --- Endpoints ---

@router.get("/", response_model=List[ScheduleResponse])
async def list_schedules(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active schedules owned by the caller (administrators see all)"""
    schedules = await recurring.list_schedules(db, current_user)
    return [ScheduleResponse.model_validate(s) for s in schedules]


@router.get("/{schedule_id}", response_model=ScheduleDetailResponse)
async def get_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Schedule with its last 10 meetings"""
    schedule = await _get_schedule_or_404(db, current_user, schedule_id)
    meetings = await recurring.recent_meetings(db, schedule.id)

    response = ScheduleDetailResponse.model_validate(schedule)
    response.recent_meetings = [MeetingResponse.model_validate(m) for m in meetings]
    return response


@router.post("/", response_model=ScheduleCreatedResponse)
async def create_schedule(
    data: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Create a recurring schedule and propose its first meeting"""
    result = await recurring.create_schedule(
        db, effects, current_user,
        employee_id=data.employee_id,
        day_of_week=data.day_of_week,
        time_of_day=data.time_of_day,
        frequency=data.frequency,
    )
    schedule, meeting = raise_for_result(result)
    return ScheduleCreatedResponse(
        schedule=ScheduleResponse.model_validate(schedule),
        meeting=MeetingResponse.model_validate(meeting),
    )


@router.patch("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: int,
    data: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Change cadence, day or time; is_active=false deactivates"""
    schedule = await _get_schedule_or_404(db, current_user, schedule_id)
    result = await recurring.update_schedule(
        db, effects, current_user, schedule,
        frequency=data.frequency,
        day_of_week=data.day_of_week,
        time_of_day=data.time_of_day,
        is_active=data.is_active,
        cancel_future_meetings=data.cancel_future_meetings,
    )
    raise_for_result(result)
    return ScheduleResponse.model_validate(schedule)


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    cancel_future_meetings: bool = False,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Soft delete (deactivate), optionally cancelling the schedule's future meetings"""
    schedule = await _get_schedule_or_404(db, current_user, schedule_id)
    result = await recurring.deactivate_schedule(db, effects, current_user, schedule, cancel_future_meetings)
    cancelled = raise_for_result(result)
    return {"message": "Schedule deleted", "cancelled_meetings": cancelled}
