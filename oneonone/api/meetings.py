"""
Meeting API endpoints - proposals, acceptance, counter-suggestions, completion and the employee form
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel

from oneonone.database import get_db
from oneonone.models.user import User, UserRole
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.api.auth import get_current_user
from oneonone.api.deps import get_meeting_or_404, raise_for_result
from oneonone.services import meeting_lifecycle
from oneonone.services.access import can_view_meeting, is_admin, is_participant
from oneonone.services.effects import Effects, get_effects
from oneonone.utils.helpers import utcnow

router = APIRouter()


# --- Pydantic Schemas ---

class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class MeetingResponse(BaseModel):
    id: int
    employee_id: int
    reporter_id: int
    employee: Optional[UserSummary]
    reporter: Optional[UserSummary]
    meeting_date: datetime
    status: MeetingStatus
    proposed_by_id: Optional[int]
    recurring_schedule_id: Optional[int]
    check_in_personal: Optional[str]
    check_in_professional: Optional[str]
    priority_goal_professional: Optional[str]
    priority_goal_agency: Optional[str]
    progress_report: Optional[str]
    good_news: Optional[str]
    support_needed: Optional[str]
    priority_discussions: Optional[str]
    heads_up: Optional[str]
    anything_else: Optional[str]
    form_submitted_at: Optional[datetime]
    reminder_24h_sent: bool
    reminder_1h_sent: bool
    calendar_event_id: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class MeetingCreate(BaseModel):
    employee_id: int
    meeting_date: datetime


class MeetingTimeChange(BaseModel):
    meeting_date: Optional[datetime] = None


class MeetingUpdate(BaseModel):
    meeting_date: Optional[datetime] = None
    status: Optional[MeetingStatus] = None


class MeetingForm(BaseModel):
    check_in_personal: Optional[str] = None
    check_in_professional: Optional[str] = None
    priority_goal_professional: Optional[str] = None
    priority_goal_agency: Optional[str] = None
    progress_report: Optional[str] = None
    good_news: Optional[str] = None
    support_needed: Optional[str] = None
    priority_discussions: Optional[str] = None
    heads_up: Optional[str] = None
    anything_else: Optional[str] = None


class MeetingNotes(BaseModel):
    notes: Optional[str] = None


class MeetingNotesResponse(BaseModel):
    id: int
    notes: Optional[str]


# --- Helper ---

def _build_meeting_response(m: Meeting) -> MeetingResponse:
    return MeetingResponse.model_validate(m)


# --- Endpoints ---

@router.get("/", response_model=List[MeetingResponse])
async def list_meetings(
    status: Optional[MeetingStatus] = None,
    upcoming_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Employees see their own meetings, reporters the meetings they take part in,
    administrators everything
    """
    query = select(Meeting).order_by(Meeting.meeting_date.desc())

    if current_user.role == UserRole.EMPLOYEE:
        query = query.where(Meeting.employee_id == current_user.id)
    elif current_user.role == UserRole.REPORTER:
        query = query.where(or_(Meeting.employee_id == current_user.id, Meeting.reporter_id == current_user.id))

    if status:
        query = query.where(Meeting.status == status)
    if upcoming_only:
        query = query.where(Meeting.meeting_date >= utcnow())

    result = await db.execute(query)
    meetings = result.unique().scalars().all()
    return [_build_meeting_response(m) for m in meetings]


@router.get("/{meeting_id}", response_model=MeetingResponse)
async def get_meeting(
    meeting_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get meeting details"""
    meeting = await get_meeting_or_404(db, meeting_id)
    if not can_view_meeting(current_user, meeting):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return _build_meeting_response(meeting)


@router.post("/", response_model=MeetingResponse)
async def create_meeting(
    data: MeetingCreate,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Propose a meeting to an employee (reporters and administrators)"""
    result = await meeting_lifecycle.propose(db, effects, current_user, data.employee_id, data.meeting_date)
    return _build_meeting_response(raise_for_result(result))


@router.post("/{meeting_id}/accept", response_model=MeetingResponse)
async def accept_meeting(
    meeting_id: int,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Receiver accepts the pending proposal"""
    meeting = await get_meeting_or_404(db, meeting_id)
    result = await meeting_lifecycle.accept(db, effects, current_user, meeting)
    return _build_meeting_response(raise_for_result(result))


@router.post("/{meeting_id}/suggest", response_model=MeetingResponse)
async def suggest_new_time(
    meeting_id: int,
    data: MeetingTimeChange,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Receiver counters with a different time"""
    if data.meeting_date is None:
        raise HTTPException(status_code=400, detail="meeting_date is required")
    meeting = await get_meeting_or_404(db, meeting_id)
    result = await meeting_lifecycle.suggest(db, effects, current_user, meeting, data.meeting_date)
    return _build_meeting_response(raise_for_result(result))


@router.put("/{meeting_id}/proposal", response_model=MeetingResponse)
async def change_proposal(
    meeting_id: int,
    data: MeetingTimeChange,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Current proposer moves their own pending proposal"""
    if data.meeting_date is None:
        raise HTTPException(status_code=400, detail="meeting_date is required")
    meeting = await get_meeting_or_404(db, meeting_id)
    result = await meeting_lifecycle.reschedule_proposal(db, effects, current_user, meeting, data.meeting_date)
    return _build_meeting_response(raise_for_result(result))


@router.patch("/{meeting_id}", response_model=MeetingResponse)
async def update_meeting(
    meeting_id: int,
    data: MeetingUpdate,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Move a scheduled meeting, or mark it completed / cancelled (reporter or administrator)"""
    meeting = await get_meeting_or_404(db, meeting_id)
    result = await meeting_lifecycle.update_meeting(
        db, effects, current_user, meeting,
        meeting_date=data.meeting_date,
        status=data.status,
    )
    return _build_meeting_response(raise_for_result(result))


@router.delete("/{meeting_id}")
async def delete_meeting(
    meeting_id: int,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Hard delete a meeting (administrators only)"""
    meeting = await get_meeting_or_404(db, meeting_id)
    raise_for_result(await meeting_lifecycle.delete(db, effects, current_user, meeting))
    return {"message": "Meeting deleted"}


@router.post("/{meeting_id}/form", response_model=MeetingResponse)
async def submit_form(
    meeting_id: int,
    data: MeetingForm,
    db: AsyncSession = Depends(get_db),
    effects: Effects = Depends(get_effects),
    current_user: User = Depends(get_current_user)
):
    """Employee submits or edits the pre-meeting form"""
    meeting = await get_meeting_or_404(db, meeting_id)
    result = await meeting_lifecycle.submit_form(db, effects, current_user, meeting, data.model_dump())
    return _build_meeting_response(raise_for_result(result))


@router.get("/{meeting_id}/notes", response_model=MeetingNotesResponse)
async def get_notes(
    meeting_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Reporter's notes (participants and administrators)"""
    meeting = await get_meeting_or_404(db, meeting_id)
    if not is_participant(current_user, meeting) and not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return MeetingNotesResponse(id=meeting.id, notes=meeting.notes)


@router.patch("/{meeting_id}/notes", response_model=MeetingNotesResponse)
async def update_notes(
    meeting_id: int,
    data: MeetingNotes,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Edit the reporter's notes (reporter or administrator)"""
    meeting = await get_meeting_or_404(db, meeting_id)
    result = await meeting_lifecycle.update_notes(db, current_user, meeting, data.notes)
    meeting = raise_for_result(result)
    return MeetingNotesResponse(id=meeting.id, notes=meeting.notes)
