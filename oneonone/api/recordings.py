"""
Meeting recording endpoints - audio upload, AI processing trigger and results
"""
import os
import logging
from typing import Optional, List, Any
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from pydantic import BaseModel

from oneonone.config import get_settings
from oneonone.database import get_db, get_session_factory
from oneonone.models.user import User, UserRole
from oneonone.models.meeting import Meeting
from oneonone.models.recording import MeetingRecording, RecordingStatus
from oneonone.api.auth import get_current_user
from oneonone.api.deps import get_meeting_or_404
from oneonone.services.access import can_access_record, can_view_meeting
from oneonone.services.recording_pipeline import (
    get_recording, process_recording, recording_path, services_configured,
)
from oneonone.services.transcription_service import SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)
settings = get_settings()

ALLOWED_EXTENSIONS = {".webm", ".mp3", ".mp4", ".m4a", ".wav", ".ogg", ".mpeg", ".mpga"}

router = APIRouter()


# ─── Schemas ───

class RecordingResponse(BaseModel):
    id: int
    meeting_id: int
    original_filename: Optional[str] = None
    file_size: Optional[int] = None
    content_type: Optional[str] = None
    status: RecordingStatus
    transcript: Optional[str] = None
    language: Optional[str] = None
    duration_seconds: Optional[int] = None
    summary: Optional[str] = None
    key_points: Optional[List[str]] = None
    suggested_todos: Optional[List[dict]] = None
    sentiment: Optional[dict] = None
    quality_score: Optional[float] = None
    quality_details: Optional[dict] = None
    common_themes: Optional[List[Any]] = None
    error_message: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProcessRequest(BaseModel):
    language: Optional[str] = None


# ─── Helpers ───

def _check_can_manage(user: User, meeting: Meeting):
    """Uploading and processing belong to the reporter side"""
    employee = meeting.employee
    allowed = user.id == meeting.reporter_id or (
        user.role in (UserRole.REPORTER, UserRole.SUPER_ADMIN)
        and user.id != meeting.employee_id
        and can_access_record(user.role, user.id, meeting.employee_id, employee.reports_to_id if employee else None)
    )
    if not allowed:
        raise HTTPException(403, "Only the reporter can manage meeting recordings")


def _write_file(path: str, content: bytes):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)


# ─── Endpoints ───

@router.post("/{meeting_id}/recording", response_model=RecordingResponse)
async def upload_recording(
    meeting_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Upload (or replace) the audio recording of a meeting"""
    meeting = await get_meeting_or_404(db, meeting_id)
    _check_can_manage(current_user, meeting)

    ext = os.path.splitext(file.filename or "recording.webm")[1].lower()
    if ext and ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(400, f"File type '{ext}' not allowed.")

    content = await file.read()
    max_size = settings.MAX_RECORDING_SIZE_MB * 1024 * 1024
    if len(content) > max_size:
        raise HTTPException(413, f"File too large. Maximum size: {settings.MAX_RECORDING_SIZE_MB}MB")
    if not content:
        raise HTTPException(400, "Uploaded file is empty")

    path = str(recording_path(meeting_id, file.filename or "recording.webm"))
    recording = await get_recording(db, meeting_id)
    if recording and recording.audio_path != path and os.path.exists(recording.audio_path):
        os.remove(recording.audio_path)

    _write_file(path, content)
    logger.info(f"User {current_user.id} uploaded recording for meeting {meeting_id} ({len(content)} bytes)")

    if recording is None:
        recording = MeetingRecording(meeting_id=meeting_id, audio_path=path)
        db.add(recording)

    # A new upload discards any previous results
    recording.audio_path = path
    recording.original_filename = file.filename
    recording.file_size = len(content)
    recording.content_type = file.content_type
    recording.status = RecordingStatus.UPLOADED
    for field in (
        "transcript", "language", "duration_seconds", "summary", "key_points", "suggested_todos",
        "sentiment", "quality_score", "quality_details", "common_themes", "error_message", "processed_at",
    ):
        setattr(recording, field, None)

    await db.commit()
    await db.refresh(recording)
    return recording


@router.post("/{meeting_id}/recording/process", response_model=RecordingResponse)
async def start_processing(
    meeting_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[ProcessRequest] = None,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    current_user: User = Depends(get_current_user),
):
    """Kick off transcription and analysis; returns at once, poll GET for progress"""
    meeting = await get_meeting_or_404(db, meeting_id)
    _check_can_manage(current_user, meeting)

    recording = await get_recording(db, meeting_id)
    if not recording:
        raise HTTPException(400, "No recording found for this meeting")
    if not services_configured():
        raise HTTPException(400, "AI services are not configured")

    language = data.language if data else None
    if language and language != "auto" and language not in SUPPORTED_LANGUAGES:
        raise HTTPException(400, f"Unsupported language '{language}'")

    recording.status = RecordingStatus.UPLOADED
    recording.error_message = None
    await db.commit()
    await db.refresh(recording)

    background_tasks.add_task(process_recording, meeting_id, language, session_factory)
    return recording


@router.get("/{meeting_id}/recording", response_model=RecordingResponse)
async def get_meeting_recording(
    meeting_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    meeting = await get_meeting_or_404(db, meeting_id)
    if not can_view_meeting(current_user, meeting):
        raise HTTPException(403, "Unauthorized")

    recording = await get_recording(db, meeting_id)
    if not recording:
        raise HTTPException(404, "Recording not found")
    return recording
