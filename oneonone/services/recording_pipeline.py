"""
Recording pipeline: stored audio -> Whisper transcript -> Claude analysis.

Runs detached from the request that started it. Progress is persisted on the
recording row after every stage (TRANSCRIBING, ANALYZING, COMPLETED) so a
client can poll; any failure is stored as FAILED + error_message. There is no
retry and no resume: a process restart mid-run leaves the row where it was.
"""
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oneonone.agents.transcript_analysis.agent import TranscriptAnalysisAgent
from oneonone.config import get_settings
from oneonone.database import AsyncSessionLocal
from oneonone.models.meeting import Meeting
from oneonone.models.recording import MeetingRecording, RecordingStatus
from oneonone.services.effects import Effects, build_effects
from oneonone.services.transcription_service import transcription_service
from oneonone.utils.helpers import utcnow

logger = logging.getLogger(__name__)

MIN_AUDIO_BYTES = 1000

analysis_agent = TranscriptAnalysisAgent()


def services_configured() -> bool:
    return transcription_service.is_available and analysis_agent.is_available


def recording_path(meeting_id: int, filename: str) -> Path:
    """Storage location for a meeting's audio, keeping the upload's extension"""
    suffix = Path(filename or "recording.webm").suffix.lower() or ".webm"
    return Path(get_settings().RECORDINGS_DIR) / f"meeting_{meeting_id}{suffix}"


async def get_recording(db: AsyncSession, meeting_id: int) -> Optional[MeetingRecording]:
    result = await db.execute(select(MeetingRecording).where(MeetingRecording.meeting_id == meeting_id))
    return result.scalar_one_or_none()


async def _read_audio(path: str) -> bytes:
    # File IO is blocking
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, Path(path).read_bytes)


async def _set_status(db: AsyncSession, recording: MeetingRecording, status: RecordingStatus):
    recording.status = status
    await db.commit()
    logger.info(f"Recording {recording.id} (meeting {recording.meeting_id}) -> {status.value}")


async def _run_stages(db: AsyncSession, recording: MeetingRecording, meeting: Meeting, language: Optional[str]):
    await _set_status(db, recording, RecordingStatus.TRANSCRIBING)

    try:
        audio = await _read_audio(recording.audio_path)
    except OSError as e:
        raise RuntimeError(f"Failed to read audio from storage: {e}")
    if len(audio) < MIN_AUDIO_BYTES:
        raise ValueError("Audio file is too small or empty")

    filename = recording.original_filename or Path(recording.audio_path).name
    transcription = await transcription_service.transcribe(audio, filename, language)
    if not transcription.text.strip():
        raise ValueError("No speech was detected in the recording")

    recording.transcript = transcription.text
    recording.language = transcription.language
    recording.duration_seconds = transcription.duration_seconds
    await _set_status(db, recording, RecordingStatus.ANALYZING)

    analysis = await analysis_agent.analyze(
        transcription.text,
        meeting.employee.name,
        meeting.reporter.name,
    )

    recording.summary = analysis["summary"]
    recording.key_points = analysis["key_points"]
    recording.suggested_todos = analysis["suggested_todos"]
    recording.sentiment = analysis["sentiment"]
    recording.quality_score = analysis["quality_score"]
    recording.quality_details = analysis["quality_details"]
    recording.common_themes = analysis["common_themes"]
    recording.error_message = None
    recording.processed_at = utcnow()
    await _set_status(db, recording, RecordingStatus.COMPLETED)


async def process_recording(
    meeting_id: int,
    language: Optional[str] = None,
    session_factory: async_sessionmaker = AsyncSessionLocal,
    effects_factory: Callable[[AsyncSession], Effects] = build_effects,
):
    """Background entry point; never raises"""
    async with session_factory() as db:
        recording = await get_recording(db, meeting_id)
        meeting = await db.get(Meeting, meeting_id)
        if recording is None or meeting is None:
            logger.warning(f"No recording to process for meeting {meeting_id}")
            return

        recording_id = recording.id
        try:
            await _run_stages(db, recording, meeting, language)
        except Exception as e:
            logger.error(f"Recording processing failed for meeting {meeting_id}: {e}")
            await db.rollback()
            recording = await db.get(MeetingRecording, recording_id, populate_existing=True)
            recording.status = RecordingStatus.FAILED
            recording.error_message = str(e) or e.__class__.__name__
            await db.commit()
            return

        await effects_factory(db).recording_ready(meeting)
