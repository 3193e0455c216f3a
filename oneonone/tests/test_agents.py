"""
Transcript analysis agent and recording pipeline tests (AI calls mocked)
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

from oneonone.agents.transcript_analysis.agent import TranscriptAnalysisAgent
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.models.recording import MeetingRecording, RecordingStatus
from oneonone.services import recording_pipeline
from oneonone.services.recording_pipeline import process_recording, get_recording
from oneonone.services.transcription_service import Transcription


ANALYSIS = {
    "summary": "Talked about the Q3 launch.",
    "key_points": ["Launch is on track"],
    "suggested_todos": [{"title": "Book venue", "description": "", "assign_to": "employee", "priority": "HIGH"}],
    "sentiment": {"score": 0.4, "label": "positive", "employee_mood": "upbeat", "reporter_engagement": "high", "overall_tone": "warm"},
    "quality_score": 82,
    "quality_details": {"clarity": 8, "actionability": 7, "engagement": 9, "goal_alignment": 8, "follow_up": 6, "overall_feedback": "Good"},
    "common_themes": ["launch"],
}


# ===================== AGENT =====================


@pytest.fixture()
def agent():
    return TranscriptAnalysisAgent()


async def test_analyze_passes_names_and_transcript(agent):
    with patch.object(agent, "generate_structured_response", new_callable=AsyncMock, return_value=ANALYSIS) as call:
        result = await agent.analyze("Hello there", "Evan Employee", "Rita Reporter")

    kwargs = call.call_args.kwargs
    assert "Hello there" in kwargs["prompt"]
    assert "Evan Employee" in kwargs["system_prompt"]
    assert "Rita Reporter" in kwargs["system_prompt"]
    assert result["summary"] == "Talked about the Q3 launch."
    assert result["quality_score"] == 82
    assert result["suggested_todos"][0]["priority"] == "HIGH"


async def test_out_of_range_values_are_clamped(agent):
    raw = {
        "summary": "  ok  ",
        "sentiment": {"score": 3, "label": "ecstatic"},
        "quality_score": 250,
        "quality_details": {"clarity": 0, "engagement": "n/a"},
    }
    with patch.object(agent, "generate_structured_response", new_callable=AsyncMock, return_value=raw):
        result = await agent.analyze("t", "E", "R")

    assert result["summary"] == "ok"
    assert result["sentiment"]["score"] == 1.0
    assert result["sentiment"]["label"] == "neutral"
    assert result["quality_score"] == 100
    assert result["quality_details"]["clarity"] == 1
    assert result["quality_details"]["engagement"] == 5
    assert result["quality_details"]["follow_up"] == 5
    assert result["key_points"] == []
    assert result["common_themes"] == []


async def test_missing_fields_get_defaults(agent):
    with patch.object(agent, "generate_structured_response", new_callable=AsyncMock, return_value={}):
        result = await agent.analyze("t", "E", "R")

    assert result["quality_score"] == 50
    assert result["sentiment"]["score"] == 0.0
    assert result["suggested_todos"] == []


async def test_non_object_reply_is_rejected(agent):
    with patch.object(agent.claude, "generate_structured_response", new_callable=AsyncMock, return_value=["nope"]):
        with pytest.raises(ValueError):
            await agent.analyze("t", "E", "R")


def test_todo_normalization(agent):
    todos = agent._normalize_todos([
        {"title": "  ", "priority": "HIGH"},
        {"title": "Write doc", "priority": "urgent", "assign_to": "boss"},
        {"title": "Review", "priority": "low", "assign_to": "Reporter"},
    ])
    assert todos == [
        {"title": "Write doc", "description": "", "assign_to": "employee", "priority": "MEDIUM"},
        {"title": "Review", "description": "", "assign_to": "reporter", "priority": "LOW"},
    ]


# ===================== PIPELINE =====================


async def _recording(db, users, path, size=4096):
    meeting = Meeting(
        employee_id=users["employee"].id,
        reporter_id=users["reporter"].id,
        meeting_date=datetime.utcnow() - timedelta(hours=2),
        status=MeetingStatus.COMPLETED,
        proposed_by_id=users["reporter"].id,
    )
    db.add(meeting)
    await db.flush()

    path.write_bytes(b"\x1a" * size)
    recording = MeetingRecording(meeting_id=meeting.id, audio_path=str(path), original_filename=path.name)
    db.add(recording)
    await db.commit()
    return meeting.id


async def _reload(session_factory, meeting_id):
    async with session_factory() as db:
        return await get_recording(db, meeting_id)


async def test_pipeline_completes(session_factory, db_session, seed_data, effects, tmp_path):
    meeting_id = await _recording(db_session, seed_data, tmp_path / "talk.webm")
    transcribe = AsyncMock(return_value=Transcription(text="We talked.", language="en", duration_seconds=600))
    analyze = AsyncMock(return_value=TranscriptAnalysisAgent()._normalize(ANALYSIS))

    with patch.object(recording_pipeline.transcription_service, "transcribe", transcribe), \
         patch.object(recording_pipeline.analysis_agent, "analyze", analyze):
        await process_recording(meeting_id, "en", session_factory, lambda db: effects)

    transcribe.assert_awaited_once()
    assert transcribe.call_args.args[1] == "talk.webm"
    analyze.assert_awaited_once_with("We talked.", "Evan Employee", "Rita Reporter")

    recording = await _reload(session_factory, meeting_id)
    assert recording.status == RecordingStatus.COMPLETED
    assert recording.transcript == "We talked."
    assert recording.duration_seconds == 600
    assert recording.quality_score == 82
    assert recording.sentiment["label"] == "positive"
    assert recording.processed_at is not None
    assert recording.error_message is None

    assert effects.notifications.types_for(seed_data["employee"].id) == ["RECORDING_READY"]
    assert effects.notifications.types_for(seed_data["reporter"].id) == ["RECORDING_READY"]


async def test_pipeline_rejects_tiny_audio(session_factory, db_session, seed_data, effects, tmp_path):
    meeting_id = await _recording(db_session, seed_data, tmp_path / "talk.webm", size=10)
    transcribe = AsyncMock()

    with patch.object(recording_pipeline.transcription_service, "transcribe", transcribe):
        await process_recording(meeting_id, None, session_factory, lambda db: effects)

    transcribe.assert_not_awaited()
    recording = await _reload(session_factory, meeting_id)
    assert recording.status == RecordingStatus.FAILED
    assert recording.error_message == "Audio file is too small or empty"
    assert effects.notifications.sent == []


async def test_pipeline_keeps_transcript_when_analysis_fails(session_factory, db_session, seed_data, effects, tmp_path):
    meeting_id = await _recording(db_session, seed_data, tmp_path / "talk.webm")
    transcribe = AsyncMock(return_value=Transcription(text="We talked.", language="en", duration_seconds=60))
    analyze = AsyncMock(side_effect=RuntimeError("Claude unavailable"))

    with patch.object(recording_pipeline.transcription_service, "transcribe", transcribe), \
         patch.object(recording_pipeline.analysis_agent, "analyze", analyze):
        await process_recording(meeting_id, None, session_factory, lambda db: effects)

    recording = await _reload(session_factory, meeting_id)
    assert recording.status == RecordingStatus.FAILED
    assert recording.error_message == "Claude unavailable"
    assert recording.transcript == "We talked."


async def test_pipeline_fails_on_silence(session_factory, db_session, seed_data, effects, tmp_path):
    meeting_id = await _recording(db_session, seed_data, tmp_path / "talk.webm")
    transcribe = AsyncMock(return_value=Transcription(text="   ", language="en", duration_seconds=60))

    with patch.object(recording_pipeline.transcription_service, "transcribe", transcribe):
        await process_recording(meeting_id, None, session_factory, lambda db: effects)

    recording = await _reload(session_factory, meeting_id)
    assert recording.status == RecordingStatus.FAILED
    assert recording.error_message == "No speech was detected in the recording"


async def test_pipeline_without_recording_is_a_noop(session_factory, seed_data, effects):
    await process_recording(9999, None, session_factory, lambda db: effects)
    assert effects.notifications.sent == []
