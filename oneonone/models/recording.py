"""
Meeting recording model - uploaded audio plus AI transcription/analysis results
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, JSON, Enum
from datetime import datetime
from oneonone.database import Base
import enum


class RecordingStatus(str, enum.Enum):
    UPLOADED = "UPLOADED"
    TRANSCRIBING = "TRANSCRIBING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class MeetingRecording(Base):
    __tablename__ = "meeting_recordings"

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id", ondelete="CASCADE"), unique=True, nullable=False)

    # File metadata
    audio_path = Column(String, nullable=False)
    original_filename = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    content_type = Column(String, nullable=True)

    status = Column(Enum(RecordingStatus, native_enum=False), nullable=False, default=RecordingStatus.UPLOADED)

    # Transcription
    transcript = Column(Text, nullable=True)
    language = Column(String, nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # AI analysis
    summary = Column(Text, nullable=True)
    key_points = Column(JSON, nullable=True)
    suggested_todos = Column(JSON, nullable=True)
    sentiment = Column(JSON, nullable=True)
    quality_score = Column(Float, nullable=True)
    quality_details = Column(JSON, nullable=True)
    common_themes = Column(JSON, nullable=True)

    error_message = Column(Text, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
