"""
In-app notification model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Enum
from datetime import datetime
from oneonone.database import Base
import enum


class NotificationType(str, enum.Enum):
    MEETING_PROPOSED = "MEETING_PROPOSED"
    MEETING_SCHEDULED = "MEETING_SCHEDULED"
    MEETING_ACCEPTED = "MEETING_ACCEPTED"
    MEETING_SUGGESTED = "MEETING_SUGGESTED"
    MEETING_CANCELLED = "MEETING_CANCELLED"
    MEETING_COMPLETED = "MEETING_COMPLETED"
    MEETING_REMINDER = "MEETING_REMINDER"
    FORM_SUBMITTED = "FORM_SUBMITTED"
    TODO_ASSIGNED = "TODO_ASSIGNED"
    RECORDING_READY = "RECORDING_READY"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(NotificationType, native_enum=False), nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
