"""
Meeting model - one scheduled or proposed one-on-one session
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from oneonone.database import Base
import enum


class MeetingStatus(str, enum.Enum):
    PROPOSED = "PROPOSED"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (MeetingStatus.PROPOSED, MeetingStatus.SCHEDULED)

# Free-text fields the employee fills in before the meeting
FORM_FIELDS = (
    "check_in_personal",
    "check_in_professional",
    "priority_goal_professional",
    "priority_goal_agency",
    "progress_report",
    "good_news",
    "support_needed",
    "priority_discussions",
    "heads_up",
    "anything_else",
)


class Meeting(Base):
    __tablename__ = "meetings"
    __table_args__ = (
        CheckConstraint("employee_id <> reporter_id", name="ck_meeting_distinct_participants"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    meeting_date = Column(DateTime, nullable=False, index=True)
    status = Column(Enum(MeetingStatus, native_enum=False), nullable=False, default=MeetingStatus.PROPOSED)
    proposed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    recurring_schedule_id = Column(Integer, ForeignKey("recurring_schedules.id"), nullable=True)

    # Employee form
    check_in_personal = Column(Text, nullable=True)
    check_in_professional = Column(Text, nullable=True)
    priority_goal_professional = Column(Text, nullable=True)
    priority_goal_agency = Column(Text, nullable=True)
    progress_report = Column(Text, nullable=True)
    good_news = Column(Text, nullable=True)
    support_needed = Column(Text, nullable=True)
    priority_discussions = Column(Text, nullable=True)
    heads_up = Column(Text, nullable=True)
    anything_else = Column(Text, nullable=True)
    form_submitted_at = Column(DateTime, nullable=True)

    # Reporter's private notes
    notes = Column(Text, nullable=True)

    # Reminders
    reminder_24h_sent = Column(Boolean, default=False, nullable=False)
    reminder_1h_sent = Column(Boolean, default=False, nullable=False)

    # External calendar event (Google event id)
    calendar_event_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    employee = relationship("User", foreign_keys=[employee_id], lazy="joined")
    reporter = relationship("User", foreign_keys=[reporter_id], lazy="joined")

    @property
    def receiver_id(self) -> int | None:
        """The participant expected to accept or counter a pending proposal"""
        if self.proposed_by_id == self.reporter_id:
            return self.employee_id
        if self.proposed_by_id == self.employee_id:
            return self.reporter_id
        return None

    def other_party_id(self, user_id: int) -> int:
        return self.reporter_id if user_id == self.employee_id else self.employee_id
