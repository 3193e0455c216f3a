"""
Recurring schedule model - a standing one-on-one cadence between a reporter and an employee
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from oneonone.database import Base
import enum


class RecurringFrequency(str, enum.Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class RecurringSchedule(Base):
    __tablename__ = "recurring_schedules"

    id = Column(Integer, primary_key=True, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    frequency = Column(Enum(RecurringFrequency, native_enum=False), nullable=False, default=RecurringFrequency.BIWEEKLY)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday .. 6 = Saturday
    time_of_day = Column(String, nullable=False)  # "HH:mm", reporter's local time
    next_meeting_date = Column(DateTime, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)  # soft-delete flag
    last_generated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    employee = relationship("User", foreign_keys=[employee_id], lazy="joined")
    reporter = relationship("User", foreign_keys=[reporter_id], lazy="joined")


# At most one active schedule per pair, per reporter slot and per employee slot
Index(
    "uq_active_schedule_pair",
    RecurringSchedule.reporter_id,
    RecurringSchedule.employee_id,
    unique=True,
    sqlite_where=RecurringSchedule.is_active == True,  # noqa: E712
    postgresql_where=RecurringSchedule.is_active == True,  # noqa: E712
)
Index(
    "uq_active_schedule_reporter_slot",
    RecurringSchedule.reporter_id,
    RecurringSchedule.day_of_week,
    RecurringSchedule.time_of_day,
    unique=True,
    sqlite_where=RecurringSchedule.is_active == True,  # noqa: E712
    postgresql_where=RecurringSchedule.is_active == True,  # noqa: E712
)
Index(
    "uq_active_schedule_employee_slot",
    RecurringSchedule.employee_id,
    RecurringSchedule.day_of_week,
    RecurringSchedule.time_of_day,
    unique=True,
    sqlite_where=RecurringSchedule.is_active == True,  # noqa: E712
    postgresql_where=RecurringSchedule.is_active == True,  # noqa: E712
)
