"""
User model - employees, reporters (managers) and administrators
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum
from datetime import datetime
from oneonone.database import Base
import enum


class UserRole(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    REPORTER = "REPORTER"
    SUPER_ADMIN = "SUPER_ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(UserRole, native_enum=False), nullable=False, default=UserRole.EMPLOYEE)
    reports_to_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, default=True)

    # Working hours / locale
    time_zone = Column(String, nullable=True)  # IANA name, e.g. "Asia/Kolkata"
    work_day_start = Column(String, nullable=True)  # "HH:mm"
    work_day_end = Column(String, nullable=True)

    # Google Calendar connection
    google_refresh_token = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def calendar_connected(self) -> bool:
        return bool(self.google_refresh_token)
