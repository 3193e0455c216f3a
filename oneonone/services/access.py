"""
Authorization gate - who may see or act on an employee's records
"""
from typing import Optional

from oneonone.models.meeting import Meeting
from oneonone.models.user import User, UserRole


def can_access_record(
    role: UserRole,
    caller_id: int,
    subject_id: int,
    subject_manager_id: Optional[int],
) -> bool:
    """
    Rules, first match wins:
      1. administrators always pass
      2. a caller may access their own records
      3. a reporter may access the records of their direct reports
    """
    if role == UserRole.SUPER_ADMIN:
        return True
    if caller_id == subject_id:
        return True
    if role == UserRole.REPORTER and subject_manager_id is not None and subject_manager_id == caller_id:
        return True
    return False


def is_admin(user: User) -> bool:
    return user.role == UserRole.SUPER_ADMIN


def is_participant(user: User, meeting: Meeting) -> bool:
    return user.id in (meeting.employee_id, meeting.reporter_id)


def can_view_meeting(user: User, meeting: Meeting) -> bool:
    """Participants, the employee's manager chain and admins"""
    if is_participant(user, meeting):
        return True
    return can_access_record(
        user.role,
        user.id,
        meeting.employee_id,
        meeting.employee.reports_to_id if meeting.employee else None,
    )
