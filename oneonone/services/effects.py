"""
Side-effect ports (calendar, email, in-app notifications) for meeting workflows.

State transitions are committed before any effect runs. Every effect is
best-effort: a failure is logged and swallowed so it never undoes or blocks
the transition, and one failing effect never prevents the others.
"""
import logging
from html import escape
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.config import get_settings
from oneonone.database import get_db
from oneonone.models.meeting import Meeting
from oneonone.models.notification import NotificationType
from oneonone.models.todo import TodoItem
from oneonone.models.user import User
from oneonone.utils.helpers import format_meeting_date

settings = get_settings()
logger = logging.getLogger(__name__)


class CalendarPort(ABC):

    @abstractmethod
    async def create_event(self, meeting: Meeting) -> Optional[str]:
        """Create an event for a meeting, return the external event id"""

    @abstractmethod
    async def update_event(self, event_id: str, meeting: Meeting) -> None:
        pass

    @abstractmethod
    async def delete_event(self, event_id: str, meeting: Meeting) -> None:
        pass


class EmailPort(ABC):

    @abstractmethod
    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        pass


class NotificationPort(ABC):

    @abstractmethod
    async def notify(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> None:
        pass


async def best_effort(label: str, awaitable: Awaitable[Any]) -> Any:
    """Await a side effect; log and return None on any failure"""
    try:
        return await awaitable
    except Exception as e:
        logger.error(f"Side effect '{label}' failed: {e}")
        return None


def _meeting_link(meeting_id: int) -> str:
    return f"/meetings/{meeting_id}"


def _meeting_url(meeting_id: int) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/meetings/{meeting_id}"


@dataclass
class Effects:
    """Bundle of ports plus the meeting-workflow messages built on them"""
    calendar: CalendarPort
    email: EmailPort
    notifications: NotificationPort

    # --- primitives ---

    async def _notify(self, user_id: int, type: NotificationType, title: str, message: str, link: Optional[str]):
        await best_effort(
            f"notify:{type.value}:user={user_id}",
            self.notifications.notify(user_id, type, title, message, link),
        )

    async def _email(self, user: Optional[User], subject: str, text: str):
        if user is None or not user.email:
            return
        html = "".join(f"<p>{escape(line)}</p>" for line in text.split("\n\n"))
        await best_effort(f"email:{subject}:to={user.email}", self.email.send(user.email, subject, text, html))

    async def create_calendar_event(self, meeting: Meeting) -> Optional[str]:
        return await best_effort(f"calendar:create:meeting={meeting.id}", self.calendar.create_event(meeting))

    async def update_calendar_event(self, meeting: Meeting):
        if meeting.calendar_event_id:
            await best_effort(
                f"calendar:update:meeting={meeting.id}",
                self.calendar.update_event(meeting.calendar_event_id, meeting),
            )

    async def delete_calendar_event(self, meeting: Meeting):
        if meeting.calendar_event_id:
            await best_effort(
                f"calendar:delete:meeting={meeting.id}",
                self.calendar.delete_event(meeting.calendar_event_id, meeting),
            )

    # --- meeting workflow messages ---

    async def meeting_proposed(self, meeting: Meeting, proposer: User, receiver: User):
        when = format_meeting_date(meeting.meeting_date)
        await self._notify(
            receiver.id,
            NotificationType.MEETING_PROPOSED,
            "New Meeting Proposal",
            f"{proposer.name} proposed a one-on-one on {when}",
            _meeting_link(meeting.id),
        )
        await self._email(
            receiver,
            "One-on-One Proposed",
            f"Hi {receiver.name},\n\n{proposer.name} proposed a one-on-one meeting on {when}.\n\n"
            f"Accept it or suggest a different time: {_meeting_url(meeting.id)}",
        )

    async def meeting_accepted(self, meeting: Meeting, acceptor: User, proposer: User):
        when = format_meeting_date(meeting.meeting_date)
        await self._email(
            proposer,
            "One-on-One Accepted",
            f"Hi {proposer.name},\n\n{acceptor.name} accepted the one-on-one on {when}.\n\n{_meeting_url(meeting.id)}",
        )
        await self._notify(
            proposer.id,
            NotificationType.MEETING_ACCEPTED,
            "Meeting Accepted",
            f"{acceptor.name} accepted the one-on-one on {when}",
            _meeting_link(meeting.id),
        )

    async def time_suggested(self, meeting: Meeting, suggester: User, recipient: User):
        when = format_meeting_date(meeting.meeting_date)
        await self._email(
            recipient,
            "New Time Suggested for Your One-on-One",
            f"Hi {recipient.name},\n\n{suggester.name} suggested a new time: {when}.\n\n"
            f"Accept it or suggest another time: {_meeting_url(meeting.id)}",
        )
        await self._notify(
            recipient.id,
            NotificationType.MEETING_SUGGESTED,
            "New Time Suggested",
            f"{suggester.name} suggested {when} for your one-on-one",
            _meeting_link(meeting.id),
        )

    async def meeting_completed(self, meeting: Meeting, completed_by: User):
        await self._notify(
            meeting.employee_id,
            NotificationType.MEETING_COMPLETED,
            "Meeting Completed",
            f"{completed_by.name} has marked your one-on-one meeting as completed",
            _meeting_link(meeting.id),
        )

    async def meeting_cancelled(self, meeting: Meeting, cancelled_by: User):
        when = format_meeting_date(meeting.meeting_date)
        await self._notify(
            meeting.employee_id,
            NotificationType.MEETING_CANCELLED,
            "Meeting Cancelled",
            f"{cancelled_by.name} cancelled the one-on-one meeting scheduled for {when}",
            _meeting_link(meeting.id),
        )

    async def form_submitted(self, meeting: Meeting):
        employee, reporter = meeting.employee, meeting.reporter
        await self._email(
            reporter,
            f"{employee.name} submitted their one-on-one form",
            f"Hi {reporter.name},\n\n{employee.name} submitted their form for the one-on-one on "
            f"{format_meeting_date(meeting.meeting_date)}.\n\n{_meeting_url(meeting.id)}",
        )
        await self._notify(
            reporter.id,
            NotificationType.FORM_SUBMITTED,
            "Form Submitted",
            f"{employee.name} has submitted their one-on-one form",
            _meeting_link(meeting.id),
        )

    async def meeting_reminder(self, meeting: Meeting, hours_until: int, send_email: bool):
        employee, reporter = meeting.employee, meeting.reporter
        unit = "hour" if hours_until == 1 else "hours"
        await self._notify(
            employee.id,
            NotificationType.MEETING_REMINDER,
            "Meeting Reminder",
            f"Your one-on-one with {reporter.name} is in {hours_until} {unit}",
            _meeting_link(meeting.id),
        )
        await self._notify(
            reporter.id,
            NotificationType.MEETING_REMINDER,
            "Meeting Reminder",
            f"Your one-on-one with {employee.name} is in {hours_until} {unit}",
            _meeting_link(meeting.id),
        )
        if send_email:
            await self._email(
                employee,
                f"Meeting Reminder: One-on-One in {hours_until} {unit}",
                f"Hi {employee.name},\n\nThis is a reminder that you have a one-on-one meeting with "
                f"{reporter.name} on {format_meeting_date(meeting.meeting_date)}.\n\n"
                "Please prepare any topics you'd like to discuss.",
            )

    async def todo_assigned(self, todo: TodoItem, creator: User, assignee: User):
        await self._notify(
            assignee.id,
            NotificationType.TODO_ASSIGNED,
            "New Task Assigned",
            f'{creator.name} assigned you a task: "{todo.title}"',
            "/todos",
        )
        due = f"\n\nDue: {todo.due_date.isoformat()}" if todo.due_date else ""
        await self._email(
            assignee,
            f"New task: {todo.title}",
            f"Hi {assignee.name},\n\n{creator.name} assigned you a task: {todo.title}{due}",
        )

    async def recording_ready(self, meeting: Meeting):
        for user_id in (meeting.employee_id, meeting.reporter_id):
            await self._notify(
                user_id,
                NotificationType.RECORDING_READY,
                "Recording Ready",
                "Meeting recording has been processed and is ready to view",
                _meeting_link(meeting.id),
            )


def build_effects(db: AsyncSession) -> Effects:
    """Production wiring: Google Calendar, SMTP and database notifications"""
    from oneonone.services.google_calendar import GoogleCalendarService
    from oneonone.services.email_service import SmtpEmailService
    from oneonone.services.notification_service import DatabaseNotificationService

    return Effects(
        calendar=GoogleCalendarService(),
        email=SmtpEmailService(),
        notifications=DatabaseNotificationService(db),
    )


async def get_effects(db: AsyncSession = Depends(get_db)) -> Effects:
    """Dependency for the request-scoped effects bundle"""
    return build_effects(db)
