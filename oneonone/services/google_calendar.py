"""
Google Calendar service
Creates, moves and deletes one-on-one events on the reporter's primary calendar
"""
import logging
from datetime import timedelta
from typing import Optional

import httpx

from oneonone.config import get_settings
from oneonone.models.meeting import Meeting
from oneonone.models.user import User
from oneonone.services.effects import CalendarPort

settings = get_settings()
logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


class CalendarError(Exception):
    pass


class GoogleCalendarService(CalendarPort):

    def __init__(self, timeout: float = 15.0):
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET)

    def is_enabled_for(self, user: Optional[User]) -> bool:
        return self.is_configured and user is not None and user.calendar_connected

    async def _access_token(self, client: httpx.AsyncClient, user: User) -> str:
        """Exchange the user's stored refresh token for a short-lived access token"""
        response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": settings.GOOGLE_CLIENT_ID,
                "client_secret": settings.GOOGLE_CLIENT_SECRET,
                "refresh_token": user.google_refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if response.status_code != 200:
            raise CalendarError(f"Token refresh failed for user {user.id}: {response.text}")

        access_token = response.json().get("access_token")
        if not access_token:
            raise CalendarError("No access token in refresh response")
        return access_token

    def _event_body(self, meeting: Meeting) -> dict:
        start = meeting.meeting_date
        end = start + timedelta(minutes=settings.MEETING_DURATION_MINUTES)
        employee, reporter = meeting.employee, meeting.reporter
        return {
            "summary": f"One-on-One: {employee.name} / {reporter.name}",
            "description": f"One-on-one meeting.\n\n{settings.APP_BASE_URL.rstrip('/')}/meetings/{meeting.id}",
            "start": {"dateTime": start.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end.isoformat(), "timeZone": "UTC"},
            "attendees": [{"email": employee.email}, {"email": reporter.email}],
        }

    async def create_event(self, meeting: Meeting) -> Optional[str]:
        if not self.is_enabled_for(meeting.reporter):
            logger.info(f"Calendar not connected for reporter {meeting.reporter_id}; skipping event")
            return None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            token = await self._access_token(client, meeting.reporter)
            response = await client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/primary/events",
                params={"sendUpdates": "all"},
                headers={"Authorization": f"Bearer {token}"},
                json=self._event_body(meeting),
            )
            if response.status_code not in (200, 201):
                raise CalendarError(f"Failed to create calendar event: {response.text}")

            event_id = response.json().get("id")
            logger.info(f"Google Calendar event created: {event_id} (meeting {meeting.id})")
            return event_id

    async def update_event(self, event_id: str, meeting: Meeting) -> None:
        if not self.is_enabled_for(meeting.reporter):
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            token = await self._access_token(client, meeting.reporter)
            response = await client.patch(
                f"{GOOGLE_CALENDAR_API}/calendars/primary/events/{event_id}",
                params={"sendUpdates": "all"},
                headers={"Authorization": f"Bearer {token}"},
                json=self._event_body(meeting),
            )
            if response.status_code != 200:
                raise CalendarError(f"Failed to update calendar event {event_id}: {response.text}")

    async def delete_event(self, event_id: str, meeting: Meeting) -> None:
        if not self.is_enabled_for(meeting.reporter):
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            token = await self._access_token(client, meeting.reporter)
            response = await client.delete(
                f"{GOOGLE_CALENDAR_API}/calendars/primary/events/{event_id}",
                params={"sendUpdates": "all"},
                headers={"Authorization": f"Bearer {token}"},
            )
            # 410 Gone: already deleted on the Google side
            if response.status_code not in (200, 204, 410):
                raise CalendarError(f"Failed to delete calendar event {event_id}: {response.text}")
