"""
Reminder sweep and cron endpoint tests
"""
import pytest
from datetime import datetime, timedelta

from oneonone.config import get_settings
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.services.reminders import run_reminder_sweep
from oneonone.services.scheduler import run_meeting_sweeps

NOW = datetime(2026, 10, 19, 9, 0)


async def _meeting(db, users, when, status=MeetingStatus.SCHEDULED, **extra):
    meeting = Meeting(
        employee_id=users["employee"].id,
        reporter_id=users["reporter"].id,
        meeting_date=when,
        status=status,
        proposed_by_id=users["reporter"].id,
        **extra,
    )
    db.add(meeting)
    await db.commit()
    await db.refresh(meeting)
    return meeting


# ===================== REMINDERS =====================


async def test_24h_reminder_notifies_both_and_emails_employee(db_session, seed_data, effects):
    meeting = await _meeting(db_session, seed_data, NOW + timedelta(hours=20))

    result = await run_reminder_sweep(db_session, effects, now=NOW)

    assert result == {"reminders_24h_sent": 1, "reminders_1h_sent": 0, "errors": []}
    assert effects.notifications.types_for(seed_data["employee"].id) == ["MEETING_REMINDER"]
    assert effects.notifications.types_for(seed_data["reporter"].id) == ["MEETING_REMINDER"]
    assert effects.email.sent == [("evan@example.com", "Meeting Reminder: One-on-One in 20 hours")]

    await db_session.refresh(meeting)
    assert meeting.reminder_24h_sent is True
    assert meeting.reminder_1h_sent is False


async def test_reminders_sent_once(db_session, seed_data, effects):
    await _meeting(db_session, seed_data, NOW + timedelta(hours=20))

    await run_reminder_sweep(db_session, effects, now=NOW)
    result = await run_reminder_sweep(db_session, effects, now=NOW + timedelta(minutes=30))

    assert result["reminders_24h_sent"] == 0
    assert len(effects.email.sent) == 1


async def test_1h_reminder_has_no_email(db_session, seed_data, effects):
    await _meeting(db_session, seed_data, NOW + timedelta(minutes=45), reminder_24h_sent=True)

    result = await run_reminder_sweep(db_session, effects, now=NOW)

    assert result["reminders_1h_sent"] == 1
    assert result["reminders_24h_sent"] == 0
    assert effects.email.sent == []


async def test_both_passes_for_imminent_meeting(db_session, seed_data, effects):
    await _meeting(db_session, seed_data, NOW + timedelta(minutes=45))

    result = await run_reminder_sweep(db_session, effects, now=NOW)

    assert result["reminders_24h_sent"] == 1
    assert result["reminders_1h_sent"] == 1
    assert effects.email.sent == [("evan@example.com", "Meeting Reminder: One-on-One in 1 hour")]


@pytest.mark.parametrize("offset,subject", [
    (timedelta(hours=24), "Meeting Reminder: One-on-One in 24 hours"),
    (timedelta(hours=2, minutes=10), "Meeting Reminder: One-on-One in 3 hours"),
    (timedelta(minutes=5), "Meeting Reminder: One-on-One in 1 hour"),
])
async def test_reminder_email_states_time_left(db_session, seed_data, effects, offset, subject):
    await _meeting(db_session, seed_data, NOW + offset, reminder_1h_sent=True)

    await run_reminder_sweep(db_session, effects, now=NOW)

    assert effects.email.sent == [("evan@example.com", subject)]


@pytest.mark.parametrize("status,offset", [
    (MeetingStatus.PROPOSED, timedelta(hours=2)),
    (MeetingStatus.CANCELLED, timedelta(hours=2)),
    (MeetingStatus.SCHEDULED, timedelta(hours=30)),
    (MeetingStatus.SCHEDULED, timedelta(hours=-1)),
])
async def test_no_reminder_outside_window(db_session, seed_data, effects, status, offset):
    await _meeting(db_session, seed_data, NOW + offset, status=status)

    result = await run_reminder_sweep(db_session, effects, now=NOW)

    assert result == {"reminders_24h_sent": 0, "reminders_1h_sent": 0, "errors": []}
    assert effects.notifications.sent == []


async def test_reminders_disabled(db_session, seed_data, effects, monkeypatch):
    monkeypatch.setattr(get_settings(), "ENABLE_EMAIL_REMINDERS", False)
    await _meeting(db_session, seed_data, NOW + timedelta(hours=2))

    result = await run_reminder_sweep(db_session, effects, now=NOW)

    assert result["reminders_24h_sent"] == 0
    assert effects.notifications.sent == []


async def test_failed_reminder_is_retried_next_sweep(db_session, seed_data, effects, monkeypatch):
    meeting = await _meeting(db_session, seed_data, NOW + timedelta(hours=20))
    meeting_id = meeting.id

    async def broken(*args, **kwargs):
        raise RuntimeError("notification store down")

    monkeypatch.setattr(effects, "meeting_reminder", broken)
    result = await run_reminder_sweep(db_session, effects, now=NOW)
    assert result["errors"] == [f"Failed to send 24h reminder for meeting {meeting_id}"]

    monkeypatch.undo()
    result = await run_reminder_sweep(db_session, effects, now=NOW)
    assert result["reminders_24h_sent"] == 1


async def test_combined_sweep_counts(db_session, seed_data, effects):
    await _meeting(db_session, seed_data, NOW + timedelta(hours=3))

    result = await run_meeting_sweeps(db_session, effects, now=NOW)

    assert result == {
        "recurring_meetings_created": 0,
        "reminders_24h_sent": 1,
        "reminders_1h_sent": 0,
        "errors": [],
    }


# ===================== CRON ENDPOINT =====================


async def test_cron_open_without_secret_in_development(unauth_client):
    r = await unauth_client.post("/api/cron/meetings")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["recurring_meetings_created"] == 0
    assert body["errors"] == []


async def test_cron_requires_matching_secret(unauth_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "CRON_SECRET", "s3cret")

    r = await unauth_client.post("/api/cron/meetings")
    assert r.status_code == 401

    r = await unauth_client.post("/api/cron/meetings", headers={"x-cron-secret": "wrong"})
    assert r.status_code == 401

    r = await unauth_client.post("/api/cron/meetings", headers={"x-cron-secret": "s3cret"})
    assert r.status_code == 200


async def test_cron_disabled_in_production_without_secret(unauth_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "ENVIRONMENT", "production")

    r = await unauth_client.post("/api/cron/meetings")
    assert r.status_code == 503
