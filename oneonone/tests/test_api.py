"""
API tests - auth, users, todos, notifications and recordings
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

from oneonone.config import get_settings
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.models.notification import NotificationType
from oneonone.models.recording import RecordingStatus
from oneonone.services.notification_service import DatabaseNotificationService
from oneonone.services.recording_pipeline import get_recording


async def _meeting(db, users, status=MeetingStatus.SCHEDULED, days=3):
    meeting = Meeting(
        employee_id=users["employee"].id,
        reporter_id=users["reporter"].id,
        meeting_date=datetime.utcnow().replace(second=0, microsecond=0) + timedelta(days=days),
        status=status,
        proposed_by_id=users["reporter"].id,
    )
    db.add(meeting)
    await db.commit()
    await db.refresh(meeting)
    return meeting


# ===================== GENERAL =====================


async def test_root(unauth_client):
    r = await unauth_client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"


async def test_health(unauth_client):
    r = await unauth_client.get("/health")
    assert r.json() == {"status": "healthy"}


# ===================== AUTH =====================


async def test_login_returns_token(unauth_client):
    r = await unauth_client.post("/api/auth/login", data={"username": "rita@example.com", "password": "testpass123"})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = await unauth_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["email"] == "rita@example.com"
    assert r.json()["role"] == "REPORTER"


async def test_login_wrong_password(unauth_client):
    r = await unauth_client.post("/api/auth/login", data={"username": "rita@example.com", "password": "nope"})
    assert r.status_code == 401


async def test_login_deactivated_account(unauth_client, db_session, seed_data):
    seed_data["employee"].is_active = False
    await db_session.commit()

    r = await unauth_client.post("/api/auth/login", data={"username": "evan@example.com", "password": "testpass123"})
    assert r.status_code == 403


@pytest.mark.parametrize("path", ["/api/auth/me", "/api/meetings/", "/api/todos/", "/api/notifications/"])
async def test_requires_auth(unauth_client, path):
    r = await unauth_client.get(path)
    assert r.status_code == 401


async def test_invalid_token(unauth_client):
    r = await unauth_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


# ===================== USERS =====================


async def test_list_users_scoped_by_role(admin_client, reporter_client, employee_client):
    r = await admin_client.get("/api/users/")
    assert len(r.json()) == 5

    r = await reporter_client.get("/api/users/")
    assert {u["email"] for u in r.json()} == {"rita@example.com", "evan@example.com"}

    r = await employee_client.get("/api/users/")
    assert [u["email"] for u in r.json()] == ["evan@example.com"]


async def test_get_user_access(reporter_client, seed_data):
    r = await reporter_client.get(f"/api/users/{seed_data['employee'].id}")
    assert r.status_code == 200

    r = await reporter_client.get(f"/api/users/{seed_data['other_employee'].id}")
    assert r.status_code == 403

    r = await reporter_client.get("/api/users/9999")
    assert r.status_code == 404


async def test_admin_creates_user(admin_client, seed_data):
    r = await admin_client.post("/api/users/", json={
        "email": "nina@example.com",
        "name": "Nina New",
        "password": "welcome1",
        "reports_to_id": seed_data["reporter"].id,
        "time_zone": "Europe/Berlin",
    })
    assert r.status_code == 200
    assert r.json()["role"] == "EMPLOYEE"
    assert r.json()["reports_to_id"] == seed_data["reporter"].id

    r = await admin_client.post("/api/auth/login", data={"username": "nina@example.com", "password": "welcome1"})
    assert r.status_code == 200


async def test_create_user_rules(admin_client, reporter_client):
    payload = {"email": "rita@example.com", "name": "Dup", "password": "x"}
    r = await admin_client.post("/api/users/", json=payload)
    assert r.status_code == 400

    r = await admin_client.post("/api/users/", json={"email": "z@example.com", "name": "Z", "password": "x", "reports_to_id": 9999})
    assert r.status_code == 404

    r = await admin_client.post("/api/users/", json={"email": "z@example.com", "name": "Z", "password": "x", "time_zone": "Mars/Base"})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("time_zone")

    r = await reporter_client.post("/api/users/", json={"email": "z@example.com", "name": "Z", "password": "x"})
    assert r.status_code == 403


async def test_admin_updates_user(admin_client, seed_data):
    employee_id = seed_data["employee"].id
    r = await admin_client.patch(f"/api/users/{employee_id}", json={
        "role": "REPORTER",
        "time_zone": "Asia/Kolkata",
        "work_day_start": "09:30",
        "work_day_end": "18:00",
        "name": None,
    })
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "REPORTER"
    assert body["time_zone"] == "Asia/Kolkata"
    assert body["work_day_start"] == "09:30"
    assert body["work_day_end"] == "18:00"
    assert body["name"] == "Evan Employee"
    assert body["reports_to_id"] == seed_data["reporter"].id


async def test_admin_moves_and_clears_manager(admin_client, seed_data):
    employee_id = seed_data["employee"].id
    r = await admin_client.patch(f"/api/users/{employee_id}", json={"reports_to_id": seed_data["other_reporter"].id})
    assert r.status_code == 200
    assert r.json()["reports_to_id"] == seed_data["other_reporter"].id

    r = await admin_client.patch(f"/api/users/{employee_id}", json={"reports_to_id": None})
    assert r.status_code == 200
    assert r.json()["reports_to_id"] is None


async def test_update_user_rules(admin_client, reporter_client, seed_data):
    reporter_id = seed_data["reporter"].id

    r = await admin_client.patch(f"/api/users/{reporter_id}", json={"reports_to_id": seed_data["employee"].id})
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot assign manager who reports to this user"

    r = await admin_client.patch(f"/api/users/{reporter_id}", json={"reports_to_id": reporter_id})
    assert r.status_code == 400
    assert r.json()["detail"] == "A user cannot report to themselves"

    r = await admin_client.patch(f"/api/users/{reporter_id}", json={"reports_to_id": 9999})
    assert r.status_code == 404

    r = await admin_client.patch(f"/api/users/{reporter_id}", json={"email": "omar@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already in use"

    r = await admin_client.patch(f"/api/users/{reporter_id}", json={"time_zone": "Mars/Base"})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("time_zone")

    r = await admin_client.patch(f"/api/users/{reporter_id}", json={"work_day_start": "9am"})
    assert r.status_code == 400

    r = await admin_client.patch("/api/users/9999", json={"name": "Nobody"})
    assert r.status_code == 404

    r = await admin_client.patch(f"/api/users/{seed_data['admin'].id}", json={"is_active": False})
    assert r.status_code == 400

    r = await reporter_client.patch(f"/api/users/{seed_data['employee'].id}", json={"role": "SUPER_ADMIN"})
    assert r.status_code == 403

    r = await admin_client.get(f"/api/users/{reporter_id}")
    assert r.json()["reports_to_id"] is None
    assert r.json()["email"] == "rita@example.com"


async def test_admin_deactivates_user(admin_client, employee_client, unauth_client, seed_data):
    r = await employee_client.get("/api/auth/me")
    assert r.status_code == 200

    r = await admin_client.delete(f"/api/users/{seed_data['employee'].id}")
    assert r.status_code == 200
    assert r.json() == {"message": "User deactivated"}

    r = await admin_client.get(f"/api/users/{seed_data['employee'].id}")
    assert r.json()["is_active"] is False

    r = await employee_client.get("/api/auth/me")
    assert r.status_code == 401

    r = await unauth_client.post("/api/auth/login", data={"username": "evan@example.com", "password": "testpass123"})
    assert r.status_code == 403


async def test_deactivate_user_rules(admin_client, reporter_client, seed_data):
    r = await admin_client.delete(f"/api/users/{seed_data['admin'].id}")
    assert r.status_code == 400

    r = await admin_client.delete("/api/users/9999")
    assert r.status_code == 404

    r = await reporter_client.delete(f"/api/users/{seed_data['employee'].id}")
    assert r.status_code == 403


# ===================== TODOS =====================


async def test_reporter_assigns_todo_to_report(reporter_client, employee_client, seed_data, effects):
    r = await reporter_client.post("/api/todos/", json={
        "title": "  Draft the roadmap ",
        "assigned_to_id": seed_data["employee"].id,
        "due_date": (datetime.utcnow().date() - timedelta(days=1)).isoformat(),
    })
    assert r.status_code == 200
    todo = r.json()
    assert todo["title"] == "Draft the roadmap"
    assert todo["status"] == "NOT_STARTED"
    assert todo["priority"] == "MEDIUM"
    assert todo["assigned_to"]["name"] == "Evan Employee"
    assert todo["is_overdue"] is True
    assert effects.notifications.types_for(seed_data["employee"].id) == [NotificationType.TODO_ASSIGNED]

    r = await employee_client.get("/api/todos/")
    assert [t["id"] for t in r.json()] == [todo["id"]]


async def test_todo_defaults_to_self(employee_client, seed_data, effects):
    r = await employee_client.post("/api/todos/", json={"title": "Read the handbook"})
    assert r.status_code == 200
    assert r.json()["assigned_to_id"] == seed_data["employee"].id
    assert effects.notifications.sent == []


async def test_employee_may_assign_to_manager_only(employee_client, seed_data):
    r = await employee_client.post("/api/todos/", json={"title": "Review PR", "assigned_to_id": seed_data["reporter"].id})
    assert r.status_code == 200

    r = await employee_client.post("/api/todos/", json={"title": "Review PR", "assigned_to_id": seed_data["other_employee"].id})
    assert r.status_code == 403

    r = await employee_client.post("/api/todos/", json={"title": "Review PR", "assigned_to_id": 9999})
    assert r.status_code == 404


async def test_todo_title_required(employee_client):
    r = await employee_client.post("/api/todos/", json={"title": "   "})
    assert r.status_code == 400


async def test_todo_meeting_link_checked(other_reporter_client, reporter_client, db_session, seed_data):
    meeting = await _meeting(db_session, seed_data)

    r = await other_reporter_client.post("/api/todos/", json={"title": "Follow up", "meeting_id": meeting.id})
    assert r.status_code == 403

    r = await reporter_client.post("/api/todos/", json={"title": "Follow up", "meeting_id": 9999})
    assert r.status_code == 404

    r = await reporter_client.post("/api/todos/", json={"title": "Follow up", "meeting_id": meeting.id})
    assert r.status_code == 200

    r = await reporter_client.get("/api/todos/", params={"meeting_id": meeting.id})
    assert len(r.json()) == 1


async def test_assignee_may_only_move_status(reporter_client, employee_client, seed_data):
    r = await reporter_client.post("/api/todos/", json={"title": "Ship it", "assigned_to_id": seed_data["employee"].id})
    todo_id = r.json()["id"]

    r = await employee_client.patch(f"/api/todos/{todo_id}", json={"title": "Something else"})
    assert r.status_code == 403
    assert r.json()["detail"] == "Only the creator can edit this todo"

    r = await employee_client.patch(f"/api/todos/{todo_id}", json={"status": "DONE"})
    assert r.status_code == 200
    assert r.json()["status"] == "DONE"
    assert r.json()["completed_at"] is not None

    r = await employee_client.patch(f"/api/todos/{todo_id}", json={"status": "IN_PROGRESS"})
    assert r.json()["completed_at"] is None

    r = await employee_client.delete(f"/api/todos/{todo_id}")
    assert r.status_code == 403

    r = await reporter_client.delete(f"/api/todos/{todo_id}")
    assert r.status_code == 200

    r = await reporter_client.get(f"/api/todos/{todo_id}")
    assert r.status_code == 404


async def test_todo_hidden_from_strangers(reporter_client, other_reporter_client, seed_data):
    r = await reporter_client.post("/api/todos/", json={"title": "Private", "assigned_to_id": seed_data["employee"].id})
    todo_id = r.json()["id"]

    r = await other_reporter_client.get(f"/api/todos/{todo_id}")
    assert r.status_code == 404

    r = await other_reporter_client.get("/api/todos/")
    assert r.json() == []


async def test_reassign_notifies_new_assignee(reporter_client, db_session, seed_data, effects):
    r = await reporter_client.post("/api/todos/", json={"title": "Own it"})
    todo_id = r.json()["id"]

    r = await reporter_client.patch(f"/api/todos/{todo_id}", json={"assigned_to_id": seed_data["employee"].id})
    assert r.status_code == 200
    assert r.json()["assigned_to_id"] == seed_data["employee"].id
    assert effects.notifications.types_for(seed_data["employee"].id) == [NotificationType.TODO_ASSIGNED]


async def test_null_priority_leaves_todo_unchanged(reporter_client):
    r = await reporter_client.post("/api/todos/", json={"title": "Plan offsite", "priority": "HIGH"})
    todo_id = r.json()["id"]

    r = await reporter_client.patch(f"/api/todos/{todo_id}", json={"priority": None, "title": "Plan the offsite"})
    assert r.status_code == 200
    assert r.json()["priority"] == "HIGH"
    assert r.json()["title"] == "Plan the offsite"


async def test_overdue_uses_utc_date(employee_client):
    today = datetime(2026, 10, 19, 23, 30)
    r = await employee_client.post("/api/todos/", json={"title": "Due today", "due_date": "2026-10-19"})
    due_today = r.json()["id"]
    r = await employee_client.post("/api/todos/", json={"title": "Due yesterday", "due_date": "2026-10-18"})
    due_yesterday = r.json()["id"]

    with patch("oneonone.api.todos.utcnow", return_value=today):
        r = await employee_client.get("/api/todos/")

    overdue = {t["id"]: t["is_overdue"] for t in r.json()}
    assert overdue == {due_today: False, due_yesterday: True}


# ===================== NOTIFICATIONS =====================


async def _notify(db, user, count=1):
    service = DatabaseNotificationService(db)
    for i in range(count):
        await service.notify(user.id, NotificationType.MEETING_PROPOSED, "Proposed", f"Meeting {i}", "/meetings/1")


async def test_notifications_lifecycle(employee_client, db_session, seed_data):
    await _notify(db_session, seed_data["employee"], count=3)
    await _notify(db_session, seed_data["reporter"])

    r = await employee_client.get("/api/notifications/unread-count")
    assert r.json() == {"count": 3}

    r = await employee_client.get("/api/notifications/")
    items = r.json()
    assert len(items) == 3
    assert items[0]["message"] == "Meeting 2"

    r = await employee_client.post(f"/api/notifications/{items[0]['id']}/read")
    assert r.status_code == 200
    assert r.json()["is_read"] is True

    r = await employee_client.get("/api/notifications/", params={"unread_only": True})
    assert len(r.json()) == 2

    r = await employee_client.delete("/api/notifications/read")
    assert r.json() == {"deleted": 1}

    r = await employee_client.post("/api/notifications/read-all")
    assert r.json() == {"updated": 2}

    r = await employee_client.get("/api/notifications/unread-count")
    assert r.json() == {"count": 0}


async def test_notification_limit_is_clamped(employee_client, db_session, seed_data):
    await _notify(db_session, seed_data["employee"], count=3)

    r = await employee_client.get("/api/notifications/", params={"limit": 0})
    assert len(r.json()) == 1

    r = await employee_client.get("/api/notifications/", params={"limit": 2, "offset": 2})
    assert len(r.json()) == 1


async def test_cannot_touch_someone_elses_notification(employee_client, db_session, seed_data):
    await _notify(db_session, seed_data["reporter"])

    r = await employee_client.get("/api/notifications/")
    assert r.json() == []

    r = await employee_client.post("/api/notifications/1/read")
    assert r.status_code == 404

    r = await employee_client.delete("/api/notifications/1")
    assert r.status_code == 404


# ===================== RECORDINGS =====================


@pytest.fixture()
def recordings_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(get_settings(), "RECORDINGS_DIR", str(tmp_path))
    return tmp_path


def _audio(name="standup.webm", size=2048):
    return {"file": (name, b"\x1a" * size, "audio/webm")}


async def test_upload_recording(reporter_client, db_session, seed_data, recordings_dir):
    meeting = await _meeting(db_session, seed_data)

    r = await reporter_client.post(f"/api/meetings/{meeting.id}/recording", files=_audio())
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "UPLOADED"
    assert body["file_size"] == 2048
    assert body["original_filename"] == "standup.webm"
    assert (recordings_dir / f"meeting_{meeting.id}.webm").exists()

    r = await reporter_client.get(f"/api/meetings/{meeting.id}/recording")
    assert r.status_code == 200


async def test_reupload_replaces_file_and_results(reporter_client, db_session, seed_data, recordings_dir):
    meeting = await _meeting(db_session, seed_data)
    await reporter_client.post(f"/api/meetings/{meeting.id}/recording", files=_audio())

    recording = await get_recording(db_session, meeting.id)
    recording.summary = "old"
    recording.status = RecordingStatus.COMPLETED
    await db_session.commit()

    r = await reporter_client.post(f"/api/meetings/{meeting.id}/recording", files=_audio("standup.mp3"))
    assert r.status_code == 200
    assert r.json()["summary"] is None
    assert r.json()["status"] == "UPLOADED"
    assert not (recordings_dir / f"meeting_{meeting.id}.webm").exists()
    assert (recordings_dir / f"meeting_{meeting.id}.mp3").exists()


async def test_upload_rules(reporter_client, employee_client, other_reporter_client, db_session, seed_data, recordings_dir):
    meeting = await _meeting(db_session, seed_data)
    url = f"/api/meetings/{meeting.id}/recording"

    r = await reporter_client.post(url, files=_audio("notes.pdf"))
    assert r.status_code == 400

    r = await reporter_client.post(url, files=_audio(size=0))
    assert r.status_code == 400

    r = await employee_client.post(url, files=_audio())
    assert r.status_code == 403

    r = await other_reporter_client.post(url, files=_audio())
    assert r.status_code == 403

    r = await reporter_client.post("/api/meetings/9999/recording", files=_audio())
    assert r.status_code == 404


async def test_upload_too_large(reporter_client, db_session, seed_data, recordings_dir, monkeypatch):
    import oneonone.api.recordings as recordings_api
    monkeypatch.setattr(recordings_api.settings, "MAX_RECORDING_SIZE_MB", 0)
    meeting = await _meeting(db_session, seed_data)

    r = await reporter_client.post(f"/api/meetings/{meeting.id}/recording", files=_audio())
    assert r.status_code == 413


async def test_get_recording_missing(employee_client, other_reporter_client, db_session, seed_data):
    meeting = await _meeting(db_session, seed_data)

    r = await employee_client.get(f"/api/meetings/{meeting.id}/recording")
    assert r.status_code == 404

    r = await other_reporter_client.get(f"/api/meetings/{meeting.id}/recording")
    assert r.status_code == 403


async def test_process_starts_background_job(reporter_client, db_session, seed_data, recordings_dir, session_factory):
    meeting = await _meeting(db_session, seed_data)
    await reporter_client.post(f"/api/meetings/{meeting.id}/recording", files=_audio())

    job = AsyncMock()
    with patch("oneonone.api.recordings.services_configured", return_value=True), \
         patch("oneonone.api.recordings.process_recording", job):
        r = await reporter_client.post(f"/api/meetings/{meeting.id}/recording/process", json={"language": "de"})

    assert r.status_code == 200
    assert r.json()["status"] == "UPLOADED"
    job.assert_called_once_with(meeting.id, "de", session_factory)


async def test_process_rules(reporter_client, employee_client, db_session, seed_data, recordings_dir):
    meeting = await _meeting(db_session, seed_data)
    url = f"/api/meetings/{meeting.id}/recording/process"

    with patch("oneonone.api.recordings.services_configured", return_value=True):
        r = await reporter_client.post(url)
        assert r.status_code == 400
        assert r.json()["detail"] == "No recording found for this meeting"

        await reporter_client.post(f"/api/meetings/{meeting.id}/recording", files=_audio())

        r = await reporter_client.post(url, json={"language": "klingon"})
        assert r.status_code == 400

        r = await employee_client.post(url)
        assert r.status_code == 403

    with patch("oneonone.api.recordings.services_configured", return_value=False):
        r = await reporter_client.post(url)
        assert r.status_code == 400
        assert r.json()["detail"] == "AI services are not configured"
