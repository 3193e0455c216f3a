"""
Meeting lifecycle - every status transition of a one-on-one goes through here.

    PROPOSED --accept--> SCHEDULED --complete--> COMPLETED
        |                    |
        +------cancel--------+-----------------> CANCELLED

While PROPOSED, `proposed_by_id` names the participant who last set the time;
the other participant (the receiver) may accept or suggest a new time, which
swaps the two roles. Each operation commits its state change and only then
runs calendar, email and notification effects, all best-effort.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.models.meeting import Meeting, MeetingStatus, ACTIVE_STATUSES, FORM_FIELDS
from oneonone.models.recording import MeetingRecording
from oneonone.models.todo import TodoItem
from oneonone.models.user import User, UserRole
from oneonone.services.access import is_admin, is_participant
from oneonone.services.conflicts import find_conflict, describe_conflict
from oneonone.services.effects import Effects
from oneonone.services.results import Outcome, TransitionResult
from oneonone.utils.helpers import utcnow, to_utc_naive

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (MeetingStatus.SCHEDULED, MeetingStatus.COMPLETED, MeetingStatus.CANCELLED)


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


def _participant(meeting: Meeting, user_id: Optional[int]) -> User:
    return meeting.employee if user_id == meeting.employee_id else meeting.reporter


def _is_reporter_or_admin(actor: User, meeting: Meeting) -> bool:
    return is_admin(actor) or actor.id == meeting.reporter_id


async def _save(db: AsyncSession, meeting: Meeting) -> Meeting:
    await db.commit()
    await db.refresh(meeting)
    return meeting


def new_proposal(
    employee: User,
    reporter: User,
    meeting_date: datetime,
    recurring_schedule_id: Optional[int] = None,
) -> Meeting:
    """Build (not persist) a PROPOSED meeting owned by the reporter"""
    meeting = Meeting(
        employee_id=employee.id,
        reporter_id=reporter.id,
        meeting_date=meeting_date,
        status=MeetingStatus.PROPOSED,
        proposed_by_id=reporter.id,
        recurring_schedule_id=recurring_schedule_id,
    )
    meeting.employee = employee
    meeting.reporter = reporter
    return meeting


async def propose(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    employee_id: int,
    meeting_date: datetime,
) -> TransitionResult:
    """Create a PROPOSED meeting between an employee and their reporter"""
    if actor.role not in (UserRole.REPORTER, UserRole.SUPER_ADMIN):
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only reporters and administrators can create meetings")

    employee = await get_user(db, employee_id)
    if not employee or not employee.is_active:
        return TransitionResult.rejected(Outcome.NOT_FOUND, "Employee not found")

    # An administrator schedules on behalf of the employee's manager
    reporter = actor
    if is_admin(actor) and employee.reports_to_id:
        reporter = await get_user(db, employee.reports_to_id) or actor

    if reporter.id == employee.id:
        return TransitionResult.rejected(Outcome.VALIDATION, "A meeting needs two different participants")

    meeting_date = to_utc_naive(meeting_date)
    conflict = await find_conflict(db, meeting_date, employee.id, reporter.id)
    if conflict:
        return TransitionResult.rejected(Outcome.CONFLICT, describe_conflict(conflict, employee, reporter))

    meeting = new_proposal(employee, reporter, meeting_date)
    db.add(meeting)
    await _save(db, meeting)
    logger.info(f"Meeting {meeting.id} proposed by user {actor.id} for {meeting_date.isoformat()}")

    await effects.meeting_proposed(meeting, proposer=reporter, receiver=employee)
    return TransitionResult.success(meeting)


async def accept(db: AsyncSession, effects: Effects, actor: User, meeting: Meeting) -> TransitionResult:
    """Receiver (or admin) accepts the pending proposal"""
    if meeting.status != MeetingStatus.PROPOSED:
        return TransitionResult.rejected(Outcome.INVALID_TRANSITION, "This meeting is not in a proposed state")
    if not is_admin(actor) and actor.id != meeting.receiver_id:
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only the meeting receiver can accept this proposal")

    proposer = _participant(meeting, meeting.proposed_by_id)
    meeting.status = MeetingStatus.SCHEDULED
    await _save(db, meeting)
    logger.info(f"Meeting {meeting.id} accepted by user {actor.id}")

    if not meeting.calendar_event_id:
        event_id = await effects.create_calendar_event(meeting)
        if event_id:
            meeting.calendar_event_id = event_id
            await _save(db, meeting)

    await effects.meeting_accepted(meeting, acceptor=actor, proposer=proposer)
    return TransitionResult.success(meeting)


async def suggest(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    meeting: Meeting,
    new_date: Optional[datetime],
) -> TransitionResult:
    """Receiver (or admin) counters with a new time; proposer and receiver swap"""
    if new_date is None:
        return TransitionResult.rejected(Outcome.VALIDATION, "meeting_date is required")
    if meeting.status != MeetingStatus.PROPOSED:
        return TransitionResult.rejected(Outcome.INVALID_TRANSITION, "This meeting is not in a proposed state")
    if not is_admin(actor) and actor.id != meeting.receiver_id:
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only the meeting receiver can suggest a new time")

    new_date = to_utc_naive(new_date)
    conflict = await find_conflict(
        db, new_date, meeting.employee_id, meeting.reporter_id, exclude_meeting_id=meeting.id
    )
    if conflict:
        return TransitionResult.rejected(
            Outcome.CONFLICT, describe_conflict(conflict, meeting.employee, meeting.reporter)
        )

    # An administrator suggests on behalf of the receiver
    if is_participant(actor, meeting):
        suggester_id = actor.id
    else:
        suggester_id = meeting.receiver_id or meeting.employee_id

    meeting.meeting_date = new_date
    meeting.proposed_by_id = suggester_id
    await _save(db, meeting)
    logger.info(f"New time suggested for meeting {meeting.id} by user {actor.id}: {new_date.isoformat()}")

    suggester = _participant(meeting, suggester_id)
    recipient = _participant(meeting, meeting.other_party_id(suggester_id))
    await effects.time_suggested(meeting, suggester=suggester, recipient=recipient)
    return TransitionResult.success(meeting)


async def reschedule_proposal(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    meeting: Meeting,
    new_date: Optional[datetime],
) -> TransitionResult:
    """The current proposer moves their own pending proposal"""
    if new_date is None:
        return TransitionResult.rejected(Outcome.VALIDATION, "meeting_date is required")
    if meeting.status != MeetingStatus.PROPOSED:
        return TransitionResult.rejected(Outcome.INVALID_TRANSITION, "This meeting is not in a proposed state")
    if actor.id != meeting.proposed_by_id:
        return TransitionResult.rejected(
            Outcome.UNAUTHORIZED, "Only the current proposer can change the proposed time"
        )

    new_date = to_utc_naive(new_date)
    conflict = await find_conflict(
        db, new_date, meeting.employee_id, meeting.reporter_id, exclude_meeting_id=meeting.id
    )
    if conflict:
        return TransitionResult.rejected(
            Outcome.CONFLICT, describe_conflict(conflict, meeting.employee, meeting.reporter)
        )

    meeting.meeting_date = new_date
    await _save(db, meeting)

    proposer = _participant(meeting, actor.id)
    receiver = _participant(meeting, meeting.other_party_id(actor.id))
    await effects.meeting_proposed(meeting, proposer=proposer, receiver=receiver)
    return TransitionResult.success(meeting)


async def complete(db: AsyncSession, effects: Effects, actor: User, meeting: Meeting) -> TransitionResult:
    if not _is_reporter_or_admin(actor, meeting):
        return TransitionResult.rejected(
            Outcome.UNAUTHORIZED, "Only the reporter or an administrator can complete this meeting"
        )
    if meeting.status != MeetingStatus.SCHEDULED:
        return TransitionResult.rejected(
            Outcome.INVALID_TRANSITION, "Only a scheduled meeting can be marked completed"
        )

    meeting.status = MeetingStatus.COMPLETED
    await _save(db, meeting)
    logger.info(f"Meeting {meeting.id} completed by user {actor.id}")

    await effects.meeting_completed(meeting, completed_by=actor)
    return TransitionResult.success(meeting)


async def cancel(db: AsyncSession, effects: Effects, actor: User, meeting: Meeting) -> TransitionResult:
    if not _is_reporter_or_admin(actor, meeting):
        return TransitionResult.rejected(
            Outcome.UNAUTHORIZED, "Only the reporter or an administrator can cancel this meeting"
        )
    if meeting.status not in ACTIVE_STATUSES:
        return TransitionResult.rejected(
            Outcome.INVALID_TRANSITION, f"A {meeting.status.value.lower()} meeting cannot be cancelled"
        )

    meeting.status = MeetingStatus.CANCELLED
    await _save(db, meeting)
    logger.info(f"Meeting {meeting.id} cancelled by user {actor.id}")

    await effects.delete_calendar_event(meeting)
    await effects.meeting_cancelled(meeting, cancelled_by=actor)
    return TransitionResult.success(meeting)


def _remove_audio(path: Optional[str]):
    if not path:
        return
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Could not remove recording file {path}: {e}")


async def delete(db: AsyncSession, effects: Effects, actor: User, meeting: Meeting) -> TransitionResult:
    """Hard delete (administrators only); the calendar event goes first"""
    if not is_admin(actor):
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only administrators can delete meetings")

    await effects.delete_calendar_event(meeting)

    await db.execute(update(TodoItem).where(TodoItem.meeting_id == meeting.id).values(meeting_id=None))

    result = await db.execute(select(MeetingRecording).where(MeetingRecording.meeting_id == meeting.id))
    recording = result.scalar_one_or_none()
    audio_path = recording.audio_path if recording else None
    if recording:
        await db.delete(recording)

    meeting_id = meeting.id
    await db.delete(meeting)
    await db.commit()
    _remove_audio(audio_path)

    logger.info(f"Meeting {meeting_id} deleted by administrator {actor.id}")
    return TransitionResult.success()


async def update_meeting(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    meeting: Meeting,
    meeting_date: Optional[datetime] = None,
    status: Optional[MeetingStatus] = None,
) -> TransitionResult:
    """
    Reporter/admin edit. A new date is only accepted on a SCHEDULED meeting
    (pending proposals are moved through suggest / reschedule_proposal);
    a status change is dispatched to complete or cancel.
    """
    if not _is_reporter_or_admin(actor, meeting):
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only the reporter or an administrator can update this meeting")

    if status is not None:
        if status not in EDITABLE_STATUSES:
            return TransitionResult.rejected(
                Outcome.VALIDATION, "status must be one of SCHEDULED, COMPLETED, CANCELLED"
            )
        if status == MeetingStatus.SCHEDULED and meeting.status != MeetingStatus.SCHEDULED:
            return TransitionResult.rejected(
                Outcome.INVALID_TRANSITION, "A proposal becomes scheduled only when the receiver accepts it"
            )
        if status == MeetingStatus.COMPLETED and meeting.status != MeetingStatus.SCHEDULED:
            return TransitionResult.rejected(
                Outcome.INVALID_TRANSITION, "Only a scheduled meeting can be marked completed"
            )
        if status == MeetingStatus.CANCELLED and meeting.status not in ACTIVE_STATUSES:
            return TransitionResult.rejected(
                Outcome.INVALID_TRANSITION, f"A {meeting.status.value.lower()} meeting cannot be cancelled"
            )

    if meeting_date is not None:
        if meeting.status != MeetingStatus.SCHEDULED:
            return TransitionResult.rejected(
                Outcome.INVALID_TRANSITION,
                "Only a scheduled meeting can be moved; pending proposals are changed by suggesting a new time",
            )
        new_date = to_utc_naive(meeting_date)
        conflict = await find_conflict(
            db, new_date, meeting.employee_id, meeting.reporter_id, exclude_meeting_id=meeting.id
        )
        if conflict:
            return TransitionResult.rejected(
                Outcome.CONFLICT, describe_conflict(conflict, meeting.employee, meeting.reporter)
            )

        meeting.meeting_date = new_date
        meeting.reminder_24h_sent = False
        meeting.reminder_1h_sent = False
        await _save(db, meeting)
        await effects.update_calendar_event(meeting)

    if status == MeetingStatus.COMPLETED:
        return await complete(db, effects, actor, meeting)
    if status == MeetingStatus.CANCELLED:
        return await cancel(db, effects, actor, meeting)
    return TransitionResult.success(meeting)


async def submit_form(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    meeting: Meeting,
    fields: dict,
) -> TransitionResult:
    """
    Employee writes the pre-meeting form. Editable until the meeting time has
    passed; once passed, only a first submission is still accepted.
    Does not change status.
    """
    if actor.id != meeting.employee_id:
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only the employee can submit this form")

    now = utcnow()
    if meeting.meeting_date < now and meeting.form_submitted_at is not None:
        return TransitionResult.rejected(
            Outcome.UNAUTHORIZED, "This form can no longer be edited: the meeting has already taken place"
        )

    for name in FORM_FIELDS:
        setattr(meeting, name, fields.get(name) or None)
    if meeting.form_submitted_at is None:
        meeting.form_submitted_at = now

    await _save(db, meeting)
    logger.info(f"Form submitted for meeting {meeting.id}")

    await effects.form_submitted(meeting)
    return TransitionResult.success(meeting)


async def update_notes(db: AsyncSession, actor: User, meeting: Meeting, notes: Optional[str]) -> TransitionResult:
    if not _is_reporter_or_admin(actor, meeting):
        return TransitionResult.rejected(Outcome.UNAUTHORIZED, "Only the reporter can edit meeting notes")

    meeting.notes = notes
    await _save(db, meeting)
    return TransitionResult.success(meeting)
