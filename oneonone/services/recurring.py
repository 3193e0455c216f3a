"""
Recurring schedule engine.

A schedule is a standing cadence (weekly, biweekly, monthly) between one
reporter and one employee. Occurrences are computed in the reporter's time
zone (falling back to DEFAULT_TIMEZONE) and stored as naive UTC.
"""
import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.config import get_settings
from oneonone.models.meeting import Meeting, MeetingStatus
from oneonone.models.recurring_schedule import RecurringSchedule, RecurringFrequency
from oneonone.models.user import User, UserRole
from oneonone.services import meeting_lifecycle
from oneonone.services.access import is_admin
from oneonone.services.conflicts import find_conflict, describe_conflict
from oneonone.services.effects import Effects
from oneonone.services.results import Outcome, TransitionResult
from oneonone.utils.helpers import utcnow, to_utc_naive, parse_time_of_day

settings = get_settings()
logger = logging.getLogger(__name__)

DUPLICATE_SCHEDULE_MESSAGE = "A recurring schedule already exists for this employee"


# ──────────────────────────────────────────────────────
#  Date arithmetic
# ──────────────────────────────────────────────────────

def _zone(tz_name: Optional[str]) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.DEFAULT_TIMEZONE)


def _weekday(day: date) -> int:
    """0 = Sunday .. 6 = Saturday"""
    return (day.weekday() + 1) % 7


def _add_month(day: date) -> date:
    """Same day next month, clamped to the last day of a shorter month"""
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _roll_to_weekday(day: date, day_of_week: int) -> date:
    return day + timedelta(days=(day_of_week - _weekday(day)) % 7)


def _local_date(instant: datetime, tz: ZoneInfo) -> date:
    return instant.replace(tzinfo=timezone.utc).astimezone(tz).date()


def _at(day: date, hours: int, minutes: int, tz: ZoneInfo) -> datetime:
    """Wall-clock time on a local date, as naive UTC"""
    local = datetime.combine(day, time(hours, minutes), tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def compute_next_occurrence(
    day_of_week: int,
    time_of_day: str,
    frequency: RecurringFrequency,
    reference: datetime,
    tz_name: Optional[str] = None,
) -> datetime:
    """
    Earliest instant strictly after `reference` on `day_of_week` at
    `time_of_day`. MONTHLY first moves one calendar month ahead; BIWEEKLY
    keeps at least seven days between `reference` and the result.
    """
    tz = _zone(tz_name)
    reference = to_utc_naive(reference)
    hours, minutes = parse_time_of_day(time_of_day)

    day = _local_date(reference, tz)
    if frequency == RecurringFrequency.MONTHLY:
        day = _add_month(day)
    day = _roll_to_weekday(day, day_of_week)

    while _at(day, hours, minutes, tz) <= reference:
        day += timedelta(days=7)

    if frequency == RecurringFrequency.BIWEEKLY:
        while _at(day, hours, minutes, tz) - reference < timedelta(days=7):
            day += timedelta(days=7)

    return _at(day, hours, minutes, tz)


def following_occurrence(schedule: RecurringSchedule, previous: datetime) -> datetime:
    """The occurrence one full cadence after `previous`"""
    tz = _zone(schedule.reporter.time_zone if schedule.reporter else None)
    hours, minutes = parse_time_of_day(schedule.time_of_day)

    day = _local_date(previous, tz)
    if schedule.frequency == RecurringFrequency.WEEKLY:
        day += timedelta(days=7)
    elif schedule.frequency == RecurringFrequency.BIWEEKLY:
        day += timedelta(days=14)
    else:
        day = _add_month(day)
    day = _roll_to_weekday(day, schedule.day_of_week)

    return _at(day, hours, minutes, tz)


# ──────────────────────────────────────────────────────
#  Queries
# ──────────────────────────────────────────────────────

async def list_schedules(db: AsyncSession, actor: User) -> list[RecurringSchedule]:
    """Active schedules the caller owns (administrators see all)"""
    query = select(RecurringSchedule).where(RecurringSchedule.is_active == True)
    if not is_admin(actor):
        query = query.where(RecurringSchedule.reporter_id == actor.id)
    query = query.order_by(RecurringSchedule.created_at.desc())

    result = await db.execute(query)
    return list(result.unique().scalars().all())


async def get_owned_schedule(db: AsyncSession, actor: User, schedule_id: int) -> Optional[RecurringSchedule]:
    query = select(RecurringSchedule).where(RecurringSchedule.id == schedule_id)
    if not is_admin(actor):
        query = query.where(RecurringSchedule.reporter_id == actor.id)

    result = await db.execute(query)
    return result.unique().scalar_one_or_none()


async def recent_meetings(db: AsyncSession, schedule_id: int, limit: int = 10) -> list[Meeting]:
    result = await db.execute(
        select(Meeting)
        .where(Meeting.recurring_schedule_id == schedule_id)
        .order_by(Meeting.meeting_date.desc())
        .limit(limit)
    )
    return list(result.unique().scalars().all())


async def _slot_violation(
    db: AsyncSession,
    reporter: User,
    employee: User,
    day_of_week: int,
    time_of_day: str,
    acting_as_reporter: bool,
    exclude_id: Optional[int] = None,
) -> Optional[str]:
    """Message for the first active schedule that would collide, else None"""

    async def first(*conditions) -> Optional[RecurringSchedule]:
        query = select(RecurringSchedule).where(RecurringSchedule.is_active == True, *conditions)
        if exclude_id is not None:
            query = query.where(RecurringSchedule.id != exclude_id)
        result = await db.execute(query.limit(1))
        return result.unique().scalar_one_or_none()

    if await first(RecurringSchedule.reporter_id == reporter.id, RecurringSchedule.employee_id == employee.id):
        return DUPLICATE_SCHEDULE_MESSAGE

    same_slot = await first(
        RecurringSchedule.reporter_id == reporter.id,
        RecurringSchedule.day_of_week == day_of_week,
        RecurringSchedule.time_of_day == time_of_day,
    )
    if same_slot:
        other = same_slot.employee.name if same_slot.employee else "another employee"
        who = "You already have" if acting_as_reporter else f"{reporter.name} already has"
        return f"{who} a recurring schedule at this day and time with {other}. Please choose a different time."

    employee_busy = await first(
        RecurringSchedule.employee_id == employee.id,
        RecurringSchedule.day_of_week == day_of_week,
        RecurringSchedule.time_of_day == time_of_day,
    )
    if employee_busy:
        return f"{employee.name} already has a recurring schedule at this day and time. Please choose a different time."

    return None


# ──────────────────────────────────────────────────────
#  Operations
# ──────────────────────────────────────────────────────

async def create_schedule(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    employee_id: int,
    day_of_week: int,
    time_of_day: str,
    frequency: Optional[RecurringFrequency] = None,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Create a schedule and its first PROPOSED meeting; value is (schedule, meeting)"""
    if actor.role not in (UserRole.REPORTER, UserRole.SUPER_ADMIN):
        return TransitionResult.rejected(
            Outcome.UNAUTHORIZED, "Only reporters and administrators can create recurring schedules"
        )

    employee = await meeting_lifecycle.get_user(db, employee_id)
    if not employee or not employee.is_active:
        return TransitionResult.rejected(Outcome.NOT_FOUND, "Employee not found")

    reporter = actor
    if is_admin(actor) and employee.reports_to_id:
        reporter = await meeting_lifecycle.get_user(db, employee.reports_to_id) or actor
    if reporter.id == employee.id:
        return TransitionResult.rejected(Outcome.VALIDATION, "A schedule needs two different participants")

    frequency = frequency or RecurringFrequency.BIWEEKLY
    violation = await _slot_violation(db, reporter, employee, day_of_week, time_of_day, reporter.id == actor.id)
    if violation:
        return TransitionResult.rejected(Outcome.VALIDATION, violation)

    now = now or utcnow()
    first_date = compute_next_occurrence(day_of_week, time_of_day, frequency, now, reporter.time_zone)

    conflict = await find_conflict(db, first_date, employee.id, reporter.id)
    if conflict:
        return TransitionResult.rejected(Outcome.CONFLICT, describe_conflict(conflict, employee, reporter))

    schedule = RecurringSchedule(
        reporter_id=reporter.id,
        employee_id=employee.id,
        frequency=frequency,
        day_of_week=day_of_week,
        time_of_day=time_of_day,
        next_meeting_date=first_date,
        is_active=True,
    )
    schedule.employee = employee
    schedule.reporter = reporter

    try:
        db.add(schedule)
        await db.flush()
        meeting = meeting_lifecycle.new_proposal(employee, reporter, first_date, schedule.id)
        db.add(meeting)
        await db.commit()
    except IntegrityError as e:
        # Concurrent insert lost the race on a partial unique index
        await db.rollback()
        logger.warning(f"Recurring schedule insert rejected by unique index: {e.orig}")
        return TransitionResult.rejected(Outcome.VALIDATION, DUPLICATE_SCHEDULE_MESSAGE)

    await db.refresh(schedule)
    await db.refresh(meeting)
    logger.info(
        f"Recurring schedule {schedule.id} created: {frequency.value} day={day_of_week} "
        f"at {time_of_day}, first meeting {meeting.id}"
    )

    await effects.meeting_proposed(meeting, proposer=reporter, receiver=employee)
    return TransitionResult.success((schedule, meeting))


async def update_schedule(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    schedule: RecurringSchedule,
    frequency: Optional[RecurringFrequency] = None,
    day_of_week: Optional[int] = None,
    time_of_day: Optional[str] = None,
    is_active: Optional[bool] = None,
    cancel_future_meetings: bool = False,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """
    Edit a schedule. A cadence change recomputes next_meeting_date from now
    and moves future PROPOSED meetings of the schedule; SCHEDULED ones stay.
    """
    if not is_admin(actor) and actor.id != schedule.reporter_id:
        return TransitionResult.rejected(Outcome.NOT_FOUND, "Schedule not found")

    if is_active is False:
        return await deactivate_schedule(db, effects, actor, schedule, cancel_future_meetings, now)

    reactivating = is_active is True and not schedule.is_active
    if not schedule.is_active and not reactivating:
        return TransitionResult.rejected(Outcome.INVALID_TRANSITION, "This recurring schedule is no longer active")

    new_frequency = frequency or schedule.frequency
    new_day = schedule.day_of_week if day_of_week is None else day_of_week
    new_time = time_of_day or schedule.time_of_day
    slot_changed = (new_day, new_time) != (schedule.day_of_week, schedule.time_of_day)
    cadence_changed = slot_changed or new_frequency != schedule.frequency

    if slot_changed or reactivating:
        violation = await _slot_violation(
            db, schedule.reporter, schedule.employee, new_day, new_time,
            schedule.reporter_id == actor.id, exclude_id=schedule.id,
        )
        if violation:
            return TransitionResult.rejected(Outcome.VALIDATION, violation)

    if not cadence_changed and not reactivating:
        return TransitionResult.success(schedule)

    now = now or utcnow()
    schedule.frequency = new_frequency
    schedule.day_of_week = new_day
    schedule.time_of_day = new_time
    schedule.is_active = True
    schedule.next_meeting_date = compute_next_occurrence(
        new_day, new_time, new_frequency, now, schedule.reporter.time_zone
    )

    result = await db.execute(
        select(Meeting)
        .where(
            Meeting.recurring_schedule_id == schedule.id,
            Meeting.status == MeetingStatus.PROPOSED,
            Meeting.meeting_date > now,
        )
        .order_by(Meeting.meeting_date)
    )
    pending = list(result.unique().scalars().all())

    occurrence = schedule.next_meeting_date
    for meeting in pending:
        meeting.meeting_date = occurrence
        meeting.proposed_by_id = schedule.reporter_id
        occurrence = following_occurrence(schedule, occurrence)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Recurring schedule {schedule.id} update rejected by unique index: {e.orig}")
        return TransitionResult.rejected(Outcome.VALIDATION, DUPLICATE_SCHEDULE_MESSAGE)

    await db.refresh(schedule)
    logger.info(
        f"Recurring schedule {schedule.id} updated: next meeting {schedule.next_meeting_date.isoformat()}, "
        f"{len(pending)} pending proposal(s) moved"
    )

    for meeting in pending:
        await effects.meeting_proposed(meeting, proposer=schedule.reporter, receiver=schedule.employee)
    return TransitionResult.success(schedule)


async def deactivate_schedule(
    db: AsyncSession,
    effects: Effects,
    actor: User,
    schedule: RecurringSchedule,
    cancel_future_meetings: bool = False,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """Soft delete; value is the number of future SCHEDULED meetings cancelled"""
    if not is_admin(actor) and actor.id != schedule.reporter_id:
        return TransitionResult.rejected(Outcome.NOT_FOUND, "Schedule not found")

    schedule.is_active = False
    await db.commit()
    logger.info(f"Recurring schedule {schedule.id} deactivated by user {actor.id}")

    cancelled = 0
    if cancel_future_meetings:
        now = now or utcnow()
        result = await db.execute(
            select(Meeting).where(
                Meeting.recurring_schedule_id == schedule.id,
                Meeting.status == MeetingStatus.SCHEDULED,
                Meeting.meeting_date > now,
            )
        )
        for meeting in result.unique().scalars().all():
            outcome = await meeting_lifecycle.cancel(db, effects, actor, meeting)
            if outcome.ok:
                cancelled += 1

    return TransitionResult.success(cancelled)


async def _generate(db: AsyncSession, schedule: RecurringSchedule, now: datetime) -> Optional[Meeting]:
    """Create the due meeting (unless it already exists) and advance the schedule"""
    occurrence = schedule.next_meeting_date

    result = await db.execute(
        select(Meeting.id).where(
            Meeting.recurring_schedule_id == schedule.id,
            Meeting.meeting_date == occurrence,
        )
    )
    meeting = None
    if result.first() is None:
        meeting = meeting_lifecycle.new_proposal(schedule.employee, schedule.reporter, occurrence, schedule.id)
        db.add(meeting)

    # Missed cycles are skipped, not back-filled
    following = following_occurrence(schedule, occurrence)
    while following <= now:
        following = following_occurrence(schedule, following)

    schedule.next_meeting_date = following
    schedule.last_generated_at = now
    await db.commit()

    if meeting is not None:
        await db.refresh(meeting)
    return meeting


async def run_regeneration_sweep(
    db: AsyncSession,
    effects: Effects,
    now: Optional[datetime] = None,
) -> dict:
    """
    Turn every due active schedule into a PROPOSED meeting.
    One failing schedule is recorded and does not stop the others.
    """
    now = now or utcnow()
    result = await db.execute(
        select(RecurringSchedule.id)
        .where(
            RecurringSchedule.is_active == True,
            RecurringSchedule.next_meeting_date <= now,
        )
        .order_by(RecurringSchedule.id)
    )
    schedule_ids = list(result.scalars().all())

    created = 0
    errors = []
    for schedule_id in schedule_ids:
        try:
            schedule = await db.get(RecurringSchedule, schedule_id, populate_existing=True)
            meeting = await _generate(db, schedule, now)
        except Exception as e:
            await db.rollback()
            logger.error(f"Error creating recurring meeting for schedule {schedule_id}: {e}")
            errors.append(f"Failed to create meeting for schedule {schedule_id}")
            continue

        if meeting is not None:
            created += 1
            await effects.meeting_proposed(meeting, proposer=schedule.reporter, receiver=schedule.employee)

    logger.info(f"Regeneration sweep: {len(schedule_ids)} due schedule(s), {created} meeting(s) created, {len(errors)} error(s)")
    return {"created": created, "errors": errors}
