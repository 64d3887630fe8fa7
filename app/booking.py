# app/booking.py
"""Booking commit.

Listing slots is side-effect free, so a slot can go stale between listing and
booking. Every write re-validates against the current calendar inside a
critical section keyed by (professional, date), then bumps that key's
ScheduleVersion with a compare-and-swap so that separate processes sharing
the database cannot both commit.
"""

import logging
import threading
import weakref
from contextlib import ExitStack, contextmanager
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.availability import (
    AvailabilityResolver,
    local_now,
    occupied_interval,
    to_local_naive,
)
from app.core import Interval, expand_occurrences, intersects_any
from app.errors import InvalidRange, SlotTaken, ValidationError
from app.models import Appointment, BlockedTime, Client, ScheduleVersion, Service, User, utcnow
from app.schemas import AppointmentCreate

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS = {
    "pending": {"confirmed", "cancelled", "no_show"},
    "confirmed": {"completed", "cancelled", "no_show"},
    "completed": set(),
    "cancelled": set(),
    "no_show": set(),
}

PAYMENT_TRANSITIONS = {
    "unpaid": {"paid"},
    "paid": {"refunded"},
    "refunded": set(),
}


class LockRegistry:
    """One lock per (professional, date), created on first use.

    Entries are weak: a lock disappears once no caller holds or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def __len__(self):
        return len(self._locks)

    def lock_for(self, professional_id: int, day: date) -> threading.Lock:
        key = (professional_id, day)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def holding(self, professional_id: int, days: Iterable[date]) -> Iterator[None]:
        # always acquired in date order so two writers cannot deadlock
        with ExitStack() as stack:
            for day in sorted(set(days)):
                stack.enter_context(self.lock_for(professional_id, day))
            yield


schedule_locks = LockRegistry()


def read_version(session: Session, professional_id: int, day: date) -> Optional[int]:
    return session.exec(
        select(ScheduleVersion.version)
        .where(ScheduleVersion.user_id == professional_id)
        .where(ScheduleVersion.day == day)
    ).first()


def compare_and_swap_version(session: Session, professional_id: int, day: date, expected: Optional[int]) -> bool:
    """Advance the version if it still equals ``expected``. No row yet means ``expected is None``."""
    if expected is None:
        try:
            session.connection().execute(
                insert(ScheduleVersion).values(user_id=professional_id, day=day, version=1)
            )
        except IntegrityError:
            session.rollback()
            return False
        return True

    result = session.connection().execute(
        update(ScheduleVersion)
        .where(ScheduleVersion.user_id == professional_id)
        .where(ScheduleVersion.day == day)
        .where(ScheduleVersion.version == expected)
        .values(version=expected + 1)
    )
    return result.rowcount == 1


def validate_slot(
    resolver: AvailabilityResolver,
    professional: User,
    service: Service,
    start: datetime,
    now: datetime,
    exclude: Optional[Appointment] = None,
):
    """Raise if ``start`` is not bookable for ``service`` right now.

    When moving ``exclude``, its own booking is ignored and its booked
    duration and buffers are used instead of the service's current ones.
    """
    exclude_id = exclude.id if exclude is not None else None
    duration, before, after = service.duration, service.buffer_before, service.buffer_after
    if exclude is not None:
        duration, before, after = exclude.duration, exclude.buffer_before, exclude.buffer_after

    if start.second or start.microsecond:
        raise ValidationError("Start time must be on a whole minute")
    if start < now:
        raise InvalidRange("Appointment time must be in the future")

    day = start.date()
    if not resolver.within_horizon(day, now):
        raise InvalidRange(f"Bookings are only accepted up to {resolver.max_advance_days} days ahead")

    working = resolver.working_intervals(professional.id, day)
    if not working:
        raise InvalidRange("Professional is not available on that day")

    end_with_buffer = start + timedelta(minutes=duration + after)
    container = None
    for work_start, work_end in working:
        ws = datetime.combine(day, work_start)
        we = datetime.combine(day, work_end)
        if ws <= start and end_with_buffer <= we:
            container = ws
            break
    if container is None:
        raise InvalidRange("Appointment must be within working hours")

    offset = int((start - container).total_seconds() // 60)
    if offset % resolver.slot_minutes != 0:
        raise ValidationError(f"Start time must be in {resolver.slot_minutes}-minute increments")

    if service.max_bookings_per_day is not None:
        if resolver.bookings_for_service(service.id, day, exclude_id=exclude_id) >= service.max_bookings_per_day:
            raise SlotTaken("Service is fully booked on that day")

    candidate = occupied_interval(start, duration, before, after)
    if intersects_any(candidate, resolver.busy_intervals(professional.id, day, exclude_id=exclude_id)):
        raise SlotTaken("Requested time is no longer available")


def get_or_create_client(session: Session, professional_id: int, email: str, name: str, phone: Optional[str]) -> Client:
    email = email.strip().lower()
    client = session.exec(
        select(Client).where(Client.user_id == professional_id).where(Client.email == email)
    ).first()
    if client is None:
        client = Client(user_id=professional_id, email=email, name=name, phone=phone)
        session.add(client)
        session.flush()
        logger.info(f"New client {client.id} for professional {professional_id}")
    elif phone and not client.phone:
        client.phone = phone
        client.updated_at = utcnow()
        session.add(client)
    return client


def commit_booking(
    session: Session,
    professional_id: int,
    request: AppointmentCreate,
    now: Optional[datetime] = None,
    resolver: Optional[AvailabilityResolver] = None,
) -> Appointment:
    resolver = resolver or AvailabilityResolver(session)
    professional = resolver.get_professional(professional_id)
    service = resolver.get_service(professional_id, request.service_id)

    start = to_local_naive(request.start_time, professional.timezone)
    if now is None:
        now = local_now(professional.timezone)

    with schedule_locks.lock_for(professional_id, start.date()):
        version = read_version(session, professional_id, start.date())
        validate_slot(resolver, professional, service, start, now)

        if not compare_and_swap_version(session, professional_id, start.date(), version):
            session.rollback()
            logger.warning(f"Version conflict booking professional {professional_id} at {start}")
            raise SlotTaken("Requested time is no longer available")

        client = get_or_create_client(
            session, professional_id, request.client_email, request.client_name, request.client_phone
        )
        appt = Appointment(
            user_id=professional_id,
            service_id=service.id,
            client_id=client.id,
            start_time=start,
            end_time=start + timedelta(minutes=service.duration),
            duration=service.duration,
            buffer_before=service.buffer_before,
            buffer_after=service.buffer_after,
            status="pending",
            payment_status="unpaid",
            payment_method=request.payment_method.value if request.payment_method else None,
            client_notes=request.notes,
        )
        session.add(appt)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise SlotTaken("Requested time is no longer available")

    session.refresh(appt)
    logger.info(f"Booked appointment {appt.id} for professional {professional_id} at {start}")
    return appt


def reschedule_appointment(
    session: Session,
    appt: Appointment,
    new_start: datetime,
    now: Optional[datetime] = None,
    resolver: Optional[AvailabilityResolver] = None,
) -> Appointment:
    if appt.status not in ("pending", "confirmed"):
        raise ValidationError(f"Cannot reschedule a {appt.status} appointment")

    resolver = resolver or AvailabilityResolver(session)
    professional = resolver.get_professional(appt.user_id)
    # forward-looking: inactive services can still be moved
    service = resolver.get_service(appt.user_id, appt.service_id, active_only=False)

    start = to_local_naive(new_start, professional.timezone)
    if now is None:
        now = local_now(professional.timezone)

    with schedule_locks.lock_for(appt.user_id, start.date()):
        version = read_version(session, appt.user_id, start.date())
        validate_slot(resolver, professional, service, start, now, exclude=appt)

        if not compare_and_swap_version(session, appt.user_id, start.date(), version):
            session.rollback()
            raise SlotTaken("Requested time is no longer available")

        appt.start_time = start
        appt.end_time = start + timedelta(minutes=appt.duration)
        appt.updated_at = utcnow()
        session.add(appt)
        session.commit()

    session.refresh(appt)
    logger.info(f"Rescheduled appointment {appt.id} to {start}")
    return appt


def check_status_change(appt: Appointment, new_status: str):
    if new_status != appt.status and new_status not in STATUS_TRANSITIONS.get(appt.status, set()):
        raise ValidationError(f"Cannot change status from {appt.status} to {new_status}")


def check_payment_change(appt: Appointment, new_status: str):
    if new_status != appt.payment_status and new_status not in PAYMENT_TRANSITIONS.get(appt.payment_status, set()):
        raise ValidationError(f"Cannot change payment status from {appt.payment_status} to {new_status}")


def change_status(appt: Appointment, new_status: str):
    check_status_change(appt, new_status)
    if new_status == appt.status:
        return
    logger.info(f"Appointment {appt.id}: {appt.status} -> {new_status}")
    appt.status = new_status
    appt.updated_at = utcnow()


def change_payment_status(appt: Appointment, new_status: str):
    check_payment_change(appt, new_status)
    if new_status == appt.payment_status:
        return
    appt.payment_status = new_status
    appt.updated_at = utcnow()


def days_touched(intervals: Iterable[Interval]) -> List[date]:
    days = set()
    for interval in intervals:
        day = interval.start.date()
        last = (interval.end - timedelta(microseconds=1)).date()
        while day <= last:
            days.add(day)
            day += timedelta(days=1)
    return sorted(days)


def commit_blocked_time(
    session: Session,
    professional_id: int,
    title: str,
    start: datetime,
    end: datetime,
    pattern: Optional[str] = None,
    recurring_end_date: Optional[date] = None,
    now: Optional[datetime] = None,
    resolver: Optional[AvailabilityResolver] = None,
) -> BlockedTime:
    """Store a blocked time unless it overlaps an appointment or another block.

    Recurring entries are checked from today up to the end of the booking
    horizon. Every day an occurrence touches gets its version bumped, so a
    booking validated against the old calendar loses its compare-and-swap.
    """
    resolver = resolver or AvailabilityResolver(session)
    professional = resolver.get_professional(professional_id)
    if now is None:
        now = local_now(professional.timezone)

    horizon_end = datetime.combine(now.date() + timedelta(days=resolver.max_advance_days + 1), time.min)
    if pattern is None:
        window = Interval(start, end)
    else:
        window = Interval(max(start, datetime.combine(now.date(), time.min)), max(end, horizon_end))
    occurrences = expand_occurrences(start, end, window.start, window.end, pattern, recurring_end_date)
    days = days_touched(occurrences)

    with schedule_locks.holding(professional_id, days):
        versions = [(day, read_version(session, professional_id, day)) for day in days]

        busy = resolver.busy_between(professional_id, window)
        for occurrence in occurrences:
            if intersects_any(occurrence, busy):
                raise SlotTaken(
                    f"Blocked time overlaps an appointment or another blocked time on {occurrence.start.date()}"
                )

        for day, version in versions:
            if not compare_and_swap_version(session, professional_id, day, version):
                session.rollback()
                logger.warning(f"Version conflict blocking time for professional {professional_id} on {day}")
                raise SlotTaken("Schedule changed while blocking time, try again")

        block = BlockedTime(
            user_id=professional_id,
            title=title,
            start_time=start,
            end_time=end,
            is_recurring=pattern is not None,
            recurring_pattern=pattern,
            recurring_end_date=recurring_end_date,
        )
        session.add(block)
        session.commit()

    session.refresh(block)
    logger.info(f"Blocked {start} - {end} for professional {professional_id}")
    return block
