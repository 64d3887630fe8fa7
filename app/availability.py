# app/availability.py
"""Availability resolver.

Turns a professional's weekly working hours, blocked times and existing
appointments into the ordered list of bookable start times for one service
on one date. Reading only: nothing here writes to the session.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel import Session, select

from app import config
from app.core import Interval, expand_occurrences, intersects_any, merge_intervals, parse_hhmm, weekday_index
from app.errors import NotFound, ValidationError
from app.models import Appointment, BlockedTime, Service, User, WorkingHours

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


def validate_time_slots(slots: Sequence[dict]) -> List[Tuple[time, time]]:
    """Parse HH:MM pairs and reject empty or overlapping intervals. Returns them sorted."""
    parsed = []
    for slot in slots:
        start = parse_hhmm(slot["start_time"])
        end = parse_hhmm(slot["end_time"])
        if start >= end:
            raise ValidationError(f"Time slot {slot['start_time']}-{slot['end_time']} must end after it starts")
        parsed.append((start, end))

    parsed.sort()
    for (_, prev_end), (next_start, _) in zip(parsed, parsed[1:]):
        if next_start < prev_end:
            raise ValidationError("Working hour time slots cannot overlap")
    return parsed


def get_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown timezone {tz_name!r}") from e


def local_now(tz_name: str) -> datetime:
    """Current wall-clock time in the professional's timezone, naive like stored datetimes."""
    return datetime.now(get_zone(tz_name)).replace(tzinfo=None, microsecond=0)


def to_local_naive(value: datetime, tz_name: str) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(get_zone(tz_name)).replace(tzinfo=None)


def occupied_interval(start: datetime, duration: int, buffer_before: int = 0, buffer_after: int = 0) -> Interval:
    return Interval(
        start - timedelta(minutes=buffer_before),
        start + timedelta(minutes=duration + buffer_after),
    )


def appointment_interval(appt: Appointment) -> Interval:
    return occupied_interval(appt.start_time, appt.duration, appt.buffer_before, appt.buffer_after)


def compute_slots(
    day: date,
    working: Sequence[Tuple[time, time]],
    busy: Sequence[Interval],
    duration: int,
    buffer_before: int = 0,
    buffer_after: int = 0,
    now: Optional[datetime] = None,
    slot_minutes: int = 15,
) -> List[datetime]:
    """Bookable start times for one day.

    A candidate must fit ``start + duration + buffer_after`` inside a working
    interval, its buffered footprint must not intersect ``busy`` and it must
    not start before ``now``.
    """
    if duration <= 0:
        raise ValidationError("Service duration must be positive")

    step = timedelta(minutes=slot_minutes)
    busy_sorted = merge_intervals(busy)
    seen = set()
    slots = []

    for work_start, work_end in working:
        current = datetime.combine(day, work_start)
        end = datetime.combine(day, work_end)
        while current + timedelta(minutes=duration + buffer_after) <= end:
            candidate = occupied_interval(current, duration, buffer_before, buffer_after)
            if (now is None or current >= now) and not intersects_any(candidate, busy_sorted):
                if current not in seen:
                    seen.add(current)
                    slots.append(current)
            current += step

    slots.sort()
    return slots


class AvailabilityResolver:
    def __init__(self, session: Session, slot_minutes: Optional[int] = None, max_advance_days: Optional[int] = None):
        self.session = session
        self.slot_minutes = slot_minutes or config.SLOT_MINUTES
        self.max_advance_days = config.MAX_ADVANCE_DAYS if max_advance_days is None else max_advance_days

    def get_professional(self, professional_id: int) -> User:
        professional = self.session.get(User, professional_id)
        if professional is None:
            raise NotFound("Professional not found")
        return professional

    def get_service(self, professional_id: int, service_id: int, active_only: bool = True) -> Service:
        service = self.session.get(Service, service_id)
        if service is None or service.user_id != professional_id:
            raise NotFound("Service not found")
        if active_only and not service.is_active:
            raise NotFound("Service not found")
        return service

    def working_intervals(self, professional_id: int, day: date) -> List[Tuple[time, time]]:
        hours = self.session.exec(
            select(WorkingHours)
            .where(WorkingHours.user_id == professional_id)
            .where(WorkingHours.day_of_week == weekday_index(day))
        ).first()
        if hours is None or not hours.is_available:
            return []
        return validate_time_slots(hours.time_slots)

    def blocked_intervals(self, professional_id: int, window: Interval) -> List[Interval]:
        blocks = self.session.exec(
            select(BlockedTime)
            .where(BlockedTime.user_id == professional_id)
            .where(BlockedTime.start_time < window.end)
        ).all()

        found = []
        for b in blocks:
            pattern = b.recurring_pattern if b.is_recurring else None
            found.extend(
                expand_occurrences(b.start_time, b.end_time, window.start, window.end, pattern, b.recurring_end_date)
            )
        return found

    def appointments_for_window(
        self, professional_id: int, window: Interval, exclude_id: Optional[int] = None
    ) -> List[Appointment]:
        # widened by a day on each side: buffers may cross midnight
        appts = self.session.exec(
            select(Appointment)
            .where(Appointment.user_id == professional_id)
            .where(Appointment.status != CANCELLED)
            .where(Appointment.start_time >= window.start - timedelta(days=1))
            .where(Appointment.start_time < window.end + timedelta(days=1))
        ).all()
        return [a for a in appts if a.id != exclude_id]

    def busy_intervals(self, professional_id: int, day: date, exclude_id: Optional[int] = None) -> List[Interval]:
        day_start = datetime.combine(day, time.min)
        window = Interval(day_start - timedelta(days=1), day_start + timedelta(days=2))
        return self.busy_between(professional_id, window, exclude_id)

    def busy_between(self, professional_id: int, window: Interval, exclude_id: Optional[int] = None) -> List[Interval]:
        busy = [appointment_interval(a) for a in self.appointments_for_window(professional_id, window, exclude_id)]
        busy.extend(self.blocked_intervals(professional_id, window))
        return merge_intervals(busy)

    def bookings_for_service(self, service_id: int, day: date, exclude_id: Optional[int] = None) -> int:
        day_start = datetime.combine(day, time.min)
        appts = self.session.exec(
            select(Appointment)
            .where(Appointment.service_id == service_id)
            .where(Appointment.status != CANCELLED)
            .where(Appointment.start_time >= day_start)
            .where(Appointment.start_time < day_start + timedelta(days=1))
        ).all()
        return len([a for a in appts if a.id != exclude_id])

    def within_horizon(self, day: date, now: datetime) -> bool:
        today = now.date()
        return today <= day <= today + timedelta(days=self.max_advance_days)

    def available_slots(
        self,
        professional_id: int,
        service_id: int,
        day: date,
        now: Optional[datetime] = None,
    ) -> List[datetime]:
        professional = self.get_professional(professional_id)
        service = self.get_service(professional_id, service_id)
        if now is None:
            now = local_now(professional.timezone)

        if not self.within_horizon(day, now):
            return []

        working = self.working_intervals(professional_id, day)
        if not working:
            return []

        if service.max_bookings_per_day is not None:
            if self.bookings_for_service(service.id, day) >= service.max_bookings_per_day:
                logger.info(f"Service {service.id} fully booked on {day}")
                return []

        return compute_slots(
            day,
            working,
            self.busy_intervals(professional_id, day),
            service.duration,
            service.buffer_before,
            service.buffer_after,
            now=now,
            slot_minutes=self.slot_minutes,
        )
