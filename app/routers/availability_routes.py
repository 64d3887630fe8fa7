# app/routers/availability_routes.py

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.db import get_session
from app.models import WorkingHours as WorkingHoursModel, BlockedTime as BlockedTimeModel, utcnow
from app.schemas import WorkingHoursUpdate, WorkingHoursPublic, BlockedTimeCreate, BlockedTimePublic
from app.auth import get_current_user
from app.availability import to_local_naive, validate_time_slots
from app.booking import commit_blocked_time
from app.core import expand_occurrences
from app.deps import require_role, require_owner
from app.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/availability",
    tags=["availability"],
)


def working_hours_public(day_of_week: int, row: Optional[WorkingHoursModel]) -> dict:
    if row is None:
        return {"day_of_week": day_of_week, "is_available": False, "time_slots": []}
    return {
        "day_of_week": row.day_of_week,
        "is_available": row.is_available,
        "time_slots": row.time_slots,
    }


@router.get("/working-hours", response_model=List[WorkingHoursPublic])
def get_working_hours(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    rows = session.exec(
        select(WorkingHoursModel).where(WorkingHoursModel.user_id == current_user["id"])
    ).all()
    by_day = {r.day_of_week: r for r in rows}

    # always 7 entries, Sunday first
    return [working_hours_public(day, by_day.get(day)) for day in range(7)]


@router.put("/working-hours", response_model=WorkingHoursPublic)
def update_working_hours(
    hours: WorkingHoursUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    slots = [s.model_dump() for s in hours.time_slots]
    ordered = validate_time_slots(slots)
    if hours.is_available and not ordered:
        raise ValidationError("An available day needs at least one time slot")
    time_slots = [
        {"start_time": start.strftime("%H:%M"), "end_time": end.strftime("%H:%M")}
        for start, end in ordered
    ]

    # DB upsert: one row per professional and weekday
    db_hours = session.exec(
        select(WorkingHoursModel)
        .where(WorkingHoursModel.user_id == current_user["id"])
        .where(WorkingHoursModel.day_of_week == hours.day_of_week)
    ).first()
    if db_hours is None:
        db_hours = WorkingHoursModel(
            user_id=current_user["id"],
            day_of_week=hours.day_of_week,
            is_available=hours.is_available,
            time_slots=time_slots,
        )
    else:
        db_hours.is_available = hours.is_available
        db_hours.time_slots = time_slots
        db_hours.updated_at = utcnow()

    session.add(db_hours)
    session.commit()
    session.refresh(db_hours)
    logger.info(f"Updated working hours for professional {current_user['id']}, day {hours.day_of_week}")

    return working_hours_public(hours.day_of_week, db_hours)


@router.get("/blocked-times", response_model=List[BlockedTimePublic])
def list_blocked_times(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    blocks = session.exec(
        select(BlockedTimeModel)
        .where(BlockedTimeModel.user_id == current_user["id"])
        .order_by(BlockedTimeModel.start_time)
    ).all()

    if start_date is None and end_date is None:
        return blocks

    window_start = datetime.combine(start_date, time.min) if start_date else None
    window_end = datetime.combine(end_date, time.min) + timedelta(days=1) if end_date else datetime.max
    found = []
    for b in blocks:
        if b.start_time >= window_end:
            continue
        pattern = b.recurring_pattern if b.is_recurring else None
        if pattern is not None and end_date is None:
            # open-ended window: any recurring entry that has not ended yet applies
            if window_start is None or b.recurring_end_date is None or b.recurring_end_date > window_start.date():
                found.append(b)
            continue
        ws = window_start or b.start_time
        if expand_occurrences(b.start_time, b.end_time, ws, window_end, pattern, b.recurring_end_date):
            found.append(b)
    return found


@router.post("/blocked-times", response_model=BlockedTimePublic, status_code=201)
def create_blocked_time(
    block: BlockedTimeCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    start = to_local_naive(block.start_time, current_user["timezone"])
    end = to_local_naive(block.end_time, current_user["timezone"])
    if end <= start:
        raise ValidationError("Blocked time must end after it starts")

    pattern = block.recurring_pattern.value if block.recurring_pattern else None
    if block.is_recurring and pattern is None:
        raise ValidationError("Recurring blocked times need a recurring_pattern")
    if not block.is_recurring and (pattern is not None or block.recurring_end_date is not None):
        raise ValidationError("recurring_pattern and recurring_end_date need is_recurring")
    if block.recurring_end_date is not None and block.recurring_end_date <= start.date():
        raise ValidationError("recurring_end_date must be after the first occurrence")

    # overlapping an appointment or another block is a 409
    return commit_blocked_time(
        session,
        current_user["id"],
        block.title,
        start,
        end,
        pattern=pattern,
        recurring_end_date=block.recurring_end_date,
    )


@router.delete("/blocked-times/{block_id}", status_code=204)
def delete_blocked_time(
    block_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    block = session.get(BlockedTimeModel, block_id)
    if block is None:
        raise NotFound("Blocked time not found")
    require_owner(current_user, block.user_id, "Blocked time")

    session.delete(block)
    session.commit()
