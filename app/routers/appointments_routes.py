# app/routers/appointments_routes.py

import logging
import math
from datetime import datetime, timedelta, date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlmodel import Session, select

from app.db import get_session
from app.models import Appointment, Client, Service
from app.schemas import (
    AppointmentPage,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentUpdate,
)
from app.auth import get_current_user
from app.booking import (
    change_payment_status,
    change_status,
    check_payment_change,
    check_status_change,
    reschedule_appointment,
)
from app.deps import require_role, require_owner
from app.errors import NotFound

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


def appointment_public(session: Session, appt: Appointment) -> dict:
    service = session.get(Service, appt.service_id)
    client = session.get(Client, appt.client_id)
    return {
        **appt.model_dump(),
        "service": service.model_dump(),
        "client": client.model_dump(),
    }


def get_owned_appointment(session: Session, appt_id: int, current_user: dict) -> Appointment:
    appt = session.get(Appointment, appt_id)
    if appt is None:
        raise NotFound("Appointment not found")
    require_owner(current_user, appt.user_id, "Appointment")
    return appt


@router.get("", response_model=AppointmentPage)
def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[AppointmentStatus] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service_id: Optional[int] = None,
    client_id: Optional[int] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    stmt = select(Appointment).where(Appointment.user_id == current_user["id"])

    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)
    if start_date is not None:
        stmt = stmt.where(Appointment.start_time >= datetime.combine(start_date, datetime.min.time()))
    if end_date is not None:
        # end_date is inclusive
        end_dt = datetime.combine(end_date, datetime.min.time()) + timedelta(days=1)
        stmt = stmt.where(Appointment.start_time < end_dt)
    if service_id is not None:
        stmt = stmt.where(Appointment.service_id == service_id)
    if client_id is not None:
        stmt = stmt.where(Appointment.client_id == client_id)

    total = session.exec(select(func.count()).select_from(stmt.subquery())).one()

    appts = session.exec(
        stmt.order_by(Appointment.start_time).offset((page - 1) * limit).limit(limit)
    ).all()

    return {
        "data": [appointment_public(session, a) for a in appts],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


@router.get("/{appt_id}", response_model=AppointmentPublic)
def get_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = get_owned_appointment(session, appt_id, current_user)
    return appointment_public(session, appt)


@router.put("/{appt_id}", response_model=AppointmentPublic)
def update_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    appt = get_owned_appointment(session, appt_id, current_user)

    # 1) Reject illegal transitions before anything is written
    if changes.status is not None:
        check_status_change(appt, changes.status.value)
    if changes.payment_status is not None:
        check_payment_change(appt, changes.payment_status.value)

    # 2) Moving the appointment goes through the same re-validation as booking
    if changes.start_time is not None:
        appt = reschedule_appointment(session, appt, changes.start_time)

    # 3) Status and payment transitions
    if changes.status is not None:
        change_status(appt, changes.status.value)
    if changes.payment_status is not None:
        change_payment_status(appt, changes.payment_status.value)
    if changes.notes is not None:
        appt.notes = changes.notes

    session.add(appt)
    session.commit()
    session.refresh(appt)
    return appointment_public(session, appt)


@router.patch("/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # 1) Find the appointment in DB
    appt = get_owned_appointment(session, appt_id, current_user)

    # 2) Already cancelled?
    if appt.status == "cancelled":
        raise HTTPException(status_code=409, detail="Appointment already cancelled")

    # 3) Cancel and persist; the slot becomes bookable again
    change_status(appt, "cancelled")
    session.add(appt)
    session.commit()
    session.refresh(appt)

    return appointment_public(session, appt)
