# app/routers/professionals_routes.py
#
# Public booking surface: no token, clients identify themselves by email.

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.db import get_session
from app.models import Service
from app.schemas import AppointmentCreate, AppointmentPublic, AvailabilityResponse, ServicePublic
from app.availability import AvailabilityResolver
from app.booking import commit_booking
from app.errors import NotFound
from app.routers.appointments_routes import appointment_public

router = APIRouter(
    prefix="/professionals",
    tags=["booking"],
)


@router.get("/{professional_id}/services", response_model=List[ServicePublic])
def professional_services(
    professional_id: int,
    session: Session = Depends(get_session),
):
    AvailabilityResolver(session).get_professional(professional_id)

    return session.exec(
        select(Service)
        .where(Service.user_id == professional_id)
        .where(Service.is_active == True)  # noqa: E712
        .order_by(Service.id)
    ).all()


@router.get("/{professional_id}/availability", response_model=AvailabilityResponse)
def professional_availability(
    professional_id: int,
    service_id: int,
    on_date: str = Query(alias="date"),
    session: Session = Depends(get_session),
):
    try:
        day = date.fromisoformat(on_date)
    except ValueError:
        raise NotFound(f"Invalid date {on_date!r}")

    slots = AvailabilityResolver(session).available_slots(professional_id, service_id, day)

    return {
        "professional_id": professional_id,
        "service_id": service_id,
        "date": day,
        "available_starts": [s.strftime("%H:%M") for s in slots],
    }


@router.post("/{professional_id}/appointments", response_model=AppointmentPublic, status_code=201)
def book_appointment(
    professional_id: int,
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
):
    db_appt = commit_booking(session, professional_id, appt)
    return appointment_public(session, db_appt)
