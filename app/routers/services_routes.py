# app/routers/services_routes.py

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.db import get_session
from app.models import Service, utcnow
from app.schemas import ServiceCreate, ServiceUpdate, ServicePublic
from app.auth import get_current_user
from app.deps import require_role, require_owner
from app.errors import NotFound

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = {"category", "max_bookings_per_day"}

router = APIRouter(
    prefix="/services",
    tags=["services"],
)


def get_owned_service(session: Session, service_id: int, current_user: dict) -> Service:
    service = session.get(Service, service_id)
    if service is None:
        raise NotFound("Service not found")
    require_owner(current_user, service.user_id, "Service")
    return service


@router.get("", response_model=List[ServicePublic])
def list_services(
    include_inactive: bool = False,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    stmt = select(Service).where(Service.user_id == current_user["id"])
    if not include_inactive:
        stmt = stmt.where(Service.is_active == True)  # noqa: E712
    return session.exec(stmt.order_by(Service.id)).all()


@router.post("", response_model=ServicePublic, status_code=201)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    db_service = Service(user_id=current_user["id"], **service.model_dump())
    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    logger.info(f"Created service {db_service.id} for professional {current_user['id']}")
    return db_service


@router.get("/{service_id}", response_model=ServicePublic)
def get_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return get_owned_service(session, service_id, current_user)


@router.put("/{service_id}", response_model=ServicePublic)
def update_service(
    service_id: int,
    changes: ServiceUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # Existing appointments keep the duration and buffers they were booked with
    service = get_owned_service(session, service_id, current_user)

    for field, value in changes.model_dump(exclude_unset=True).items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(service, field, value)
    service.updated_at = utcnow()

    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@router.delete("/{service_id}", response_model=ServicePublic)
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # Soft delete: booked appointments still reference the service
    service = get_owned_service(session, service_id, current_user)
    service.is_active = False
    service.updated_at = utcnow()

    session.add(service)
    session.commit()
    session.refresh(service)
    logger.info(f"Deactivated service {service.id}")
    return service
