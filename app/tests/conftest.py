from __future__ import annotations

import os

# before app.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app import models  # noqa: F401
from app.auth import create_access_token, hash_password
from app.db import get_session
from app.main import app
from app.models import Service, User, WorkingHours


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def professional(session) -> User:
    user = User(
        email="pro@example.com",
        password_hash=hash_password("password123"),
        first_name="Jane",
        last_name="Doe",
        timezone="UTC",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def auth_headers(professional) -> dict:
    token = create_access_token({"sub": professional.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_service(session, professional):
    def _make(**overrides) -> Service:
        fields = {
            "user_id": professional.id,
            "name": "Consultation",
            "description": "One hour consultation",
            "duration": 60,
            "price": 15000,
        }
        fields.update(overrides)
        service = Service(**fields)
        session.add(service)
        session.commit()
        session.refresh(service)
        return service

    return _make


@pytest.fixture
def set_hours(session, professional):
    def _set(day_of_week: int, *slots: tuple, is_available: bool = True) -> WorkingHours:
        hours = WorkingHours(
            user_id=professional.id,
            day_of_week=day_of_week,
            is_available=is_available,
            time_slots=[{"start_time": s, "end_time": e} for s, e in slots],
        )
        session.add(hours)
        session.commit()
        return hours

    return _set


@pytest.fixture
def next_monday() -> date:
    # 1..7 days ahead, inside the default booking horizon
    today = date.today()
    return today + timedelta(days=7 - today.weekday())
