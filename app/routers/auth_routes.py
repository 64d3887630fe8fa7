# app/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from app.availability import get_zone
from app.config import DEFAULT_TIMEZONE
from app.db import get_session
from app.models import User
from app.schemas import Token, UserCreate, RegisterResponse
from app.auth import verify_password, create_access_token, hash_password

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


def user_public(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "timezone": user.timezone,
        "role": user.role,
    }


@router.post("/register", status_code=201, response_model=RegisterResponse)
def register(
    user: UserCreate,
    session: Session = Depends(get_session),
):
    email = user.email.strip().lower()

    # 1) Check if email already exists
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Validate timezone before storing it
    tz_name = user.timezone or DEFAULT_TIMEZONE
    get_zone(tz_name)

    # 3) Create professional in DB
    db_user = User(
        email=email,
        password_hash=hash_password(user.password),
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        timezone=tz_name,
        role="professional",
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    logger.info(f"Registered professional {db_user.id}")

    token = create_access_token({"sub": db_user.email})
    return {"user": user_public(db_user), "access_token": token, "token_type": "bearer"}


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # Swagger OAuth2 "password" flow uses "username" field
    email = form_data.username.strip().lower()
    password = form_data.password

    user = session.exec(
        select(User).where(User.email == email)
    ).first()

    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token({"sub": user.email})
    return {"access_token": token, "token_type": "bearer"}
