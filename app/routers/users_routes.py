# app/routers/users_routes.py

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.db import get_session
from app.models import User
from app.schemas import UserPublic
from app.auth import get_current_user
from app.routers.auth_routes import user_public

router = APIRouter(
    tags=["users"],
)


@router.get("/me", response_model=UserPublic)
def me(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    user = session.get(User, current_user["id"])
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user_public(user)
