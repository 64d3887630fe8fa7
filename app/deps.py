# app/deps.py

from fastapi import HTTPException

from app.errors import NotFound


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def require_owner(user: dict, owner_id: int, what: str):
    # other professionals' records are reported as missing, not forbidden
    if owner_id != user["id"] and user["role"] != "admin":
        raise NotFound(f"{what} not found")
