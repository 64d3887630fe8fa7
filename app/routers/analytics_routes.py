# app/routers/analytics_routes.py

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.db import get_session
from app.schemas import AnalyticsData
from app.auth import get_current_user
from app.analytics import build_dashboard
from app.availability import local_now
from app.deps import require_role

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
)


@router.get("/dashboard", response_model=AnalyticsData)
def dashboard(
    period: str = "30d",
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "professional", "admin")

    today = local_now(current_user["timezone"]).date()
    return build_dashboard(session, current_user["id"], period, today)
