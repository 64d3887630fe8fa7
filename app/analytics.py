# app/analytics.py

from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta

from sqlmodel import Session, select

from app.errors import ValidationError
from app.models import Appointment, Client, Service

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _previous_month_start(day: date) -> date:
    first = _month_start(day)
    return _month_start(first - timedelta(days=1))


def _next_month_start(day: date) -> date:
    return _month_start(_month_start(day) + timedelta(days=32))


def build_dashboard(session: Session, professional_id: int, period: str, today: date) -> dict:
    if period not in PERIOD_DAYS:
        raise ValidationError(f"period must be one of {', '.join(PERIOD_DAYS)}")
    days = PERIOD_DAYS[period]
    period_start = today - timedelta(days=days - 1)

    services = {
        s.id: s for s in session.exec(select(Service).where(Service.user_id == professional_id)).all()
    }
    appts = session.exec(select(Appointment).where(Appointment.user_id == professional_id)).all()
    clients = session.exec(select(Client).where(Client.user_id == professional_id)).all()

    def price(a: Appointment) -> int:
        service = services.get(a.service_id)
        return service.price if service else 0

    this_month = _month_start(today)
    last_month = _previous_month_start(today)
    next_month = _next_month_start(today)

    paid = [a for a in appts if a.payment_status == "paid"]
    revenue_this_month = sum(price(a) for a in paid if this_month <= a.start_time.date() < next_month)
    revenue_last_month = sum(price(a) for a in paid if last_month <= a.start_time.date() < this_month)
    if revenue_last_month:
        growth = round((revenue_this_month - revenue_last_month) / revenue_last_month * 100, 1)
    else:
        growth = 0.0

    statuses = Counter(a.status for a in appts)
    active = [a for a in appts if a.status != "cancelled"]

    bookings_per_client = Counter(a.client_id for a in active)
    period_start_dt = datetime.combine(period_start, time.min)

    per_service = defaultdict(lambda: {"bookings": 0, "revenue": 0})
    for a in active:
        per_service[a.service_id]["bookings"] += 1
    for a in paid:
        per_service[a.service_id]["revenue"] += price(a)

    popular = sorted(
        (
            {
                "service_id": service_id,
                "service_name": services[service_id].name if service_id in services else "",
                "bookings": stats["bookings"],
                "revenue": stats["revenue"],
            }
            for service_id, stats in per_service.items()
        ),
        key=lambda s: (-s["bookings"], -s["revenue"], s["service_id"]),
    )[:5]

    chart = []
    for offset in range(days):
        day = period_start + timedelta(days=offset)
        chart.append({
            "date": day,
            "revenue": sum(price(a) for a in paid if a.start_time.date() == day),
            "bookings": len([a for a in active if a.start_time.date() == day]),
        })

    return {
        "revenue": {
            "total": sum(price(a) for a in paid),
            "this_month": revenue_this_month,
            "last_month": revenue_last_month,
            "growth": growth,
        },
        "bookings": {
            "total": len(appts),
            "this_month": len([a for a in appts if this_month <= a.start_time.date() < next_month]),
            "pending": statuses["pending"],
            "confirmed": statuses["confirmed"],
            "completed": statuses["completed"],
        },
        "clients": {
            "total": len(clients),
            "new": len([c for c in clients if c.created_at >= period_start_dt]),
            "returning": len([c for c, n in bookings_per_client.items() if n > 1]),
        },
        "popular_services": popular,
        "revenue_chart": chart,
    }
