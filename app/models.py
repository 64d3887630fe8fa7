# app/models.py

from typing import Optional, List
from datetime import datetime, date as Date, timezone

from sqlalchemy import DateTime, UniqueConstraint
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column


def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_column(index: bool = False, nullable: bool = False) -> Column:
    # wall-clock values, no tzinfo on the way in or out
    return Column(DateTime(timezone=False), index=index, nullable=nullable)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    timezone: str = "UTC"
    role: str = "professional"  # professional or admin
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    name: str
    description: str
    duration: int  # minutes
    price: int  # cents
    currency: str = "USD"
    category: Optional[str] = None
    is_active: bool = True

    buffer_before: int = 0  # preparation, minutes
    buffer_after: int = 0   # minutes
    max_bookings_per_day: Optional[int] = None

    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())


class WorkingHours(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("user_id", "day_of_week", name="uq_user_weekday"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    day_of_week: int  # 0=Sun ... 6=Sat
    is_available: bool = False
    # [{"start_time": "09:00", "end_time": "12:00"}, ...] ordered, non-overlapping
    time_slots: List[dict] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())


class BlockedTime(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    title: str
    start_time: datetime = Field(sa_column=naive_column())
    end_time: datetime = Field(sa_column=naive_column())
    is_recurring: bool = False
    recurring_pattern: Optional[str] = None  # daily, weekly or monthly
    recurring_end_date: Optional[Date] = None  # exclusive
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())


class Client(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("user_id", "email", name="uq_user_client_email"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    email: str
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id", index=True)
    client_id: int = Field(foreign_key="client.id", index=True)

    # professional's local time
    start_time: datetime = Field(sa_column=naive_column(index=True))
    end_time: datetime = Field(sa_column=naive_column())

    # copied from the service at booking time
    duration: int
    buffer_before: int = 0
    buffer_after: int = 0

    status: str = "pending"
    payment_status: str = "unpaid"
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    client_notes: Optional[str] = None
    reminder_sent: bool = False

    created_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=naive_column())


class ScheduleVersion(SQLModel, table=True):
    user_id: int = Field(foreign_key="user.id", primary_key=True)
    day: Date = Field(primary_key=True)
    version: int = 0
