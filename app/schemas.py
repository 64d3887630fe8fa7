# app/schemas.py

from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime, date
from typing import List, Optional

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


class UserRole(str, Enum):
    professional = "professional"
    admin = "admin"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class PaymentStatus(str, Enum):
    unpaid = "unpaid"
    paid = "paid"
    refunded = "refunded"


class PaymentMethod(str, Enum):
    card = "card"
    cash = "cash"
    bank_transfer = "bank_transfer"
    pay_later = "pay_later"


class RecurringPattern(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: str = Field(min_length=3, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=72)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: Optional[str] = None
    timezone: Optional[str] = None


class UserPublic(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    timezone: str
    role: UserRole


class RegisterResponse(BaseModel):
    user: UserPublic
    access_token: str
    token_type: str = "bearer"


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    duration: int = Field(ge=15)        # minutes
    price: int = Field(ge=100)          # cents
    currency: str = "USD"
    category: Optional[str] = None
    buffer_before: int = Field(default=0, ge=0)
    buffer_after: int = Field(default=0, ge=0)
    max_bookings_per_day: Optional[int] = Field(default=None, ge=1)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=15)
    price: Optional[int] = Field(default=None, ge=100)
    currency: Optional[str] = None
    category: Optional[str] = None
    buffer_before: Optional[int] = Field(default=None, ge=0)
    buffer_after: Optional[int] = Field(default=None, ge=0)
    max_bookings_per_day: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class ServicePublic(BaseModel):
    id: int
    user_id: int
    name: str
    description: str
    duration: int
    price: int
    currency: str
    category: Optional[str] = None
    is_active: bool
    buffer_before: int
    buffer_after: int
    max_bookings_per_day: Optional[int] = None


class TimeSlot(BaseModel):
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)


class WorkingHoursUpdate(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0=Sun ... 6=Sat
    is_available: bool
    time_slots: List[TimeSlot]


class WorkingHoursPublic(BaseModel):
    day_of_week: int
    is_available: bool
    time_slots: List[TimeSlot]


class BlockedTimeCreate(BaseModel):
    title: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    is_recurring: bool = False
    recurring_pattern: Optional[RecurringPattern] = None
    recurring_end_date: Optional[date] = None


class BlockedTimePublic(BaseModel):
    id: int
    title: str
    start_time: datetime
    end_time: datetime
    is_recurring: bool
    recurring_pattern: Optional[RecurringPattern] = None
    recurring_end_date: Optional[date] = None


class ClientPublic(BaseModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None


class AppointmentCreate(BaseModel):
    service_id: int
    client_email: str = Field(min_length=3, pattern=EMAIL_PATTERN)
    client_name: str = Field(min_length=1)
    client_phone: Optional[str] = None
    start_time: datetime
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None


class AppointmentUpdate(BaseModel):
    status: Optional[AppointmentStatus] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None
    start_time: Optional[datetime] = None


class AppointmentPublic(BaseModel):
    id: int
    user_id: int
    service_id: int
    client_id: int
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    client_notes: Optional[str] = None
    reminder_sent: bool
    created_at: datetime
    updated_at: datetime
    service: ServicePublic
    client: ClientPublic


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentPage(BaseModel):
    data: List[AppointmentPublic]
    pagination: Pagination


class AvailabilityResponse(BaseModel):
    professional_id: int
    service_id: int
    date: date
    available_starts: List[str]


class RevenueStats(BaseModel):
    total: int
    this_month: int
    last_month: int
    growth: float


class BookingStats(BaseModel):
    total: int
    this_month: int
    pending: int
    confirmed: int
    completed: int


class ClientStats(BaseModel):
    total: int
    new: int
    returning: int


class PopularService(BaseModel):
    service_id: int
    service_name: str
    bookings: int
    revenue: int


class RevenuePoint(BaseModel):
    date: date
    revenue: int
    bookings: int


class AnalyticsData(BaseModel):
    revenue: RevenueStats
    bookings: BookingStats
    clients: ClientStats
    popular_services: List[PopularService]
    revenue_chart: List[RevenuePoint]
