# app/booking_flow.py

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from app.errors import SlotTaken, ValidationError
from app.models import Appointment
from app.schemas import EMAIL_PATTERN, AppointmentCreate, PaymentMethod

logger = logging.getLogger(__name__)


class BookingStep(str, Enum):
    select_service = "select_service"
    select_slot = "select_slot"
    client_info = "client_info"
    confirm = "confirm"
    done = "done"


STEP_ORDER = [
    BookingStep.select_service,
    BookingStep.select_slot,
    BookingStep.client_info,
    BookingStep.confirm,
    BookingStep.done,
]


@dataclass
class BookingFlow:
    """Client-side booking wizard, independent of any UI.

    Each forward transition requires the data for the current step; ``back``
    moves one step back and keeps what was entered, except that picking a
    different service drops the chosen slot.
    """

    professional_id: int
    step: BookingStep = BookingStep.select_service

    service_id: Optional[int] = None
    start_time: Optional[datetime] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    appointment_id: Optional[int] = None

    def _require(self, step: BookingStep):
        if self.step != step:
            raise ValidationError(f"Cannot do {step.value} while at {self.step.value}")

    def _advance(self):
        self.step = STEP_ORDER[STEP_ORDER.index(self.step) + 1]

    def select_service(self, service_id: int):
        self._require(BookingStep.select_service)
        if self.service_id != service_id:
            self.start_time = None
        self.service_id = service_id
        self._advance()

    def select_slot(self, start_time: datetime):
        self._require(BookingStep.select_slot)
        self.start_time = start_time
        self._advance()

    def enter_client_info(
        self,
        name: str,
        email: str,
        phone: Optional[str] = None,
        notes: Optional[str] = None,
        payment_method: Optional[PaymentMethod] = None,
    ):
        self._require(BookingStep.client_info)
        if not name or not name.strip():
            raise ValidationError("Client name is required")
        if not email or not re.match(EMAIL_PATTERN, email.strip()):
            raise ValidationError("A valid client email is required")
        self.client_name = name.strip()
        self.client_email = email.strip()
        self.client_phone = phone
        self.notes = notes
        self.payment_method = payment_method
        self._advance()

    def back(self):
        if self.step in (BookingStep.select_service, BookingStep.done):
            raise ValidationError(f"Cannot go back from {self.step.value}")
        self.step = STEP_ORDER[STEP_ORDER.index(self.step) - 1]

    def to_request(self) -> AppointmentCreate:
        self._require(BookingStep.confirm)
        return AppointmentCreate(
            service_id=self.service_id,
            client_email=self.client_email,
            client_name=self.client_name,
            client_phone=self.client_phone,
            start_time=self.start_time,
            notes=self.notes,
            payment_method=self.payment_method,
        )

    def confirm(self, book: Callable[[int, AppointmentCreate], Appointment]) -> Appointment:
        """Submit through ``book``. A taken slot sends the flow back to slot selection."""
        request = self.to_request()
        try:
            appt = book(self.professional_id, request)
        except SlotTaken:
            logger.info(f"Slot {self.start_time} taken, back to slot selection")
            self.start_time = None
            self.step = BookingStep.select_slot
            raise
        self.appointment_id = appt.id
        self._advance()
        return appt
