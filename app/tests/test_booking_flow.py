from __future__ import annotations

from datetime import datetime

import pytest

from app.booking_flow import BookingFlow, BookingStep
from app.errors import SlotTaken, ValidationError
from app.models import Appointment

START = datetime(2026, 3, 2, 10, 0)


def _flow_at_confirm() -> BookingFlow:
    flow = BookingFlow(professional_id=1)
    flow.select_service(7)
    flow.select_slot(START)
    flow.enter_client_info("Ann Client", " ann@example.com ", phone="555-0100")
    return flow


def test_happy_path_reaches_done() -> None:
    flow = _flow_at_confirm()
    seen = []

    def book(professional_id, request):
        seen.append((professional_id, request))
        return Appointment(id=42, user_id=1, service_id=7, client_id=1, start_time=START, end_time=START, duration=60)

    appt = flow.confirm(book)

    assert appt.id == 42
    assert flow.step == BookingStep.done
    assert flow.appointment_id == 42
    professional_id, request = seen[0]
    assert professional_id == 1
    assert request.service_id == 7
    assert request.client_email == "ann@example.com"
    assert request.start_time == START


def test_steps_cannot_be_skipped() -> None:
    flow = BookingFlow(professional_id=1)

    with pytest.raises(ValidationError):
        flow.select_slot(START)
    with pytest.raises(ValidationError):
        flow.to_request()


def test_client_info_is_validated() -> None:
    flow = BookingFlow(professional_id=1)
    flow.select_service(7)
    flow.select_slot(START)

    with pytest.raises(ValidationError):
        flow.enter_client_info("  ", "ann@example.com")
    with pytest.raises(ValidationError):
        flow.enter_client_info("Ann", "not-an-email")
    assert flow.step == BookingStep.client_info


def test_back_keeps_slot_unless_service_changes() -> None:
    flow = _flow_at_confirm()

    flow.back()
    flow.back()
    assert flow.step == BookingStep.select_slot
    assert flow.start_time == START

    flow.back()
    flow.select_service(7)
    assert flow.start_time == START

    flow.back()
    flow.select_service(8)
    assert flow.start_time is None

    flow.back()
    with pytest.raises(ValidationError):
        flow.back()


def test_taken_slot_sends_flow_back_to_slot_selection() -> None:
    flow = _flow_at_confirm()

    def book(professional_id, request):
        raise SlotTaken("Requested time is no longer available")

    with pytest.raises(SlotTaken):
        flow.confirm(book)

    assert flow.step == BookingStep.select_slot
    assert flow.start_time is None
    assert flow.client_email == "ann@example.com"


def test_client_email_must_match_booking_request_rules() -> None:
    flow = BookingFlow(professional_id=1)
    flow.select_service(7)
    flow.select_slot(START)

    with pytest.raises(ValidationError):
        flow.enter_client_info("Ann", "a@b@c")
    with pytest.raises(ValidationError):
        flow.enter_client_info("Ann", "ann @example.com")
