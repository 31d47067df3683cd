"""Shared test fixtures and helpers."""

import itertools
from datetime import datetime
from typing import Optional

import pytest

from slotbook.schemas.appointment_schema import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
)
from slotbook.scheduling.status_machine import AppointmentStatusMachine
from slotbook.tools import appointments as appointment_store

_ids = itertools.count(1)


@pytest.fixture(autouse=True)
def clean_store():
    appointment_store.reset()
    yield
    appointment_store.reset()


@pytest.fixture
def status_machine():
    return AppointmentStatusMachine(clock=lambda: datetime(2024, 6, 1, 9, 0))


def make_appointment(
    when: datetime,
    category: str = "Oil Change",
    status: AppointmentStatus = AppointmentStatus.UPCOMING,
    service_type: str = "synthetic-oil",
    appointment_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    first_name: str = "Maria",
    last_name: str = "Santos",
    email: str = "maria.santos@email.com",
    contact_number: str = "09171234567",
) -> Appointment:
    """Helper to create an Appointment with sensible defaults."""
    return Appointment(
        id=appointment_id or f"APT-T{next(_ids):05d}",
        first_name=first_name,
        last_name=last_name,
        contact_number=contact_number,
        email=email,
        service_category=category,
        service_type=service_type,
        appointment_date_time=when,
        status=status,
        created_at=created_at or datetime(2024, 6, 1, 8, 0),
    )


def make_request(
    when: Optional[datetime],
    category: str = "Oil Change",
    service_type: str = "synthetic-oil",
    **overrides,
) -> AppointmentRequest:
    """Helper to create a valid AppointmentRequest."""
    payload = {
        "first_name": "Maria",
        "last_name": "Santos",
        "contact_number": "09171234567",
        "email": "maria.santos@email.com",
        "service_category": category,
        "service_type": service_type,
        "appointment_date_time": when,
        "additional_notes": None,
    }
    payload.update(overrides)
    return AppointmentRequest(**payload)
