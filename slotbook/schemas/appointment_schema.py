"""Appointment, booking request and review data models."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from slotbook.utils import normalize_phone

MIN_FIRST_NAME_LENGTH = 2
CONTACT_NUMBER_PATTERN = re.compile(r"^0\d{10}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MAX_RATING = 5


class AppointmentStatus(str, Enum):
    """Lifecycle status of an appointment."""

    UPCOMING = "Upcoming"
    RESCHEDULED = "Rescheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_ARRIVAL = "No Arrival"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_ARRIVAL}
)
ACTIVE_STATUSES = frozenset({AppointmentStatus.UPCOMING, AppointmentStatus.RESCHEDULED})


class _ApiModel(BaseModel):
    """Base for models exchanged with the REST API in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Review(_ApiModel):
    """Customer rating attached to a completed appointment."""

    rating: int = Field(ge=0, le=MAX_RATING)
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AppointmentRequest(_ApiModel):
    """Validated booking payload, as submitted from the booking form."""

    first_name: str
    last_name: str
    contact_number: str
    email: str
    service_category: str
    service_type: str
    appointment_date_time: Optional[datetime] = Field(default=None, validate_default=True)
    additional_notes: Optional[str] = None

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("First name is required")
        if len(v) < MIN_FIRST_NAME_LENGTH:
            raise ValueError("First name should be at least 2 characters")
        return v

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Last name is required")
        return v

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, v: str) -> str:
        cleaned = normalize_phone(v)
        if not cleaned:
            raise ValueError("Contact number is required")
        if not CONTACT_NUMBER_PATTERN.match(cleaned):
            raise ValueError(
                "Enter a valid phone number starting with 0 and containing 11 digits"
            )
        return cleaned

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Email is required")
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v

    @field_validator("service_category")
    @classmethod
    def validate_service_category(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Service category is required")
        return v.strip()

    @field_validator("service_type")
    @classmethod
    def validate_service_type(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Service type is required")
        return v.strip()

    @field_validator("appointment_date_time")
    @classmethod
    def validate_appointment_date_time(cls, v: Optional[datetime]) -> datetime:
        if v is None:
            raise ValueError("Please select a time slot")
        return v


class Appointment(_ApiModel):
    """Stored appointment record."""

    id: str
    first_name: str
    last_name: str
    contact_number: str
    email: str
    service_category: str
    service_type: str
    appointment_date_time: datetime
    status: AppointmentStatus = AppointmentStatus.UPCOMING
    user_id: Optional[str] = None
    additional_notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    review: Optional[Review] = None

    @property
    def booked_at(self) -> datetime:
        return self.created_at

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def occupies_slot(self) -> bool:
        """Cancelled appointments free their slot."""
        return self.status != AppointmentStatus.CANCELLED
