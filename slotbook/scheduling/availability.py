"""
Slot availability engine.

Classifies every slot of a day as Open, Booked or Past for one service
category, and pre-checks a booking request against a snapshot of the
existing appointments. All functions are pure: the caller supplies the
appointments and the current time. The check here is optimistic; the
store repeats it under a lock before writing.
"""

from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Optional, TypedDict

from slotbook.config import settings
from slotbook.logging_context import get_request_logger
from slotbook.schemas.appointment_schema import Appointment
from slotbook.scheduling.errors import SlotAlreadyBooked, SlotInPast, SlotNotSelectable
from slotbook.scheduling.slots import Slot, SlotScheme, enumerate_slots
from slotbook.utils import to_business_time, truncate_to_minute

logger = get_request_logger(__name__)


class SlotStatus(str, Enum):
    """Derived status of a slot for one day and category."""

    OPEN = "Open"
    BOOKED = "Booked"
    PAST = "Past"


class SlotAvailability(TypedDict):
    """One cell of the day board."""

    slot: str
    label: str
    starts_at: str
    status: str


class NextOpenSlot(TypedDict):
    """Result from find_next_open_slot."""

    date: str
    slot: str
    label: str
    starts_at: str


def _resolve_tz(tz: Optional[tzinfo]) -> tzinfo:
    return tz if tz is not None else settings.schedule.tzinfo


def _default_scheme() -> SlotScheme:
    return SlotScheme.from_config(settings.schedule)


def is_slot_booked(
    slot: Slot,
    day: date,
    service_category: str,
    appointments: Iterable[Appointment],
    tz: Optional[tzinfo] = None,
) -> bool:
    """True if a non-cancelled appointment in the category starts at this slot."""
    tz = _resolve_tz(tz)
    start = slot.starts_at(day, tz)
    return any(
        appt.occupies_slot
        and appt.service_category == service_category
        and truncate_to_minute(to_business_time(appt.appointment_date_time, tz)) == start
        for appt in appointments
    )


def is_slot_in_past(
    slot: Slot, day: date, now: datetime, tz: Optional[tzinfo] = None
) -> bool:
    """True if the slot start is strictly before ``now``."""
    tz = _resolve_tz(tz)
    return slot.starts_at(day, tz) < to_business_time(now, tz)


def classify_slot(
    slot: Slot,
    day: date,
    service_category: str,
    appointments: Iterable[Appointment],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> SlotStatus:
    """
    Classify a slot.

    Booked is checked before Past, so a booked slot in the past still
    reports Booked and the historical record stays visible.
    """
    if is_slot_booked(slot, day, service_category, appointments, tz):
        return SlotStatus.BOOKED
    if is_slot_in_past(slot, day, now, tz):
        return SlotStatus.PAST
    return SlotStatus.OPEN


def request_booking(
    slot: Slot,
    day: date,
    service_category: str,
    appointments: Iterable[Appointment],
    now: datetime,
    read_only: bool = False,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """
    Decide whether ``slot`` on ``day`` can be booked.

    Returns:
        The absolute slot start, to be submitted as the appointment datetime.

    Raises:
        SlotNotSelectable: If the calendar is read-only.
        SlotAlreadyBooked: If the slot is taken in this category.
        SlotInPast: If the slot start has elapsed.
    """
    if read_only:
        raise SlotNotSelectable("Time slots cannot be selected in read-only mode.")

    status = classify_slot(slot, day, service_category, appointments, now, tz)
    if status == SlotStatus.BOOKED:
        logger.warning(
            "Rejected booking: %s %s already booked for %s",
            day.isoformat(), slot.label, service_category,
        )
        raise SlotAlreadyBooked(
            f"The {slot.label} slot on {day.isoformat()} is already booked."
        )
    if status == SlotStatus.PAST:
        logger.warning("Rejected booking: %s %s is in the past", day.isoformat(), slot.label)
        raise SlotInPast(f"The {slot.label} slot on {day.isoformat()} has already passed.")

    return slot.starts_at(day, _resolve_tz(tz))


def get_day_availability(
    day: date,
    service_category: str,
    appointments: Iterable[Appointment],
    now: datetime,
    scheme: Optional[SlotScheme] = None,
    tz: Optional[tzinfo] = None,
) -> list[SlotAvailability]:
    """Classify every slot of ``day``, in schedule order."""
    tz = _resolve_tz(tz)
    appointments = list(appointments)
    board: list[SlotAvailability] = []
    for slot in enumerate_slots(day, scheme or _default_scheme()):
        status = classify_slot(slot, day, service_category, appointments, now, tz)
        board.append(
            {
                "slot": slot.key,
                "label": slot.label,
                "starts_at": slot.starts_at(day, tz).isoformat(),
                "status": status.value,
            }
        )
    return board


def find_next_open_slot(
    from_day: date,
    service_category: str,
    appointments: Iterable[Appointment],
    now: datetime,
    scheme: Optional[SlotScheme] = None,
    horizon_days: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[NextOpenSlot]:
    """Return the first Open slot on or after ``from_day`` within the booking horizon."""
    tz = _resolve_tz(tz)
    scheme = scheme or _default_scheme()
    horizon = horizon_days if horizon_days is not None else settings.shop.booking_horizon_days
    appointments = list(appointments)

    for offset in range(horizon):
        day = from_day + timedelta(days=offset)
        for slot in enumerate_slots(day, scheme):
            if classify_slot(slot, day, service_category, appointments, now, tz) == SlotStatus.OPEN:
                return {
                    "date": day.isoformat(),
                    "slot": slot.key,
                    "label": slot.label,
                    "starts_at": slot.starts_at(day, tz).isoformat(),
                }
    return None
