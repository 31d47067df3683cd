"""Current vs. history views over appointments, with history filters."""

from collections import Counter
from datetime import date, datetime
from typing import Iterable, Optional

from slotbook.config import settings
from slotbook.schemas.appointment_schema import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
)
from slotbook.utils import to_business_time


def _local_date(value: datetime) -> date:
    return to_business_time(value, settings.schedule.tzinfo).date()


def _sort_key(appt: Appointment):
    return to_business_time(appt.appointment_date_time, settings.schedule.tzinfo)


def split_current_and_history(
    appointments: Iterable[Appointment],
) -> tuple[list[Appointment], list[Appointment]]:
    """
    Split appointments into current and history lists.

    Current (Upcoming, Rescheduled) is soonest first; history
    (Completed, Cancelled, No Arrival) is most recent first.
    """
    appointments = list(appointments)
    current = sorted(
        (a for a in appointments if a.status in ACTIVE_STATUSES), key=_sort_key
    )
    history = sorted(
        (a for a in appointments if a.status in TERMINAL_STATUSES), key=_sort_key, reverse=True
    )
    return current, history


def filter_history(
    appointments: Iterable[Appointment],
    name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
    booked_date: Optional[date] = None,
    appointment_date: Optional[date] = None,
) -> list[Appointment]:
    """Apply the history filters; unset filters match everything."""
    results = list(appointments)
    if name:
        needle = name.lower()
        results = [a for a in results if needle in a.full_name.lower()]
    if email:
        needle = email.lower()
        results = [a for a in results if needle in a.email.lower()]
    if phone:
        results = [a for a in results if phone in a.contact_number]
    if status:
        results = [a for a in results if a.status == status]
    if booked_date:
        results = [a for a in results if _local_date(a.created_at) == booked_date]
    if appointment_date:
        results = [a for a in results if _local_date(a.appointment_date_time) == appointment_date]
    return results


def status_counts(appointments: Iterable[Appointment]) -> dict[str, int]:
    """Count appointments per status; every status is present, zero if unused."""
    counts = Counter(a.status for a in appointments)
    return {status.value: counts.get(status, 0) for status in AppointmentStatus}
