"""
In-memory appointment store.

Stands in for the persistence API behind the booking screens. Every
write goes through the availability engine and the status machine.
Writes to one appointment are serialized on that appointment's lock and
re-read the record under it, so a status change is never lost to a
concurrent edit. The no-double-booking invariant is re-checked under a
per-slot lock, so it holds even when two callers book from the same stale
snapshot. Locks are striped over a fixed pool; an appointment lock is
always taken before a slot lock.

Failures come back as results with a user-facing message; nothing is
raised to the caller. Each write runs under its own request id.
"""

import functools
import threading
import uuid
from datetime import date, datetime, timezone
from typing import Optional, TypedDict

from pydantic import ValidationError

from slotbook.config import settings
from slotbook.logging_context import get_request_logger, request_scope
from slotbook.schemas.appointment_schema import (
    Appointment,
    AppointmentRequest,
    AppointmentStatus,
    Review,
)
from slotbook.scheduling.availability import request_booking
from slotbook.scheduling.errors import (
    BookingError,
    InvalidTransitionError,
    SlotAlreadyBooked,
    SlotNotSelectable,
)
from slotbook.scheduling.slots import SlotScheme, find_slot
from slotbook.scheduling.status_machine import (
    Role,
    apply_status_change,
    resolve_edit_status,
)
from slotbook.tools.services import is_valid_service
from slotbook.utils import to_business_time, truncate_to_minute

logger = get_request_logger(__name__)

SlotKey = tuple[str, datetime]

_LOCK_STRIPES = 64


class AppointmentResult(TypedDict, total=False):
    """Result from every store write."""

    success: bool
    message: str
    error: str
    appointment_id: str
    appointment: Appointment


_appointments: dict[str, Appointment] = {}
_store_lock = threading.Lock()
# Reentrant so cancel_appointment -> change_status can nest on one id.
_record_locks = tuple(threading.RLock() for _ in range(_LOCK_STRIPES))
_slot_locks = tuple(threading.Lock() for _ in range(_LOCK_STRIPES))


def _with_request_id(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with request_scope():
            return func(*args, **kwargs)
    return wrapper


def _failure(error: Exception) -> AppointmentResult:
    return {"success": False, "error": type(error).__name__, "message": str(error)}


def _not_found(appointment_id: str) -> AppointmentResult:
    return {
        "success": False,
        "error": "NotFound",
        "message": f"Appointment {appointment_id} not found.",
    }


def _slot_key(service_category: str, when: datetime) -> SlotKey:
    local = to_business_time(when, settings.schedule.tzinfo)
    return service_category, truncate_to_minute(local)


def _slot_lock(key: SlotKey) -> threading.Lock:
    return _slot_locks[hash(key) % _LOCK_STRIPES]


def _record_lock(appointment_id: str) -> threading.RLock:
    return _record_locks[hash(appointment_id) % _LOCK_STRIPES]


def _all() -> list[Appointment]:
    with _store_lock:
        return list(_appointments.values())


def _save(appointment: Appointment) -> None:
    with _store_lock:
        _appointments[appointment.id] = appointment


def _find_conflict(key: SlotKey, exclude_id: Optional[str] = None) -> Optional[Appointment]:
    for appt in _all():
        if appt.id == exclude_id or not appt.occupies_slot:
            continue
        if _slot_key(appt.service_category, appt.appointment_date_time) == key:
            return appt
    return None


def _precheck(
    request: AppointmentRequest,
    now: datetime,
    read_only: bool,
    scheme: Optional[SlotScheme],
    exclude_id: Optional[str] = None,
) -> datetime:
    """Validate the service and run the optimistic slot check. Returns the slot start."""
    if not is_valid_service(request.service_category, request.service_type):
        raise BookingError(
            f"Service '{request.service_type}' is not offered under "
            f"'{request.service_category}'."
        )

    local = to_business_time(request.appointment_date_time, settings.schedule.tzinfo)
    day = local.date()
    slot = find_slot(local.time(), day, scheme or SlotScheme.from_config(settings.schedule))
    if slot is None:
        raise SlotNotSelectable(f"{local:%Y-%m-%d %H:%M} is not the start of a bookable slot.")

    snapshot = [
        appt for appt in list_appointments(day=day, service_category=request.service_category)
        if appt.id != exclude_id
    ]
    return request_booking(slot, day, request.service_category, snapshot, now, read_only)


@_with_request_id
def create_appointment(
    request: AppointmentRequest,
    now: datetime,
    user_id: Optional[str] = None,
    read_only: bool = False,
    scheme: Optional[SlotScheme] = None,
) -> AppointmentResult:
    """Book a new appointment into the requested slot."""
    try:
        starts_at = _precheck(request, now, read_only, scheme)
    except BookingError as exc:
        logger.warning("Booking rejected: %s", exc)
        return _failure(exc)

    key = _slot_key(request.service_category, starts_at)
    with _slot_lock(key):
        if _find_conflict(key) is not None:
            logger.warning("Write-time conflict for %s at %s", key[0], key[1].isoformat())
            return _failure(SlotAlreadyBooked(
                f"The slot at {starts_at:%Y-%m-%d %H:%M} was just booked by someone else."
            ))

        appointment = Appointment(
            id=f"APT-{uuid.uuid4().hex[:6].upper()}",
            user_id=user_id,
            first_name=request.first_name,
            last_name=request.last_name,
            contact_number=request.contact_number,
            email=request.email,
            service_category=request.service_category,
            service_type=request.service_type,
            appointment_date_time=starts_at,
            additional_notes=request.additional_notes,
            created_at=now,
        )
        _save(appointment)

    logger.info(
        "Appointment created: %s for %s on %s (%s)",
        appointment.id, appointment.full_name, starts_at.isoformat(), request.service_category,
    )
    return {
        "success": True,
        "appointment_id": appointment.id,
        "message": "Appointment booked successfully!",
        "appointment": appointment,
    }


@_with_request_id
def update_appointment(
    appointment_id: str,
    request: AppointmentRequest,
    now: datetime,
    scheme: Optional[SlotScheme] = None,
) -> AppointmentResult:
    """Edit an active appointment; moving an Upcoming one marks it Rescheduled."""
    existing = get_appointment(appointment_id)
    if existing is None:
        return _not_found(appointment_id)

    # Fail fast on closed appointments before touching the slot engine.
    try:
        resolve_edit_status(
            existing.status, existing.appointment_date_time, request.appointment_date_time
        )
    except InvalidTransitionError as exc:
        return _failure(exc)

    old_key = _slot_key(existing.service_category, existing.appointment_date_time)
    new_key = _slot_key(request.service_category, request.appointment_date_time)

    starts_at = existing.appointment_date_time
    if new_key != old_key:
        try:
            starts_at = _precheck(request, now, False, scheme, exclude_id=appointment_id)
        except BookingError as exc:
            return _failure(exc)
    elif not is_valid_service(request.service_category, request.service_type):
        return _failure(BookingError(
            f"Service '{request.service_type}' is not offered under "
            f"'{request.service_category}'."
        ))

    with _record_lock(appointment_id):
        current = get_appointment(appointment_id)
        if current is None:
            return _not_found(appointment_id)
        try:
            new_status = resolve_edit_status(
                current.status, current.appointment_date_time, starts_at
            )
        except InvalidTransitionError as exc:
            logger.warning("Edit rejected for %s: %s", appointment_id, exc)
            return _failure(exc)

        with _slot_lock(new_key):
            if _find_conflict(new_key, exclude_id=appointment_id) is not None:
                return _failure(SlotAlreadyBooked(
                    f"The slot at {starts_at:%Y-%m-%d %H:%M} was just booked by someone else."
                ))
            updated = current.model_copy(update={
                "first_name": request.first_name,
                "last_name": request.last_name,
                "contact_number": request.contact_number,
                "email": request.email,
                "service_category": request.service_category,
                "service_type": request.service_type,
                "appointment_date_time": starts_at,
                "additional_notes": request.additional_notes,
                "status": new_status,
            })
            _save(updated)

    rescheduled = (
        current.status == AppointmentStatus.UPCOMING
        and new_status == AppointmentStatus.RESCHEDULED
    )
    logger.info("Appointment %s: %s (status %s)", "rescheduled" if rescheduled else "updated",
                appointment_id, new_status.value)
    return {
        "success": True,
        "appointment_id": appointment_id,
        "message": (
            "Appointment rescheduled successfully!" if rescheduled
            else "Appointment updated successfully!"
        ),
        "appointment": updated,
    }


@_with_request_id
def change_status(
    appointment_id: str, target: AppointmentStatus, role: Role
) -> AppointmentResult:
    """Apply an explicit status change requested by ``role``."""
    with _record_lock(appointment_id):
        existing = get_appointment(appointment_id)
        if existing is None:
            return _not_found(appointment_id)

        try:
            new_status = apply_status_change(existing.status, target, role)
        except InvalidTransitionError as exc:
            logger.warning("Status change rejected for %s: %s", appointment_id, exc)
            return _failure(exc)

        updated = existing.model_copy(update={"status": new_status})
        _save(updated)

    logger.info("Appointment %s marked %s by %s", appointment_id, new_status.value, role.value)
    return {
        "success": True,
        "appointment_id": appointment_id,
        "message": f"Appointment marked as {new_status.value}.",
        "appointment": updated,
    }


@_with_request_id
def cancel_appointment(appointment_id: str, role: Role = Role.USER) -> AppointmentResult:
    """Cancel an appointment, freeing its slot."""
    result = change_status(appointment_id, AppointmentStatus.CANCELLED, role)
    if result["success"]:
        result["message"] = "Appointment cancelled successfully!"
    return result


@_with_request_id
def delete_appointment(appointment_id: str, role: Role) -> AppointmentResult:
    """Hard-delete an appointment. Admin only."""
    if role != Role.ADMIN:
        return {
            "success": False,
            "error": "PermissionDenied",
            "message": "Only admins can delete appointments.",
        }
    with _record_lock(appointment_id), _store_lock:
        removed = _appointments.pop(appointment_id, None)
    if removed is None:
        return _not_found(appointment_id)
    logger.info("Appointment deleted: %s", appointment_id)
    return {
        "success": True,
        "appointment_id": appointment_id,
        "message": "Appointment deleted successfully!",
    }


@_with_request_id
def add_review(
    appointment_id: str,
    rating: int,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AppointmentResult:
    """Attach a rating to a completed appointment."""
    try:
        review = Review(
            rating=rating,
            comment=comment,
            created_at=now or datetime.now(timezone.utc),
        )
    except ValidationError as exc:
        return {"success": False, "error": "ValidationError", "message": str(exc)}

    with _record_lock(appointment_id):
        existing = get_appointment(appointment_id)
        if existing is None:
            return _not_found(appointment_id)
        if existing.status != AppointmentStatus.COMPLETED:
            return {
                "success": False,
                "error": "ReviewNotAllowed",
                "message": "Only completed appointments can be reviewed.",
            }
        if existing.review is not None:
            return {
                "success": False,
                "error": "ReviewNotAllowed",
                "message": "This appointment has already been reviewed.",
            }

        updated = existing.model_copy(update={"review": review})
        _save(updated)

    logger.info("Review added to %s: %d/5", appointment_id, rating)
    return {
        "success": True,
        "appointment_id": appointment_id,
        "message": "Thank you for your review!",
        "appointment": updated,
    }


def get_appointment(appointment_id: str) -> Optional[Appointment]:
    """Retrieve an appointment by ID."""
    with _store_lock:
        return _appointments.get(appointment_id)


def list_appointments(
    day: Optional[date] = None, service_category: Optional[str] = None
) -> list[Appointment]:
    """List appointments, optionally for one business day and category, by datetime."""
    tz = settings.schedule.tzinfo
    results = [
        appt for appt in _all()
        if (day is None or to_business_time(appt.appointment_date_time, tz).date() == day)
        and (service_category is None or appt.service_category == service_category)
    ]
    return sorted(results, key=lambda a: to_business_time(a.appointment_date_time, tz))


def reset() -> None:
    """Clear all appointments. Used by test fixtures for isolation."""
    with _store_lock:
        _appointments.clear()
