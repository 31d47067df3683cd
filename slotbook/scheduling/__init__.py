from slotbook.scheduling.availability import (
    SlotStatus,
    classify_slot,
    get_day_availability,
    request_booking,
)
from slotbook.scheduling.errors import (
    BookingError,
    InvalidSlotConfig,
    InvalidTransitionError,
    SlotAlreadyBooked,
    SlotInPast,
    SlotNotSelectable,
    TerminalStatusError,
)
from slotbook.scheduling.slots import (
    BANDED_SCHEME,
    HALF_HOURLY_SCHEME,
    Slot,
    SlotScheme,
    enumerate_slots,
)
from slotbook.scheduling.status_machine import (
    AppointmentStatusMachine,
    Role,
    StatusTrigger,
    apply_status_change,
    resolve_edit_status,
)

__all__ = [
    "Slot",
    "SlotScheme",
    "SlotStatus",
    "BANDED_SCHEME",
    "HALF_HOURLY_SCHEME",
    "enumerate_slots",
    "classify_slot",
    "request_booking",
    "get_day_availability",
    "AppointmentStatusMachine",
    "Role",
    "StatusTrigger",
    "apply_status_change",
    "resolve_edit_status",
    "BookingError",
    "SlotNotSelectable",
    "SlotAlreadyBooked",
    "SlotInPast",
    "InvalidSlotConfig",
    "InvalidTransitionError",
    "TerminalStatusError",
]
