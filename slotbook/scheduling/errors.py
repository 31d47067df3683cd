"""Typed failures raised by the scheduling engine and the status machine."""


class BookingError(Exception):
    """Base class for booking-rule violations."""


class SlotNotSelectable(BookingError):
    """Raised when a slot is picked while the calendar is read-only."""


class SlotAlreadyBooked(BookingError):
    """Raised when a slot is held by a non-cancelled appointment in the same category."""


class SlotInPast(BookingError):
    """Raised when the slot start has already elapsed."""


class InvalidSlotConfig(BookingError):
    """Raised for a slot scheme that cannot produce a schedule."""


class InvalidTransitionError(Exception):
    """Raised when a status transition is not valid from the current status."""


class TerminalStatusError(InvalidTransitionError):
    """Raised on any transition attempt from Completed, Cancelled or No Arrival."""
