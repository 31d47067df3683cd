"""
Slot scheme definitions and slot enumeration.

A slot has no persistent identity: it is derived on demand from a day
and a ``SlotScheme``. Two schemes ship as presets, 75-minute bands
(the default) and 30-minute increments; any other scheme can be built
from configuration.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

from slotbook.config import ScheduleConfig
from slotbook.scheduling.errors import InvalidSlotConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotScheme:
    """How a business day is cut into slots."""

    open_time: time
    close_time: time
    increment_minutes: int
    duration_minutes: Optional[int] = None

    @property
    def slot_length(self) -> int:
        if self.duration_minutes is None:
            return self.increment_minutes
        return self.duration_minutes

    @classmethod
    def from_config(cls, config: ScheduleConfig) -> "SlotScheme":
        return cls(
            open_time=config.open_time,
            close_time=config.close_time,
            increment_minutes=config.increment_minutes,
            duration_minutes=config.duration_minutes,
        )


BANDED_SCHEME = SlotScheme(open_time=time(7, 0), close_time=time(18, 15), increment_minutes=75)
HALF_HOURLY_SCHEME = SlotScheme(open_time=time(7, 0), close_time=time(19, 0), increment_minutes=30)


@dataclass(frozen=True, order=True)
class Slot:
    """A single bookable start time within a day."""

    start: time
    end: time

    @property
    def key(self) -> str:
        """Zero-padded start time, e.g. ``07:30``."""
        return self.start.strftime("%H:%M")

    @property
    def label(self) -> str:
        """Human label, e.g. ``7:00 - 8:15``."""
        return f"{_short_time(self.start)} - {_short_time(self.end)}"

    def starts_at(self, day: date, tz: Optional[tzinfo] = None) -> datetime:
        """Absolute start of this slot on ``day``."""
        return datetime.combine(day, self.start, tzinfo=tz)


def _short_time(value: time) -> str:
    return f"{value.hour}:{value.minute:02d}"


def _validate_scheme(scheme: SlotScheme) -> None:
    if scheme.increment_minutes <= 0:
        raise InvalidSlotConfig(
            f"Slot increment must be positive, got {scheme.increment_minutes} minutes"
        )
    if scheme.slot_length <= 0:
        raise InvalidSlotConfig(
            f"Slot duration must be positive, got {scheme.slot_length} minutes"
        )
    if scheme.close_time <= scheme.open_time:
        raise InvalidSlotConfig(
            f"Close time {scheme.close_time:%H:%M} must be after "
            f"open time {scheme.open_time:%H:%M}"
        )


def enumerate_slots(day: date, scheme: SlotScheme = BANDED_SCHEME) -> list[Slot]:
    """
    Produce the ordered slots for ``day`` under ``scheme``.

    Slots start at the open time and advance by the increment; a slot is
    kept only while it ends on or before the close time.

    Raises:
        InvalidSlotConfig: If the scheme is malformed or yields no slot.
    """
    _validate_scheme(scheme)

    day_open = datetime.combine(day, scheme.open_time)
    day_close = datetime.combine(day, scheme.close_time)
    step = timedelta(minutes=scheme.increment_minutes)
    length = timedelta(minutes=scheme.slot_length)

    slots: list[Slot] = []
    current = day_open
    while current + length <= day_close:
        slots.append(Slot(start=current.time(), end=(current + length).time()))
        current += step

    if not slots:
        raise InvalidSlotConfig(
            f"No {scheme.slot_length}-minute slot fits between "
            f"{scheme.open_time:%H:%M} and {scheme.close_time:%H:%M}"
        )

    logger.debug("Enumerated %d slots for %s", len(slots), day.isoformat())
    return slots


def find_slot(start: time, day: date, scheme: SlotScheme = BANDED_SCHEME) -> Optional[Slot]:
    """Return the slot of ``scheme`` starting at ``start``, if there is one."""
    for slot in enumerate_slots(day, scheme):
        if slot.start == start:
            return slot
    return None
