"""Tests for slot schemes and slot enumeration."""

from datetime import date, time

import pytest

from slotbook.config import ScheduleConfig
from slotbook.scheduling.errors import InvalidSlotConfig
from slotbook.scheduling.slots import (
    BANDED_SCHEME,
    HALF_HOURLY_SCHEME,
    Slot,
    SlotScheme,
    enumerate_slots,
    find_slot,
)

DAY = date(2024, 6, 10)


class TestBandedScheme:
    def test_nine_bands(self):
        assert len(enumerate_slots(DAY, BANDED_SCHEME)) == 9

    def test_first_and_last_labels(self):
        slots = enumerate_slots(DAY, BANDED_SCHEME)
        assert slots[0].label == "7:00 - 8:15"
        assert slots[-1].label == "17:00 - 18:15"

    def test_band_starts(self):
        keys = [s.key for s in enumerate_slots(DAY, BANDED_SCHEME)]
        assert keys == [
            "07:00", "08:15", "09:30", "10:45", "12:00",
            "13:15", "14:30", "15:45", "17:00",
        ]

    def test_default_scheme_is_banded(self):
        assert enumerate_slots(DAY) == enumerate_slots(DAY, BANDED_SCHEME)


class TestHalfHourlyScheme:
    def test_twenty_four_slots(self):
        assert len(enumerate_slots(DAY, HALF_HOURLY_SCHEME)) == 24

    def test_runs_from_seven_to_half_past_six(self):
        slots = enumerate_slots(DAY, HALF_HOURLY_SCHEME)
        assert slots[0].key == "07:00"
        assert slots[1].key == "07:30"
        assert slots[-1].key == "18:30"
        assert slots[-1].end == time(19, 0)


class TestEnumerationProperties:
    def test_deterministic_and_restartable(self):
        assert enumerate_slots(DAY, HALF_HOURLY_SCHEME) == enumerate_slots(DAY, HALF_HOURLY_SCHEME)

    def test_slots_are_ordered(self):
        slots = enumerate_slots(DAY, HALF_HOURLY_SCHEME)
        assert slots == sorted(slots)

    def test_duration_shorter_than_increment(self):
        scheme = SlotScheme(open_time=time(8, 0), close_time=time(12, 0),
                            increment_minutes=60, duration_minutes=45)
        slots = enumerate_slots(DAY, scheme)
        assert [s.key for s in slots] == ["08:00", "09:00", "10:00", "11:00"]
        assert slots[0].end == time(8, 45)

    def test_last_slot_must_fit_before_close(self):
        scheme = SlotScheme(open_time=time(8, 0), close_time=time(9, 45), increment_minutes=60)
        assert [s.key for s in enumerate_slots(DAY, scheme)] == ["08:00"]

    def test_starts_at_combines_day_and_start(self):
        slot = Slot(start=time(9, 30), end=time(10, 45))
        assert slot.starts_at(DAY).isoformat() == "2024-06-10T09:30:00"


class TestInvalidConfig:
    def test_zero_increment(self):
        scheme = SlotScheme(open_time=time(7, 0), close_time=time(18, 0), increment_minutes=0)
        with pytest.raises(InvalidSlotConfig):
            enumerate_slots(DAY, scheme)

    def test_negative_duration(self):
        scheme = SlotScheme(open_time=time(7, 0), close_time=time(18, 0),
                            increment_minutes=30, duration_minutes=-5)
        with pytest.raises(InvalidSlotConfig):
            enumerate_slots(DAY, scheme)

    def test_close_before_open(self):
        scheme = SlotScheme(open_time=time(18, 0), close_time=time(7, 0), increment_minutes=30)
        with pytest.raises(InvalidSlotConfig):
            enumerate_slots(DAY, scheme)

    def test_no_slot_fits(self):
        scheme = SlotScheme(open_time=time(7, 0), close_time=time(7, 30), increment_minutes=75)
        with pytest.raises(InvalidSlotConfig, match="No 75-minute slot"):
            enumerate_slots(DAY, scheme)


class TestFindSlot:
    def test_finds_band_start(self):
        slot = find_slot(time(10, 45), DAY, BANDED_SCHEME)
        assert slot is not None
        assert slot.label == "10:45 - 12:00"

    def test_off_grid_time_returns_none(self):
        assert find_slot(time(10, 0), DAY, BANDED_SCHEME) is None

    def test_scheme_from_config(self):
        config = ScheduleConfig()
        scheme = SlotScheme.from_config(config)
        assert scheme.increment_minutes == config.increment_minutes
        assert scheme.open_time == config.open_time
