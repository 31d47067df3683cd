"""Tests for the appointment status state machine."""

from datetime import datetime

import pytest

from slotbook.schemas.appointment_schema import AppointmentStatus
from slotbook.scheduling.errors import InvalidTransitionError, TerminalStatusError
from slotbook.scheduling.status_machine import (
    AppointmentStatusMachine,
    Role,
    StatusTrigger,
    apply_status_change,
    resolve_edit_status,
)

TERMINAL = [
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_ARRIVAL,
]


class TestInitialStatus:
    def test_starts_upcoming(self, status_machine):
        assert status_machine.current_status == AppointmentStatus.UPCOMING

    def test_initial_history_has_one_entry(self, status_machine):
        assert len(status_machine.get_history()) == 1

    def test_not_terminal_at_start(self, status_machine):
        assert not status_machine.is_terminal()


class TestAdminOutcomes:
    @pytest.mark.parametrize("trigger,expected", [
        (StatusTrigger.MARK_COMPLETED, AppointmentStatus.COMPLETED),
        (StatusTrigger.MARK_CANCELLED, AppointmentStatus.CANCELLED),
        (StatusTrigger.MARK_NO_ARRIVAL, AppointmentStatus.NO_ARRIVAL),
    ])
    def test_from_upcoming(self, status_machine, trigger, expected):
        assert status_machine.transition(trigger, Role.ADMIN) == expected
        assert status_machine.is_terminal()

    def test_from_rescheduled(self):
        sm = AppointmentStatusMachine(initial=AppointmentStatus.RESCHEDULED)
        assert sm.transition(StatusTrigger.MARK_COMPLETED, Role.ADMIN) == AppointmentStatus.COMPLETED

    def test_user_cannot_mark_completed(self, status_machine):
        with pytest.raises(InvalidTransitionError):
            status_machine.transition(StatusTrigger.MARK_COMPLETED, Role.USER)

    def test_rejected_transition_leaves_status(self, status_machine):
        with pytest.raises(InvalidTransitionError):
            status_machine.transition(StatusTrigger.MARK_NO_ARRIVAL, Role.USER)
        assert status_machine.current_status == AppointmentStatus.UPCOMING


class TestSelfCancellation:
    def test_user_cancels_upcoming(self, status_machine):
        assert status_machine.transition(StatusTrigger.SELF_CANCEL, Role.USER) == AppointmentStatus.CANCELLED

    def test_user_cancels_rescheduled(self):
        sm = AppointmentStatusMachine(initial=AppointmentStatus.RESCHEDULED)
        assert sm.transition(StatusTrigger.SELF_CANCEL, Role.USER) == AppointmentStatus.CANCELLED

    def test_admin_uses_mark_cancelled_not_self_cancel(self, status_machine):
        with pytest.raises(InvalidTransitionError):
            status_machine.transition(StatusTrigger.SELF_CANCEL, Role.ADMIN)


class TestReschedule:
    def test_datetime_change_reschedules_upcoming(self, status_machine):
        new = status_machine.transition(StatusTrigger.DATETIME_CHANGED, Role.SYSTEM)
        assert new == AppointmentStatus.RESCHEDULED
        assert not status_machine.is_terminal()

    def test_rescheduled_does_not_reschedule_again(self):
        sm = AppointmentStatusMachine(initial=AppointmentStatus.RESCHEDULED)
        with pytest.raises(InvalidTransitionError):
            sm.transition(StatusTrigger.DATETIME_CHANGED, Role.SYSTEM)

    def test_only_system_reschedules(self, status_machine):
        with pytest.raises(InvalidTransitionError):
            status_machine.transition(StatusTrigger.DATETIME_CHANGED, Role.ADMIN)


class TestTerminalStatuses:
    @pytest.mark.parametrize("terminal", TERMINAL)
    @pytest.mark.parametrize("trigger", list(StatusTrigger))
    @pytest.mark.parametrize("role", list(Role))
    def test_every_transition_from_terminal_fails(self, terminal, trigger, role):
        sm = AppointmentStatusMachine(initial=terminal)
        with pytest.raises(TerminalStatusError):
            sm.transition(trigger, role)

    def test_terminal_error_is_invalid_transition(self):
        assert issubclass(TerminalStatusError, InvalidTransitionError)

    def test_completed_to_cancelled_fails(self):
        with pytest.raises(TerminalStatusError, match="already Completed"):
            apply_status_change(AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, Role.ADMIN)


class TestApplyStatusChange:
    def test_admin_marks_no_arrival(self):
        result = apply_status_change(AppointmentStatus.UPCOMING, AppointmentStatus.NO_ARRIVAL, Role.ADMIN)
        assert result == AppointmentStatus.NO_ARRIVAL

    def test_user_cancel(self):
        result = apply_status_change(AppointmentStatus.RESCHEDULED, AppointmentStatus.CANCELLED, Role.USER)
        assert result == AppointmentStatus.CANCELLED

    def test_no_transition_back_to_upcoming(self):
        with pytest.raises(InvalidTransitionError):
            apply_status_change(AppointmentStatus.RESCHEDULED, AppointmentStatus.UPCOMING, Role.ADMIN)

    def test_user_cannot_complete(self):
        with pytest.raises(InvalidTransitionError):
            apply_status_change(AppointmentStatus.UPCOMING, AppointmentStatus.COMPLETED, Role.USER)


class TestResolveEditStatus:
    def test_moving_upcoming_reschedules(self):
        result = resolve_edit_status(
            AppointmentStatus.UPCOMING, datetime(2024, 6, 10, 9, 30), datetime(2024, 6, 11, 9, 30)
        )
        assert result == AppointmentStatus.RESCHEDULED

    def test_same_datetime_keeps_status(self):
        result = resolve_edit_status(
            AppointmentStatus.UPCOMING, datetime(2024, 6, 10, 9, 30), datetime(2024, 6, 10, 9, 30)
        )
        assert result == AppointmentStatus.UPCOMING

    def test_seconds_within_same_minute_keep_status(self):
        result = resolve_edit_status(
            AppointmentStatus.UPCOMING, datetime(2024, 6, 10, 9, 30), datetime(2024, 6, 10, 9, 30, 20)
        )
        assert result == AppointmentStatus.UPCOMING

    def test_moving_rescheduled_stays_rescheduled(self):
        result = resolve_edit_status(
            AppointmentStatus.RESCHEDULED, datetime(2024, 6, 11, 9, 30), datetime(2024, 6, 12, 9, 30)
        )
        assert result == AppointmentStatus.RESCHEDULED

    @pytest.mark.parametrize("terminal", TERMINAL)
    def test_editing_terminal_fails(self, terminal):
        with pytest.raises(TerminalStatusError):
            resolve_edit_status(terminal, datetime(2024, 6, 10, 9, 30), datetime(2024, 6, 11, 9, 30))


class TestHistory:
    def test_history_tracks_transitions(self, status_machine):
        status_machine.transition(StatusTrigger.DATETIME_CHANGED, Role.SYSTEM)
        status_machine.transition(StatusTrigger.MARK_COMPLETED, Role.ADMIN)
        assert len(status_machine.get_history()) == 3

    def test_status_trace(self, status_machine):
        status_machine.transition(StatusTrigger.DATETIME_CHANGED, Role.SYSTEM)
        status_machine.transition(StatusTrigger.SELF_CANCEL, Role.USER)
        assert status_machine.get_status_trace() == ["Upcoming", "Rescheduled", "Cancelled"]

    def test_history_uses_injected_clock(self, status_machine):
        status_machine.transition(StatusTrigger.MARK_COMPLETED, Role.ADMIN)
        entry = status_machine.get_history()[-1]
        assert entry.entered_at == datetime(2024, 6, 1, 9, 0)
        assert entry.trigger == StatusTrigger.MARK_COMPLETED
        assert entry.role == Role.ADMIN

    def test_valid_triggers_for_admin(self, status_machine):
        triggers = status_machine.get_valid_triggers(Role.ADMIN)
        assert set(triggers) == {
            StatusTrigger.MARK_COMPLETED,
            StatusTrigger.MARK_CANCELLED,
            StatusTrigger.MARK_NO_ARRIVAL,
        }

    def test_valid_triggers_from_upcoming(self, status_machine):
        assert len(status_machine.get_valid_triggers()) == 5

    def test_no_valid_triggers_when_terminal(self):
        sm = AppointmentStatusMachine(initial=AppointmentStatus.CANCELLED)
        assert sm.get_valid_triggers() == []
