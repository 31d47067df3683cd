"""
Finite state machine for the appointment status lifecycle.

Upcoming is the initial status. An edit that moves an Upcoming
appointment to another datetime makes it Rescheduled. Admins close an
active appointment as Completed, Cancelled or No Arrival; customers may
only cancel their own. Completed, Cancelled and No Arrival are terminal.

Usage:
    sm = AppointmentStatusMachine()
    sm.transition(StatusTrigger.MARK_COMPLETED, Role.ADMIN)
    assert sm.current_status == AppointmentStatus.COMPLETED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from slotbook.config import settings
from slotbook.schemas.appointment_schema import AppointmentStatus
from slotbook.scheduling.errors import InvalidTransitionError, TerminalStatusError
from slotbook.utils import to_business_time, truncate_to_minute

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Who is asking for the transition."""
    ADMIN = "admin"
    USER = "user"
    SYSTEM = "system"


class StatusTrigger(str, Enum):
    """Events that cause status transitions."""
    DATETIME_CHANGED = "datetime_changed"
    MARK_COMPLETED = "mark_completed"
    MARK_CANCELLED = "mark_cancelled"
    MARK_NO_ARRIVAL = "mark_no_arrival"
    SELF_CANCEL = "self_cancel"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    trigger: StatusTrigger
    roles: frozenset[Role]


@dataclass
class StatusEntry:
    """Recorded history entry for a status visit."""
    status: AppointmentStatus
    entered_at: datetime
    trigger: Optional[StatusTrigger] = None
    role: Optional[Role] = None


_ADMIN = frozenset({Role.ADMIN})
_USER = frozenset({Role.USER})
_SYSTEM = frozenset({Role.SYSTEM})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppointmentStatusMachine:
    """
    Deterministic state machine over appointment status.

    Every transition must be listed in TRANSITIONS. Anything else is
    rejected: TerminalStatusError from a terminal status, otherwise
    InvalidTransitionError naming the triggers that are allowed.
    """

    TRANSITIONS: list[Transition] = [
        # --- Automatic reschedule on datetime edit ---
        Transition(AppointmentStatus.UPCOMING, AppointmentStatus.RESCHEDULED,
                   StatusTrigger.DATETIME_CHANGED, _SYSTEM),

        # --- Admin outcomes ---
        Transition(AppointmentStatus.UPCOMING, AppointmentStatus.COMPLETED,
                   StatusTrigger.MARK_COMPLETED, _ADMIN),
        Transition(AppointmentStatus.UPCOMING, AppointmentStatus.CANCELLED,
                   StatusTrigger.MARK_CANCELLED, _ADMIN),
        Transition(AppointmentStatus.UPCOMING, AppointmentStatus.NO_ARRIVAL,
                   StatusTrigger.MARK_NO_ARRIVAL, _ADMIN),
        Transition(AppointmentStatus.RESCHEDULED, AppointmentStatus.COMPLETED,
                   StatusTrigger.MARK_COMPLETED, _ADMIN),
        Transition(AppointmentStatus.RESCHEDULED, AppointmentStatus.CANCELLED,
                   StatusTrigger.MARK_CANCELLED, _ADMIN),
        Transition(AppointmentStatus.RESCHEDULED, AppointmentStatus.NO_ARRIVAL,
                   StatusTrigger.MARK_NO_ARRIVAL, _ADMIN),

        # --- Customer self-cancellation ---
        Transition(AppointmentStatus.UPCOMING, AppointmentStatus.CANCELLED,
                   StatusTrigger.SELF_CANCEL, _USER),
        Transition(AppointmentStatus.RESCHEDULED, AppointmentStatus.CANCELLED,
                   StatusTrigger.SELF_CANCEL, _USER),
    ]

    def __init__(
        self,
        initial: AppointmentStatus = AppointmentStatus.UPCOMING,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self._current_status = initial
        self._history: list[StatusEntry] = [
            StatusEntry(status=initial, entered_at=clock())
        ]

    @property
    def current_status(self) -> AppointmentStatus:
        return self._current_status

    def transition(self, trigger: StatusTrigger, role: Role) -> AppointmentStatus:
        """
        Execute a status transition.

        Args:
            trigger: The event triggering the transition.
            role: Who is requesting it.

        Returns:
            The new appointment status.

        Raises:
            TerminalStatusError: If the current status is terminal.
            InvalidTransitionError: If no valid transition exists.
        """
        if self.is_terminal():
            raise TerminalStatusError(
                "Cannot change status of an appointment that is already "
                f"{self._current_status.value}"
            )

        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.trigger == trigger and role in t.roles:
                old_status = self._current_status
                self._current_status = t.to_status
                self._history.append(StatusEntry(
                    status=self._current_status,
                    entered_at=self._clock(),
                    trigger=trigger,
                    role=role,
                ))
                logger.debug(
                    "Status transition: %s -> %s (trigger: %s, role: %s)",
                    old_status.value, self._current_status.value, trigger.value, role.value,
                )
                return self._current_status

        valid = [t.value for t in self.get_valid_triggers(role)]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_status.value}' "
            f"with trigger '{trigger.value}' for role '{role.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self, role: Optional[Role] = None) -> list[StatusTrigger]:
        """Return the triggers valid from the current status, optionally for one role."""
        return [
            t.trigger
            for t in self.TRANSITIONS
            if t.from_status == self._current_status and (role is None or role in t.roles)
        ]

    def get_history(self) -> list[StatusEntry]:
        """Return the full status transition history."""
        return list(self._history)

    def get_status_trace(self) -> list[str]:
        """Return ordered list of status names visited."""
        return [entry.status.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_status.is_terminal


# Explicit target status -> trigger, per role.
_TARGET_TRIGGERS: dict[tuple[AppointmentStatus, Role], StatusTrigger] = {
    (AppointmentStatus.COMPLETED, Role.ADMIN): StatusTrigger.MARK_COMPLETED,
    (AppointmentStatus.CANCELLED, Role.ADMIN): StatusTrigger.MARK_CANCELLED,
    (AppointmentStatus.NO_ARRIVAL, Role.ADMIN): StatusTrigger.MARK_NO_ARRIVAL,
    (AppointmentStatus.CANCELLED, Role.USER): StatusTrigger.SELF_CANCEL,
    (AppointmentStatus.RESCHEDULED, Role.SYSTEM): StatusTrigger.DATETIME_CHANGED,
}


def apply_status_change(
    current: AppointmentStatus, target: AppointmentStatus, role: Role
) -> AppointmentStatus:
    """Move ``current`` to an explicitly requested ``target`` status."""
    if current.is_terminal:
        raise TerminalStatusError(
            f"Cannot change status of an appointment that is already {current.value}"
        )
    trigger = _TARGET_TRIGGERS.get((target, role))
    if trigger is None:
        raise InvalidTransitionError(
            f"Role '{role.value}' cannot set status '{target.value}' "
            f"on an appointment that is {current.value}"
        )
    return AppointmentStatusMachine(initial=current).transition(trigger, role)


def resolve_edit_status(
    current: AppointmentStatus, original: datetime, updated: datetime
) -> AppointmentStatus:
    """
    Status an appointment should carry after an edit.

    An Upcoming appointment moved to a different minute becomes
    Rescheduled. Any other edit of an active appointment keeps its status.

    Raises:
        TerminalStatusError: If the appointment is already closed.
    """
    if current.is_terminal:
        raise TerminalStatusError(
            f"Cannot edit an appointment that is already {current.value}"
        )
    tz = settings.schedule.tzinfo
    moved = (
        truncate_to_minute(to_business_time(original, tz))
        != truncate_to_minute(to_business_time(updated, tz))
    )
    if current == AppointmentStatus.UPCOMING and moved:
        return AppointmentStatusMachine(initial=current).transition(
            StatusTrigger.DATETIME_CHANGED, Role.SYSTEM
        )
    return current
