# backend/utils/appointment_status.py
"""
Appointment status state machine.

TRANSITIONS is the single source of truth for which status changes are legal.
Confirm, cancel and generic status updates all go through ensure_transition().
"""
from typing import Dict, FrozenSet

from models.appointment import AppointmentStatus
from utils.errors import InvalidStateTransition

INITIAL_STATUS = AppointmentStatus.PROGRAMADA

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PROGRAMADA: frozenset({
        AppointmentStatus.CONFIRMADA,
        AppointmentStatus.CANCELADA,
        AppointmentStatus.AUSENTE,
    }),
    AppointmentStatus.CONFIRMADA: frozenset({
        AppointmentStatus.COMPLETADA,
        AppointmentStatus.CANCELADA,
        AppointmentStatus.AUSENTE,
    }),
    # Cancellation stays available from every non-cancelled status
    AppointmentStatus.COMPLETADA: frozenset({AppointmentStatus.CANCELADA}),
    AppointmentStatus.AUSENTE: frozenset({AppointmentStatus.CANCELADA}),
    AppointmentStatus.CANCELADA: frozenset(),
}

# Statuses that release the calendar slot
NON_BLOCKING_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.CANCELADA,
    AppointmentStatus.AUSENTE,
})


def occupies_calendar(status: AppointmentStatus) -> bool:
    return AppointmentStatus(status) not in NON_BLOCKING_STATUSES


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return AppointmentStatus(target) in TRANSITIONS[AppointmentStatus(current)]


def ensure_transition(current: AppointmentStatus, target: AppointmentStatus, action: str = "move") -> None:
    """Raise InvalidStateTransition unless current -> target is in the table."""
    current = AppointmentStatus(current)
    if not can_transition(current, target):
        raise InvalidStateTransition(
            f"Cannot {action} an appointment with status '{current.value}'."
        )
