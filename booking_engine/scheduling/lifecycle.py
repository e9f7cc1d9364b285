"""Appointment status state machine and who may drive it.

Both the allowed edges and the roles permitted on each edge live in a single
table. Adding a role or a transition is a new row, not new control flow.
"""

from typing import Optional

from booking_engine.scheduling.errors import InvalidTransitionError, PermissionDeniedError
from booking_engine.scheduling.models import (
    Actor,
    ActorRole,
    Appointment,
    AppointmentStatus,
)

_STAFF = frozenset({ActorRole.PROVIDER, ActorRole.RECEPTIONIST})
_ANYONE = frozenset({ActorRole.CUSTOMER, ActorRole.PROVIDER, ActorRole.RECEPTIONIST})

TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentStatus], frozenset[ActorRole]] = {
    (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED): _STAFF,
    (AppointmentStatus.PENDING, AppointmentStatus.CANCELED): _ANYONE,
    (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED): _STAFF,
    (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELED): _STAFF,
}

# Operations that are not status edges.
CAPABILITIES: dict[str, frozenset[ActorRole]] = {
    "book": _ANYONE,
    "reschedule": _STAFF,
    "view": _ANYONE,
}

TERMINAL_STATES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED})
RESCHEDULABLE_STATES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


def allowed_targets(current: AppointmentStatus, role: Optional[ActorRole] = None) -> list[AppointmentStatus]:
    """Statuses reachable from *current*, optionally restricted to *role*."""
    return [
        to
        for (frm, to), roles in TRANSITIONS.items()
        if frm == current and (role is None or role in roles)
    ]


def check_transition(current: AppointmentStatus, requested: AppointmentStatus, actor: Actor) -> None:
    """Validate a status change; raise if the edge or the actor is not allowed."""
    roles = TRANSITIONS.get((current, requested))
    if roles is None:
        raise InvalidTransitionError(current.value, requested.value)
    if actor.role not in roles:
        raise PermissionDeniedError(actor.role.value, f"{current.value}->{requested.value}")


def check_capability(actor: Actor, action: str) -> None:
    if actor.role not in CAPABILITIES.get(action, frozenset()):
        raise PermissionDeniedError(actor.role.value, action)


def check_reschedulable(appointment: Appointment) -> None:
    """Reschedule is only valid while the appointment is still open."""
    if appointment.status not in RESCHEDULABLE_STATES:
        raise InvalidTransitionError(appointment.status.value, "rescheduled")


def acts_for_provider(actor: Actor, provider_id: str, receptionist_ids: list[str]) -> bool:
    """Whether *actor* is the provider or one of its granted receptionists."""
    if actor.role == ActorRole.PROVIDER:
        return actor.user_id == provider_id
    if actor.role == ActorRole.RECEPTIONIST:
        return actor.provider_id == provider_id and actor.user_id in receptionist_ids
    return False


def check_booking_scope(
    actor: Actor, provider_id: str, customer_id: str, receptionist_ids: list[str]
) -> None:
    """Customers book for themselves; staff book on their provider's calendar."""
    check_capability(actor, "book")
    if actor.role == ActorRole.CUSTOMER:
        permitted = actor.user_id == customer_id
    else:
        permitted = acts_for_provider(actor, provider_id, receptionist_ids)
    if not permitted:
        raise PermissionDeniedError(actor.role.value, "book")


def check_scope(actor: Actor, appointment: Appointment, receptionist_ids: list[str]) -> None:
    """Ensure *actor* is a party to *appointment*.

    Customers see their own bookings, providers their own calendar, and
    receptionists the calendar of a provider that granted them access.
    """
    if actor.role == ActorRole.CUSTOMER:
        permitted = appointment.customer_id == actor.user_id
    else:
        permitted = acts_for_provider(actor, appointment.provider_id, receptionist_ids)
    if not permitted:
        raise PermissionDeniedError(actor.role.value, "access_appointment")
