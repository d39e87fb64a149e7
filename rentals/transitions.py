"""
Reservation status workflow.

    pending --approve--> active --complete--> completed
       |                   |
       +--reject--> rejected
       +--cancel--> cancelled <--cancel--+

Rejected, cancelled and completed are terminal. Re-applying the status a
reservation already has in a terminal state is accepted as a no-op; every
other move out of a terminal state is an error.
"""

from __future__ import annotations

from django.conf import settings

from .exceptions import Forbidden, InvalidTransition
from .models import Reservation

ACTOR_CUSTOMER = "customer"
ACTOR_MANAGER = "manager"

TRANSITIONS: dict[tuple[str, str], frozenset[str]] = {
    (Reservation.PENDING, Reservation.ACTIVE): frozenset({ACTOR_MANAGER}),
    (Reservation.PENDING, Reservation.REJECTED): frozenset({ACTOR_MANAGER}),
    (Reservation.PENDING, Reservation.CANCELLED): frozenset({ACTOR_CUSTOMER}),
    (Reservation.ACTIVE, Reservation.COMPLETED): frozenset({ACTOR_MANAGER, ACTOR_CUSTOMER}),
    (Reservation.ACTIVE, Reservation.CANCELLED): frozenset({ACTOR_CUSTOMER}),
}

# Transitions after which the car may be free again.
RELEASING_STATUSES = frozenset(Reservation.TERMINAL_STATUSES)


def is_terminal(status: str) -> bool:
    return status in Reservation.TERMINAL_STATUSES


def active_cancellation_allowed() -> bool:
    return bool(getattr(settings, "RENTALS_ALLOW_ACTIVE_CANCELLATION", True))


def _actors_for(current: str, target: str) -> frozenset[str] | None:
    if (current, target) == (Reservation.ACTIVE, Reservation.CANCELLED) and not active_cancellation_allowed():
        return None
    return TRANSITIONS.get((current, target))


def allowed_targets(current: str, actor: str) -> list[str]:
    return [
        target
        for (source, target) in TRANSITIONS
        if source == current and actor in (_actors_for(source, target) or ())
    ]


def resolve(current: str, target: str, actor: str) -> bool:
    """
    Check a move from ``current`` to ``target`` requested by ``actor``.

    Returns True when the transition must be applied and False when it is
    an idempotent repeat of a terminal status. Raises ``InvalidTransition``
    for moves missing from the workflow and ``Forbidden`` when the actor
    may not perform an otherwise valid move.
    """
    if current == target and is_terminal(current):
        return False
    actors = _actors_for(current, target)
    if actors is None:
        raise InvalidTransition(
            f"No se puede pasar una reserva de '{current}' a '{target}'.",
            code="invalid_transition",
        )
    if actor not in actors:
        raise Forbidden(f"La acción '{target}' no está permitida para '{actor}'.")
    return True
