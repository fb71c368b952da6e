"""
Booking lifecycle state machine.

Defines the booking statuses, the explicit transition table, and which
party (requester, provider, admin) may drive each edge. A transition with
no edge in the table is rejected before the actor is even considered, so
terminal states always answer ``InvalidTransitionError``.

Usage:
    edge = check_transition(booking, BookingStatus.CONFIRMED, "uid-p1", "paramedic")
    assert edge.to_status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from carecoord.errors import InvalidTransitionError, UnauthorizedError
from carecoord.roles import RoleKind, parse_role, role_kind
from carecoord.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)


class Party(str, Enum):
    """How an actor relates to one particular booking."""

    REQUESTER = "requester"
    PROVIDER = "provider"
    ADMIN = "admin"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition and the parties allowed to apply it."""

    from_status: Optional[BookingStatus]
    to_status: BookingStatus
    allowed: frozenset[Party]


TRANSITIONS: list[Transition] = [
    # --- Creation ---
    Transition(None, BookingStatus.PENDING, frozenset({Party.REQUESTER})),

    # --- Provider response ---
    Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED, frozenset({Party.PROVIDER})),
    Transition(BookingStatus.PENDING, BookingStatus.CANCELLED,
               frozenset({Party.PROVIDER, Party.REQUESTER, Party.ADMIN})),

    # --- After confirmation ---
    Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED,
               frozenset({Party.PROVIDER, Party.ADMIN})),
    Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED,
               frozenset({Party.PROVIDER, Party.REQUESTER, Party.ADMIN})),
]

TERMINAL_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED}
)


def find_transition(
    from_status: Optional[BookingStatus], to_status: BookingStatus
) -> Optional[Transition]:
    for t in TRANSITIONS:
        if t.from_status == from_status and t.to_status == to_status:
            return t
    return None


def get_valid_targets(status: BookingStatus) -> list[BookingStatus]:
    """Return all statuses reachable in one step from ``status``."""
    return [t.to_status for t in TRANSITIONS if t.from_status == status]


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES


def resolve_party(booking: Booking, actor_id: str, actor_role: object) -> Optional[Party]:
    """
    Work out which party the actor is for ``booking``.

    Identity decides: the assigned provider (acting in a provider role),
    the requester, or any admin. Returns None for unknown roles and for
    actors unrelated to the booking.
    """
    role = parse_role(actor_role)
    if role is None:
        return None
    kind = role_kind(role)
    if kind == RoleKind.ADMIN:
        return Party.ADMIN
    if kind == RoleKind.PROVIDER and actor_id == booking.provider_id:
        return Party.PROVIDER
    if actor_id == booking.requester_id:
        return Party.REQUESTER
    return None


def coerce_status(value: object) -> BookingStatus:
    """Parse a requested status, treating unknown values as invalid transitions."""
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidTransitionError(f"Unknown booking status: {value!r}") from None


def check_transition(
    booking: Booking, target: object, actor_id: str, actor_role: object
) -> Transition:
    """
    Validate a requested status change without applying it.

    Returns:
        The matching transition edge.

    Raises:
        InvalidTransitionError: If no edge leads from the current status to ``target``.
        UnauthorizedError: If the edge exists but the actor's party may not use it.
    """
    to_status = coerce_status(target)
    edge = find_transition(booking.status, to_status)
    if edge is None:
        valid = [s.value for s in get_valid_targets(booking.status)]
        logger.debug(
            "Rejected %s -> %s for booking %s", booking.status.value, to_status.value, booking.id
        )
        raise InvalidTransitionError(
            f"No valid transition from '{booking.status.value}' to '{to_status.value}'. "
            f"Valid targets: {valid}"
        )

    party = resolve_party(booking, actor_id, actor_role)
    if party is None or party not in edge.allowed:
        allowed = sorted(p.value for p in edge.allowed)
        raise UnauthorizedError(
            f"Actor '{actor_id}' ({actor_role}) may not move booking {booking.id} "
            f"to '{to_status.value}'. Allowed parties: {allowed}"
        )
    return edge


# A new booking has no provider yet, so the creator's party follows its role.
_CREATOR_PARTIES: dict[RoleKind, Party] = {
    RoleKind.REQUESTER: Party.REQUESTER,
    RoleKind.PROVIDER: Party.PROVIDER,
    RoleKind.ADMIN: Party.ADMIN,
}


def check_creation(actor_role: object) -> Transition:
    """
    Validate that ``actor_role`` may create a booking.

    Raises:
        UnauthorizedError: If the role is unknown or its party may not take
            the creation edge.
    """
    role = parse_role(actor_role)
    edge = find_transition(None, BookingStatus.PENDING)
    party = _CREATOR_PARTIES[role_kind(role)] if role is not None else None
    if edge is None or party not in edge.allowed:
        raise UnauthorizedError(f"Role {actor_role!r} cannot request bookings")
    return edge
