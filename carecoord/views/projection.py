"""
Role-scoped projection of the booking collection.

Each role sees only the bookings it may act on: admins see everything,
providers their assigned bookings, requesters their own. Free-text search
and the status filter always run after the role filter, so a search term
can never widen the visible set.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from carecoord.errors import InvalidQueryError
from carecoord.roles import RoleKind, parse_role, role_kind
from carecoord.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)

ALL_STATUSES = "ALL"


def _visible(booking: Booking, kind: RoleKind, actor_id: str) -> bool:
    if kind == RoleKind.ADMIN:
        return True
    if kind == RoleKind.PROVIDER:
        return booking.provider_id == actor_id
    return booking.requester_id == actor_id


def _search_fields(booking: Booking, kind: RoleKind, names: Mapping[str, str]) -> list[str]:
    if kind == RoleKind.REQUESTER:
        return [names.get(booking.provider_id, "")]
    fields = [booking.requester_details.condition, booking.service_type.value]
    if kind == RoleKind.ADMIN:
        fields += [
            names.get(booking.provider_id, ""),
            names.get(booking.requester_id, ""),
            booking.location.city,
        ]
    return fields


def matches_search(
    booking: Booking, kind: RoleKind, search: str, names: Optional[Mapping[str, str]] = None
) -> bool:
    """Case-insensitive substring search over the fields a role searches by."""
    needle = search.strip().lower()
    if not needle:
        return True
    return any(needle in field.lower() for field in _search_fields(booking, kind, names or {}))


def normalize_status_filter(status: Optional[Any]) -> Optional[str]:
    """
    Canonical form of a status filter: None for "all", else a status value.

    Raises:
        InvalidQueryError: If ``status`` names no booking status.
    """
    if status is None:
        return None
    if isinstance(status, BookingStatus):
        return status.value
    value = str(status).strip().upper()
    if value == ALL_STATUSES:
        return None
    try:
        return BookingStatus(value).value
    except ValueError:
        raise InvalidQueryError(f"Unknown status filter: {status!r}") from None


def project(
    bookings: Iterable[Booking],
    actor_role: object,
    actor_id: str,
    search: str = "",
    status: Optional[Any] = None,
    names: Optional[Mapping[str, str]] = None,
) -> list[Booking]:
    """
    Compute the bookings ``actor_role``/``actor_id`` may see, newest first.

    Unknown roles see nothing. ``status`` may be None, "ALL", or a
    BookingStatus in any letter case; ``names`` maps user ids to display
    names for search.

    Raises:
        InvalidQueryError: If ``status`` is not a known booking status.
    """
    role = parse_role(actor_role)
    if role is None:
        logger.debug("Unknown role %r sees no bookings", actor_role)
        return []
    kind = role_kind(role)
    wanted = normalize_status_filter(status)

    visible = [b for b in bookings if _visible(b, kind, actor_id)]
    if wanted is not None:
        visible = [b for b in visible if b.status.value == wanted]
    visible = [b for b in visible if matches_search(b, kind, search, names)]
    visible.sort(key=lambda b: b.created_at, reverse=True)
    return visible


def to_bookings(records: Iterable[dict[str, Any]]) -> list[Booking]:
    """Validate flattened store records, skipping ones that are not bookings."""
    bookings = []
    for record in records:
        try:
            bookings.append(Booking.model_validate(record))
        except ValidationError as e:
            logger.warning("Skipping malformed booking %s: %s", record.get("id"), e.error_count())
    return bookings


@dataclass(frozen=True)
class RoleProjection:
    """
    Hashable query transform applying ``project`` to flattened records.

    Two projections with the same fields compare equal, so live queries
    built from them share one store subscription.
    """

    actor_role: str
    actor_id: str
    search: str = ""
    status: Optional[str] = None
    names: tuple[tuple[str, str], ...] = ()

    @classmethod
    def build(
        cls,
        actor_role: object,
        actor_id: str,
        search: str = "",
        status: Optional[Any] = None,
        names: Optional[Mapping[str, str]] = None,
    ) -> "RoleProjection":
        return cls(
            actor_role=str(getattr(actor_role, "value", actor_role)),
            actor_id=actor_id,
            search=search,
            status=normalize_status_filter(status),
            names=tuple(sorted((names or {}).items())),
        )

    def __call__(self, records: Any) -> list[Booking]:
        return project(
            to_bookings(records or []),
            self.actor_role,
            self.actor_id,
            search=self.search,
            status=self.status,
            names=dict(self.names),
        )
