from carecoord.booking.availability import match_providers, provider_matches
from carecoord.booking.lifecycle import (
    TRANSITIONS,
    Party,
    Transition,
    check_creation,
    check_transition,
    get_valid_targets,
    is_terminal,
)
from carecoord.booking.service import BookingService

__all__ = [
    "BookingService",
    "TRANSITIONS",
    "Transition",
    "Party",
    "check_creation",
    "check_transition",
    "get_valid_targets",
    "is_terminal",
    "match_providers",
    "provider_matches",
]
