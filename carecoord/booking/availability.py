"""
Provider availability matching.

A provider is presentable for a request when the requested weekday is one
of its working days and the requested window, at hour granularity, lies
inside its declared working hours. Existing bookings are only consulted
when the caller passes them in.
"""

import logging
import re
from datetime import date, datetime
from typing import Iterable, Optional, Union

from carecoord.errors import InvalidDurationError, MalformedScheduleError
from carecoord.schemas.booking_schema import Booking, BookingStatus, Location, ScheduleRequest
from carecoord.schemas.provider_schema import Availability, Provider, ServiceArea

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"\d{2}:\d{2}")
# YYYY-MM-DD, optionally followed by the time part of an ISO-8601 timestamp
_DATE_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2})(T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:\d{2})?)?"
)


def parse_time(value: object, field_name: str = "startTime") -> datetime:
    """Parse an HH:MM string."""
    if not isinstance(value, str):
        raise MalformedScheduleError(f"{field_name} must be an HH:MM string, got {value!r}")
    raw = value.strip()
    if _TIME_RE.fullmatch(raw):
        try:
            return datetime.strptime(raw, "%H:%M")
        except ValueError:
            pass
    raise MalformedScheduleError(f"{field_name} must be an HH:MM string, got {value!r}")


def parse_hour(value: object, field_name: str = "startTime") -> int:
    return parse_time(value, field_name).hour


def parse_date(value: object) -> date:
    """Parse YYYY-MM-DD, also accepting a full ISO-8601 timestamp."""
    if isinstance(value, str) and value.strip():
        match = _DATE_RE.fullmatch(value.strip())
        if match:
            try:
                return datetime.strptime(match.group(1), "%Y-%m-%d").date()
            except ValueError:
                pass
    raise MalformedScheduleError(f"date must be YYYY-MM-DD, got {value!r}")


def validate_duration(
    duration_hours: object, max_hours: Optional[int] = None
) -> Union[int, float]:
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, (int, float)):
        raise InvalidDurationError(f"durationHours must be a number, got {duration_hours!r}")
    if duration_hours <= 0:
        raise InvalidDurationError(f"durationHours must be > 0, got {duration_hours}")
    if max_hours is not None and duration_hours > max_hours:
        raise InvalidDurationError(
            f"durationHours must be <= {max_hours}, got {duration_hours}"
        )
    return duration_hours


def weekday_name(day: date) -> str:
    return day.strftime("%A")


def compute_end_time(start_time: str, duration_hours: Union[int, float]) -> str:
    """End of the window as HH:MM, wrapping past midnight."""
    start = parse_time(start_time)
    minutes = start.hour * 60 + start.minute + round(duration_hours * 60)
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def validate_schedule(schedule: ScheduleRequest, max_hours: Optional[int] = None) -> None:
    """
    Check a requested window before it is matched or stored.

    Raises:
        MalformedScheduleError: If the date or start time is malformed.
        InvalidDurationError: If the duration is not a positive number within limits.
    """
    parse_hour(schedule.start_time)
    parse_date(schedule.date)
    validate_duration(schedule.duration_hours, max_hours)


def is_within_hours(availability: Availability, schedule: ScheduleRequest) -> bool:
    """Hour-granularity containment of the request inside declared working hours."""
    requested_day = weekday_name(parse_date(schedule.date)).lower()
    if requested_day not in {d.strip().lower() for d in availability.days}:
        return False

    req_start = parse_hour(schedule.start_time)
    req_end = req_start + validate_duration(schedule.duration_hours)
    av_start = parse_hour(availability.start_time, "availability.startTime")
    av_end = parse_hour(availability.end_time, "availability.endTime")
    return av_start <= req_start and req_end <= av_end


def serves_area(area: Optional[ServiceArea], location: Optional[Location]) -> bool:
    """True when the provider covers the location (same pincode, or same city and state)."""
    if area is None or location is None:
        return True
    if not (location.pincode or location.city):
        return True
    if area.pincode and location.pincode and area.pincode.strip() == location.pincode.strip():
        return True
    return (
        bool(area.city and area.state)
        and area.city.strip().lower() == location.city.strip().lower()
        and area.state.strip().lower() == location.state.strip().lower()
    )


def _window_minutes(start_time: str, duration_hours: Union[int, float]) -> tuple[int, int]:
    start = parse_time(start_time)
    begin = start.hour * 60 + start.minute
    return begin, begin + round(duration_hours * 60)


def overlaps(booking: Booking, schedule: ScheduleRequest) -> bool:
    """True when a stored booking's window intersects the requested one on the same day."""
    if parse_date(booking.schedule.date) != parse_date(schedule.date):
        return False
    a_start, a_end = _window_minutes(booking.schedule.start_time, booking.schedule.duration_hours)
    b_start, b_end = _window_minutes(schedule.start_time, schedule.duration_hours)
    return a_start < b_end and b_start < a_end


def is_double_booked(
    provider: Provider, schedule: ScheduleRequest, bookings: Iterable[Booking]
) -> bool:
    return any(
        b.provider_id == provider.uid
        and b.status == BookingStatus.CONFIRMED
        and overlaps(b, schedule)
        for b in bookings
    )


def provider_matches(
    provider: Provider,
    schedule: ScheduleRequest,
    location: Optional[Location] = None,
) -> bool:
    """Single-provider predicate; request errors propagate, bad provider data does not match."""
    if provider.availability is None:
        return False
    try:
        within = is_within_hours(provider.availability, schedule)
    except MalformedScheduleError as exc:
        logger.warning("Provider %s has malformed availability: %s", provider.uid, exc)
        return False
    return within and serves_area(provider.area, location)


def match_providers(
    providers: Iterable[Provider],
    schedule: ScheduleRequest,
    location: Optional[Location] = None,
    existing_bookings: Optional[Iterable[Booking]] = None,
    max_hours: Optional[int] = None,
) -> list[Provider]:
    """
    Filter providers to presentable candidates for a request.

    Candidates are ordered by descending rating, then ascending name.
    When ``existing_bookings`` is given, providers holding an overlapping
    CONFIRMED booking are excluded as well.

    Raises:
        MalformedScheduleError: If the requested date or start time is malformed.
        InvalidDurationError: If the requested duration is invalid.
    """
    validate_schedule(schedule, max_hours)
    bookings = list(existing_bookings) if existing_bookings is not None else None

    candidates = [p for p in providers if provider_matches(p, schedule, location)]
    if bookings is not None:
        candidates = [p for p in candidates if not is_double_booked(p, schedule, bookings)]

    candidates.sort(key=lambda p: (-(p.rating or 0), p.name.casefold(), p.uid))
    logger.debug(
        "%d provider(s) match %s %s for %sh",
        len(candidates), schedule.date, schedule.start_time, schedule.duration_hours,
    )
    return candidates
