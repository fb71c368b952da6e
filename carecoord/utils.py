"""Shared utilities used across the store, booking, and view layers."""

from datetime import datetime, timezone
from typing import Any


def split_path(path: str) -> list[str]:
    """Split a store path into its non-empty segments.

    Examples:
        >>> split_path("/bookings/abc/")
        ['bookings', 'abc']
        >>> split_path("users//uid-1")
        ['users', 'uid-1']
    """
    return [segment for segment in path.split("/") if segment]


def join_path(*segments: str) -> str:
    """Join path segments with single slashes, ignoring empty parts."""
    parts: list[str] = []
    for segment in segments:
        parts.extend(split_path(segment))
    return "/".join(parts)


def clean_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None before a write."""
    return {key: value for key, value in data.items() if value is not None}


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()
