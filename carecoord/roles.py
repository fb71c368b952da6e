"""Closed set of platform roles and the per-feature mappings over them."""

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Every role an identity can hold on the platform."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    PARAMEDIC = "paramedic"
    LAB = "lab"
    CUSTOMER = "customer"
    PATIENT = "patient"


class RoleKind(str, Enum):
    """How a role relates to bookings."""

    ADMIN = "admin"
    PROVIDER = "provider"
    REQUESTER = "requester"


ROLE_KINDS: dict[Role, RoleKind] = {
    Role.ADMIN: RoleKind.ADMIN,
    Role.DOCTOR: RoleKind.PROVIDER,
    Role.PARAMEDIC: RoleKind.PROVIDER,
    Role.LAB: RoleKind.PROVIDER,
    Role.CUSTOMER: RoleKind.REQUESTER,
    Role.PATIENT: RoleKind.REQUESTER,
}

DASHBOARD_TITLES: dict[Role, str] = {
    Role.ADMIN: "Admin Dashboard",
    Role.DOCTOR: "Doctor Dashboard",
    Role.PARAMEDIC: "Paramedic Dashboard",
    Role.LAB: "Laboratory Dashboard",
    Role.CUSTOMER: "Customer Dashboard",
    Role.PATIENT: "Patient Dashboard",
}


def parse_role(value: object) -> Optional[Role]:
    """Return the Role for a raw value, or None when it is not a known role."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def role_kind(role: Role) -> RoleKind:
    return ROLE_KINDS[role]


def dashboard_title(role: Role) -> str:
    return DASHBOARD_TITLES[role]
