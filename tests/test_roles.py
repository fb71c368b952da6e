"""Tests for the closed role set and its mappings."""

import pytest

from carecoord.roles import (
    DASHBOARD_TITLES,
    ROLE_KINDS,
    Role,
    RoleKind,
    dashboard_title,
    parse_role,
    role_kind,
)


class TestParseRole:
    @pytest.mark.parametrize("raw,expected", [
        ("admin", Role.ADMIN),
        (" Doctor ", Role.DOCTOR),
        ("LAB", Role.LAB),
        (Role.PATIENT, Role.PATIENT),
    ])
    def test_known_roles(self, raw, expected):
        assert parse_role(raw) == expected

    @pytest.mark.parametrize("raw", ["", "superuser", None, 3])
    def test_unknown_roles(self, raw):
        assert parse_role(raw) is None


class TestMappings:
    def test_every_role_has_a_kind(self):
        assert set(ROLE_KINDS) == set(Role)

    def test_every_role_has_a_dashboard(self):
        assert set(DASHBOARD_TITLES) == set(Role)

    def test_provider_roles(self):
        providers = {r for r in Role if role_kind(r) == RoleKind.PROVIDER}
        assert providers == {Role.DOCTOR, Role.PARAMEDIC, Role.LAB}

    def test_requester_roles(self):
        assert role_kind(Role.CUSTOMER) == RoleKind.REQUESTER
        assert role_kind(Role.PATIENT) == RoleKind.REQUESTER

    def test_dashboard_title(self):
        assert dashboard_title(Role.LAB) == "Laboratory Dashboard"
