"""Tests for the session context and its persistence."""

from carecoord.roles import Role, RoleKind
from carecoord.session import Session, SessionStore


class TestSession:
    def test_parsed_role(self):
        session = Session(actor_id="uid-p1", role="Paramedic")
        assert session.parsed_role == Role.PARAMEDIC
        assert session.kind == RoleKind.PROVIDER

    def test_unknown_role(self):
        session = Session(actor_id="uid-x", role="superuser")
        assert session.parsed_role is None
        assert session.kind is None


class TestSessionStore:
    def test_missing_file_loads_none(self, tmp_path):
        assert SessionStore(tmp_path / "session.json").load() is None

    def test_save_then_load(self, tmp_path):
        store = SessionStore(tmp_path / "nested" / "session.json")
        session = Session(actor_id="uid-c1", role="customer", display_name="Priya Desai")
        store.save(session)
        assert store.load() == session

    def test_corrupt_file_loads_none(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json", encoding="utf-8")
        assert SessionStore(path).load() is None

    def test_clear(self, tmp_path):
        store = SessionStore(tmp_path / "session.json")
        store.save(Session(actor_id="uid-c1", role="customer"))
        store.clear()
        assert store.load() is None
        store.clear()
