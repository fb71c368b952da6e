"""Tests for shared utility functions and the actor logging context."""

import contextvars
import io
import logging
from datetime import datetime

from carecoord.logging_context import (
    LOG_FORMAT,
    NO_ACTOR,
    ActorIdFilter,
    actor_scope,
    get_actor_id,
    install_actor_filter,
)
from carecoord.utils import clean_payload, join_path, split_path, utc_now_iso


class TestPaths:
    def test_split_ignores_empty_segments(self):
        assert split_path("/bookings//b1/") == ["bookings", "b1"]

    def test_split_root(self):
        assert split_path("/") == []

    def test_join(self):
        assert join_path("bookings/", "/b1") == "bookings/b1"

    def test_join_nested_base(self):
        assert join_path("clinic/bookings", "b1") == "clinic/bookings/b1"


class TestCleanPayload:
    def test_drops_none(self):
        assert clean_payload({"a": 1, "b": None, "c": ""}) == {"a": 1, "c": ""}

    def test_keeps_falsy_values(self):
        assert clean_payload({"a": 0, "b": False, "c": []}) == {"a": 0, "b": False, "c": []}


class TestTimestamps:
    def test_utc_iso(self):
        parsed = datetime.fromisoformat(utc_now_iso())
        assert parsed.utcoffset().total_seconds() == 0


def _record(msg: str = "msg", **extra) -> logging.LogRecord:
    record = logging.LogRecord("carecoord.test", logging.INFO, __file__, 1, msg, None, None)
    record.__dict__.update(extra)
    return record


class TestActorLogging:
    def test_default_actor(self):
        assert contextvars.copy_context().run(get_actor_id) == NO_ACTOR

    def test_scope_restores_previous_actor(self):
        def run():
            with actor_scope("uid-p1"):
                with actor_scope("uid-p2"):
                    inner = get_actor_id()
                middle = get_actor_id()
            return inner, middle, get_actor_id()

        assert contextvars.copy_context().run(run) == ("uid-p2", "uid-p1", NO_ACTOR)

    def test_filter_keeps_explicit_actor(self):
        record = _record(actor_id="uid-explicit")
        ActorIdFilter().filter(record)
        assert record.actor_id == "uid-explicit"

    def test_rendered_line_names_actor(self):
        handler = logging.StreamHandler(io.StringIO())
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        install_actor_filter([handler])

        def run():
            with actor_scope("uid-paramedic-1"):
                handler.handle(_record("Confirming booking"))
            handler.handle(_record("Idle"))

        contextvars.copy_context().run(run)
        lines = handler.stream.getvalue().splitlines()
        assert lines[0].endswith("INFO [uid-paramedic-1]: Confirming booking")
        assert lines[1].endswith(f"INFO [{NO_ACTOR}]: Idle")

    def test_filter_installed_once(self):
        handler = logging.NullHandler()
        install_actor_filter([handler])
        install_actor_filter([handler])
        assert sum(isinstance(f, ActorIdFilter) for f in handler.filters) == 1

    def test_root_handlers_get_filter(self):
        handler = logging.NullHandler()
        root = logging.getLogger()
        root.addHandler(handler)
        try:
            install_actor_filter()
            assert any(isinstance(f, ActorIdFilter) for f in handler.filters)
        finally:
            root.removeHandler(handler)
