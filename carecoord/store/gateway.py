"""
Hierarchical document store gateway.

The booking engine and the query layer only depend on the
``DocumentStore`` protocol: point reads, path-scoped writes, and change
subscriptions over slash-separated string paths. ``InMemoryDocumentStore``
is the bundled implementation; in production this protocol would be
backed by a realtime database client.

Usage:
    store = InMemoryDocumentStore()
    key = await store.write("bookings", {"status": "PENDING"}, WriteMode.CREATE_WITH_ID)
    unsubscribe = await store.subscribe("bookings", print)
"""

import asyncio
import copy
import itertools
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from carecoord.utils import split_path

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class WriteMode(str, Enum):
    """How a write is applied at its path."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CREATE_WITH_ID = "createWithId"


class DocumentStore(Protocol):
    """Capabilities the core needs from a persistence backend."""

    async def read(self, path: str) -> Any:
        ...

    async def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        ...

    async def write(self, path: str, value: Any = None, mode: WriteMode = WriteMode.UPDATE) -> Optional[str]:
        ...


@dataclass
class _Listener:
    segments: list[str]
    on_change: ChangeCallback
    on_error: Optional[ErrorCallback] = None


def _overlaps(a: list[str], b: list[str]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


class InMemoryDocumentStore:
    """
    Nested-dict document store with synchronous change notification.

    Empty maps are pruned and writing ``None`` deletes, so a path either
    holds a value or reads back as ``None``. Listeners receive a deep copy
    of the value at their own path after every overlapping write.
    Exceptions raised by a listener are logged; ``on_error`` is kept for
    backend failures, which this store never produces.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._root: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._listeners: dict[int, _Listener] = {}
        self._listener_ids = itertools.count(1)
        self._push_counter = itertools.count()

    # ------------------------------------------------------------------ #
    # Protocol operations
    # ------------------------------------------------------------------ #

    async def read(self, path: str) -> Any:
        await asyncio.sleep(0)
        return copy.deepcopy(self._get(split_path(path)))

    async def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """Register a listener and deliver the current value immediately."""
        await asyncio.sleep(0)
        listener_id = next(self._listener_ids)
        listener = _Listener(split_path(path), on_change, on_error)
        self._listeners[listener_id] = listener
        logger.debug("Subscribed #%d to '%s'", listener_id, path)
        self._deliver(listener)

        def unsubscribe() -> None:
            if self._listeners.pop(listener_id, None) is not None:
                logger.debug("Unsubscribed #%d from '%s'", listener_id, path)

        return unsubscribe

    async def write(
        self, path: str, value: Any = None, mode: WriteMode = WriteMode.UPDATE
    ) -> Optional[str]:
        """
        Apply a write at ``path``.

        Returns:
            The generated key for CREATE_WITH_ID, otherwise None.

        Raises:
            ValueError: If the path is empty or an UPDATE value is not a map.
        """
        await asyncio.sleep(0)
        segments = split_path(path)
        if not segments:
            raise ValueError("Cannot write to the store root")

        key: Optional[str] = None
        if mode == WriteMode.CREATE:
            self._set(segments, copy.deepcopy(value))
            written = [segments]
        elif mode == WriteMode.UPDATE:
            if not isinstance(value, dict):
                raise ValueError(f"UPDATE at '{path}' needs a map, got {type(value).__name__}")
            written = []
            for child, child_value in value.items():
                child_segments = segments + split_path(child)
                self._set(child_segments, copy.deepcopy(child_value))
                written.append(child_segments)
        elif mode == WriteMode.DELETE:
            self._set(segments, None)
            written = [segments]
        elif mode == WriteMode.CREATE_WITH_ID:
            key = self.generate_key()
            self._set(segments + [key], copy.deepcopy(value))
            written = [segments + [key]]
        else:
            raise ValueError(f"Unknown write mode: {mode!r}")

        self._notify(written)
        return key

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @property
    def listener_count(self) -> int:
        """Number of open subscriptions."""
        return len(self._listeners)

    def generate_key(self) -> str:
        """Chronologically sortable key for CREATE_WITH_ID."""
        millis = int(time.time() * 1000)
        return f"-{millis:011x}{next(self._push_counter):06x}{uuid.uuid4().hex[:6]}"

    def _get(self, segments: list[str]) -> Any:
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _set(self, segments: list[str], value: Any) -> None:
        if value is None or value == {}:
            self._remove(segments)
            return
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = value

    def _remove(self, segments: list[str]) -> None:
        trail: list[tuple[dict[str, Any], str]] = []
        node: Any = self._root
        for segment in segments:
            if not isinstance(node, dict) or segment not in node:
                return
            trail.append((node, segment))
            node = node[segment]
        parent, last = trail.pop()
        del parent[last]
        # prune maps left empty by the removal
        while trail and not parent:
            parent, last = trail.pop()
            del parent[last]

    def _notify(self, written: list[list[str]]) -> None:
        for listener in list(self._listeners.values()):
            if any(_overlaps(listener.segments, w) for w in written):
                self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        value = copy.deepcopy(self._get(listener.segments))
        try:
            listener.on_change(value)
        except Exception:
            # a failing subscriber never fails the write or starves the others
            logger.exception("Change listener for '%s' failed", "/".join(listener.segments))
