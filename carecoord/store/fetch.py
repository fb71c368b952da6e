"""
Fetch controller: one subscription/fetch lifecycle per query descriptor.

A controller exposes ``(data, is_loading, error)`` for a single
``QueryDescriptor``. One-shot controllers read once and can be refetched;
live controllers hold a standing subscription, shared through a
``SubscriptionHub`` with every other live controller using an identical
descriptor, and release it when their scope ends.

Usage:
    descriptor = build_query("bookings", flatten_to_array=True, live=True)
    async with FetchController(store, descriptor) as bookings:
        print(bookings.data, bookings.is_loading, bookings.error)
"""

import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from carecoord.errors import CareCoordError, FetchError, UnsupportedOperationError
from carecoord.store.gateway import DocumentStore, Unsubscribe
from carecoord.store.query import QueryDescriptor, apply_query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryState:
    """Three-valued result published by a controller."""

    data: Any = None
    is_loading: bool = True
    error: Optional[CareCoordError] = None


StateListener = Callable[[QueryState], None]


def _as_query_error(exc: BaseException, descriptor: QueryDescriptor) -> CareCoordError:
    if isinstance(exc, CareCoordError):
        return exc
    return FetchError(f"Query on '{descriptor.path}' failed: {exc}", cause=exc)


def _notify_all(listeners: list[StateListener], state: QueryState) -> None:
    """Call each listener in turn; one that raises is logged and skipped."""
    for listener in list(listeners):
        try:
            listener(state)
        except Exception:
            logger.exception("State listener %r failed", listener)


async def fetch_once(store: DocumentStore, descriptor: QueryDescriptor) -> Any:
    """
    Read ``descriptor.path`` once and shape the result.

    Raises:
        FetchError: If the store read fails.
        InvalidQueryError: If the value cannot be shaped as requested.
    """
    try:
        value = await store.read(descriptor.path)
    except Exception as exc:
        logger.warning("Read of '%s' failed: %s", descriptor.path, exc)
        raise FetchError(f"Read of '{descriptor.path}' failed: {exc}", cause=exc) from exc
    return apply_query(descriptor, value)


@dataclass
class _SharedSubscription:
    listeners: list[StateListener] = field(default_factory=list)
    unsubscribe: Optional[Unsubscribe] = None
    last_state: Optional[QueryState] = None


class SubscriptionHub:
    """
    Shares one store subscription between live queries with equal descriptors.

    Subscriptions are reference counted: the first acquire opens the
    store subscription and the last release closes it.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._entries: dict[QueryDescriptor, _SharedSubscription] = {}

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def active_count(self) -> int:
        """Number of distinct descriptors with an open subscription."""
        return len(self._entries)

    async def acquire(self, descriptor: QueryDescriptor, listener: StateListener) -> Callable[[], None]:
        """Attach ``listener`` to the shared subscription for ``descriptor``.

        Returns:
            A release function; calling it more than once is harmless.
        """
        entry = self._entries.get(descriptor)
        if entry is not None:
            entry.listeners.append(listener)
            if entry.last_state is not None:
                _notify_all([listener], entry.last_state)
            logger.debug(
                "Reusing subscription for '%s' (%d listeners)",
                descriptor.path, len(entry.listeners),
            )
            return self._releaser(descriptor, entry, listener)

        entry = _SharedSubscription(listeners=[listener])
        self._entries[descriptor] = entry

        def on_change(value: Any) -> None:
            try:
                state = QueryState(data=apply_query(descriptor, value), is_loading=False)
            except Exception as exc:
                state = QueryState(is_loading=False, error=_as_query_error(exc, descriptor))
            self._publish(entry, state)

        def on_error(exc: BaseException) -> None:
            previous = entry.last_state.data if entry.last_state else None
            self._publish(
                entry,
                QueryState(data=previous, is_loading=False, error=_as_query_error(exc, descriptor)),
            )

        try:
            unsubscribe = await self._store.subscribe(descriptor.path, on_change, on_error)
        except Exception as exc:
            logger.warning("Subscribe to '%s' failed: %s", descriptor.path, exc)
            self._entries.pop(descriptor, None)
            error = FetchError(f"Subscribe to '{descriptor.path}' failed: {exc}", cause=exc)
            self._publish(entry, QueryState(is_loading=False, error=error))
            return lambda: None

        if entry.listeners:
            entry.unsubscribe = unsubscribe
            logger.debug("Opened live subscription for '%s'", descriptor.path)
        else:
            # every listener released while the subscribe call was pending
            unsubscribe()
        return self._releaser(descriptor, entry, listener)

    def _releaser(
        self, descriptor: QueryDescriptor, entry: _SharedSubscription, listener: StateListener
    ) -> Callable[[], None]:
        def release() -> None:
            if listener not in entry.listeners:
                return
            entry.listeners.remove(listener)
            if entry.listeners:
                return
            if self._entries.get(descriptor) is entry:
                del self._entries[descriptor]
            if entry.unsubscribe is not None:
                entry.unsubscribe()
                entry.unsubscribe = None
                logger.debug("Closed live subscription for '%s'", descriptor.path)

        return release

    @staticmethod
    def _publish(entry: _SharedSubscription, state: QueryState) -> None:
        entry.last_state = state
        _notify_all(entry.listeners, state)


# keyed by id(store); a hub keeps its store alive, so a live entry never sees a reused id
_shared_hubs: "weakref.WeakValueDictionary[int, SubscriptionHub]" = weakref.WeakValueDictionary()


def shared_hub(store: DocumentStore) -> SubscriptionHub:
    """
    Return the hub shared by every controller over ``store``.

    Controllers built without an explicit hub use this one, so identical
    live queries on one store always share a single subscription.
    """
    hub = _shared_hubs.get(id(store))
    if hub is None or hub.store is not store:
        hub = SubscriptionHub(store)
        _shared_hubs[id(store)] = hub
    return hub


class FetchController:
    """
    Owns the fetch/subscription lifecycle for one query descriptor.

    Errors are published on ``state.error`` rather than raised, except from
    ``refetch()`` where the caller asked for the read explicitly.
    """

    def __init__(
        self,
        store: DocumentStore,
        descriptor: QueryDescriptor,
        hub: Optional[SubscriptionHub] = None,
    ) -> None:
        self._store = store
        self._descriptor = descriptor
        self._hub = hub or shared_hub(store)
        self._state = QueryState()
        self._listeners: list[StateListener] = []
        self._release: Optional[Callable[[], None]] = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------ #
    # Published state
    # ------------------------------------------------------------------ #

    @property
    def descriptor(self) -> QueryDescriptor:
        return self._descriptor

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def data(self) -> Any:
        return self._state.data

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def error(self) -> Optional[CareCoordError]:
        return self._state.error

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` on every publication; returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _publish(self, state: QueryState) -> None:
        if self._closed:
            return
        self._state = state
        _notify_all(self._listeners, state)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> "FetchController":
        """Acquire the subscription or run the one-shot fetch. Idempotent."""
        if self._closed:
            raise UnsupportedOperationError("Controller is closed")
        if self._started:
            return self
        self._started = True
        if self._descriptor.live:
            self._release = await self._hub.acquire(self._descriptor, self._publish)
        else:
            await self._load(raise_errors=False)
        return self

    async def close(self) -> None:
        """Release the subscription; later store changes are ignored."""
        self._teardown()
        self._closed = True

    async def __aenter__(self) -> "FetchController":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _teardown(self) -> None:
        if self._release is not None:
            self._release()
            self._release = None

    async def update(self, descriptor: QueryDescriptor) -> None:
        """Switch to a new descriptor, tearing down the old subscription first."""
        if descriptor == self._descriptor:
            return
        self._teardown()
        self._descriptor = descriptor
        self._state = QueryState()
        if self._started and not self._closed:
            self._started = False
            await self.start()

    async def refetch(self) -> Any:
        """
        Re-read the store for a one-shot query.

        Raises:
            UnsupportedOperationError: In live mode, which refreshes itself.
            FetchError: If the store read fails.
        """
        if self._descriptor.live:
            raise UnsupportedOperationError(
                f"refetch() is not available for live query on '{self._descriptor.path}'"
            )
        self._started = True
        return await self._load(raise_errors=True)

    async def _load(self, raise_errors: bool) -> Any:
        descriptor = self._descriptor
        self._publish(QueryState(data=self._state.data, is_loading=True))
        try:
            data = await fetch_once(self._store, descriptor)
        except Exception as exc:
            error = _as_query_error(exc, descriptor)
            self._publish(QueryState(is_loading=False, error=error))
            if raise_errors:
                if error is exc:
                    raise
                raise error from exc
            return None
        if descriptor is self._descriptor:
            self._publish(QueryState(data=data, is_loading=False))
        return data

