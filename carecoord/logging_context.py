"""
Acting identity carried on every log line.

Booking operations run on behalf of an actor. ``actor_scope`` binds that
actor for the current task, and ``ActorIdFilter`` copies it onto each
record reaching a handler, so ``LOG_FORMAT`` can print ``%(actor_id)s``
for records from any logger. ``load_config`` installs the filter on the
root handlers; records emitted outside a scope show ``NO_ACTOR``.

Usage:
    from carecoord.logging_context import actor_scope

    with actor_scope("uid-paramedic-1"):
        logger.info("Confirming booking")
    # 2024-02-01 10:00:00 [carecoord.booking] INFO [uid-paramedic-1]: Confirming booking
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterable, Iterator, Optional

NO_ACTOR = "-"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(actor_id)s]: %(message)s"

_actor_id: ContextVar[str] = ContextVar("actor_id", default=NO_ACTOR)


def set_actor_id(actor_id: str) -> Token:
    """Bind ``actor_id`` for the current context; pass the token to ``reset_actor_id``."""
    return _actor_id.set(actor_id)


def reset_actor_id(token: Token) -> None:
    _actor_id.reset(token)


def get_actor_id() -> str:
    return _actor_id.get()


@contextmanager
def actor_scope(actor_id: str) -> Iterator[str]:
    """Bind ``actor_id`` for the duration of the block, then restore the previous actor."""
    token = set_actor_id(actor_id)
    try:
        yield actor_id
    finally:
        reset_actor_id(token)


class ActorIdFilter(logging.Filter):
    """Stamps the bound actor on records that do not already name one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "actor_id"):
            record.actor_id = _actor_id.get()  # type: ignore[attr-defined]
        return True


def install_actor_filter(handlers: Optional[Iterable[logging.Handler]] = None) -> None:
    """Attach one ActorIdFilter to each handler (the root logger's by default)."""
    targets = list(handlers) if handlers is not None else logging.getLogger().handlers
    for handler in targets:
        if not any(isinstance(f, ActorIdFilter) for f in handler.filters):
            handler.addFilter(ActorIdFilter())
