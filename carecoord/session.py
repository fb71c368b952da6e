"""
Explicit session context for the acting identity.

The identity provider hands us ``(actor_id, role)``; a ``Session`` carries
that pair into every call that needs it. ``SessionStore`` persists the
session between runs; the booking engine never reads it.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from carecoord.roles import Role, RoleKind, parse_role, role_kind

logger = logging.getLogger(__name__)


class Session(BaseModel):
    """The current caller as issued by the identity provider."""

    actor_id: str
    role: str
    display_name: Optional[str] = None

    @property
    def parsed_role(self) -> Optional[Role]:
        return parse_role(self.role)

    @property
    def kind(self) -> Optional[RoleKind]:
        role = self.parsed_role
        return role_kind(role) if role is not None else None


class SessionStore:
    """Loads and saves a Session as JSON on disk."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        """Return the saved session, or None when absent or unreadable."""
        if not self.path.exists():
            return None
        try:
            return Session.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(), encoding="utf-8")
        logger.debug("Session saved for %s", session.actor_id)

    def clear(self) -> None:
        """Sign out: remove the persisted session."""
        if self.path.exists():
            self.path.unlink()
            logger.debug("Session cleared")
