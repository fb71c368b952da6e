"""
Audited writes against a document store.

Every create/update stamps the payload with ``creatorInfo`` or
``updaterInfo`` describing who made the change and from which client.
The audit block is for traceability only and is never consulted for
authorization.
"""

import locale
import logging
import platform
from typing import Any, Optional, TypedDict

from carecoord.errors import FetchError
from carecoord.logging_context import get_actor_id
from carecoord.store.gateway import DocumentStore, WriteMode
from carecoord.utils import clean_payload, utc_now_iso

logger = logging.getLogger(__name__)

CLIENT_NAME = "carecoord"


class MutateResult(TypedDict, total=False):
    """Result of a successful mutate call."""

    success: bool
    id: Optional[str]
    path: str


def generate_system_info(actor_id: Optional[str] = None) -> dict[str, Any]:
    """Collect the actor identity and a coarse client fingerprint."""
    language = locale.getlocale()[0] or "en_US"
    runtime = f"{platform.python_implementation()} {platform.python_version()}"
    return {
        "timestamp": utc_now_iso(),
        "actionBy": actor_id or get_actor_id(),
        "platform": platform.system() or "unknown",
        "browser": runtime,
        "language": language,
        "userAgent": f"{CLIENT_NAME} ({platform.platform()}; {runtime})",
    }


async def mutate(
    store: DocumentStore,
    path: str,
    data: Optional[dict[str, Any]] = None,
    action: WriteMode = WriteMode.UPDATE,
    actor_id: Optional[str] = None,
) -> MutateResult:
    """
    Write ``data`` at ``path`` with audit info attached.

    None values are dropped from the payload before writing.

    Raises:
        ValueError: If ``action`` is not a known write mode.
        FetchError: If the store rejects or fails the write.
    """
    action = WriteMode(action)
    payload = clean_payload(data or {})
    system_info = generate_system_info(actor_id)

    try:
        if action == WriteMode.CREATE:
            await store.write(path, {**payload, "creatorInfo": system_info}, WriteMode.CREATE)
            result: MutateResult = {"success": True, "path": path}
        elif action == WriteMode.CREATE_WITH_ID:
            key = await store.write(
                path, {**payload, "creatorInfo": system_info}, WriteMode.CREATE_WITH_ID
            )
            result = {"success": True, "id": key, "path": path}
        elif action == WriteMode.UPDATE:
            await store.write(path, {**payload, "updaterInfo": system_info}, WriteMode.UPDATE)
            result = {"success": True, "path": path}
        else:
            await store.write(path, None, WriteMode.DELETE)
            result = {"success": True, "path": path}
    except FetchError:
        raise
    except Exception as exc:
        logger.error("Database operation '%s' at '%s' failed: %s", action.value, path, exc)
        raise FetchError(f"{action.value} at '{path}' failed: {exc}", cause=exc) from exc

    logger.debug("Mutation '%s' applied at '%s'", action.value, path)
    return result
