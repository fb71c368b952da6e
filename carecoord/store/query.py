"""
Declarative query descriptors and the post-read shaping pipeline.

A ``QueryDescriptor`` names a store path plus optional ordering, limiting,
flattening, filtering, sorting and transform steps. Descriptors are immutable and
hashable so identical queries can share one live subscription.

Pipeline order: order_by -> limit -> flatten -> filter -> sort_key -> transform.

``order_by`` ranks store children by one field before ``limit``; ``sort_key``
reorders the flattened records with any key function (wrap a two-argument
comparator with ``functools.cmp_to_key``).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from carecoord.errors import InvalidQueryError
from carecoord.utils import split_path

logger = logging.getLogger(__name__)


class LimitDirection(str, Enum):
    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True)
class QueryDescriptor:
    """Everything that identifies one logical read of the store."""

    path: str
    order_by: Optional[str] = None
    limit: Optional[int] = None
    limit_direction: LimitDirection = LimitDirection.FIRST
    flatten_to_array: bool = False
    flatten_nested: bool = False
    filter: Optional[Callable[[Any], bool]] = None
    sort_key: Optional[Callable[[Any], Any]] = None
    sort_reverse: bool = False
    transform: Optional[Callable[[Any], Any]] = None
    live: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not split_path(self.path):
            raise InvalidQueryError(f"Query path must be a non-empty string, got {self.path!r}")
        if self.order_by is not None and (
            not isinstance(self.order_by, str) or not self.order_by.strip()
        ):
            raise InvalidQueryError(f"order_by must be a field name, got {self.order_by!r}")
        if self.limit is not None and (
            isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1
        ):
            raise InvalidQueryError(f"limit must be a positive integer, got {self.limit!r}")
        try:
            object.__setattr__(self, "limit_direction", LimitDirection(self.limit_direction))
        except ValueError:
            raise InvalidQueryError(
                f"limit_direction must be 'first' or 'last', got {self.limit_direction!r}"
            ) from None
        if self.flatten_to_array and self.flatten_nested:
            raise InvalidQueryError("flatten_to_array and flatten_nested are mutually exclusive")


def build_query(path: str, **options: Any) -> QueryDescriptor:
    """Build a descriptor, rejecting unknown option names."""
    try:
        return QueryDescriptor(path=path, **options)
    except TypeError as exc:
        raise InvalidQueryError(f"Unknown query option: {exc}") from None


def _order_rank(field: str, value: Any) -> tuple:
    """Sort key for one child value: missing, booleans, numbers, then strings."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    raise InvalidQueryError(
        f"Cannot order by '{field}': values of type {type(value).__name__} are not orderable"
    )


def _order(value: dict[str, Any], field: str) -> list[tuple[str, Any]]:
    def key(item: tuple[str, Any]) -> tuple:
        child_key, child = item
        field_value = child.get(field) if isinstance(child, dict) else None
        return (_order_rank(field, field_value), child_key)

    return sorted(value.items(), key=key)


def _as_record(key: str, value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return {**value, "id": key}
    return {"id": key, "value": value}


def flatten(value: Any) -> list[dict[str, Any]]:
    """Project a keyed map into a list of ``{"id": key, ...value}`` records."""
    if value is None:
        return []
    if not isinstance(value, dict):
        raise InvalidQueryError(f"Cannot flatten a {type(value).__name__} into records")
    return [_as_record(key, child) for key, child in value.items()]


def flatten_nested(value: Any) -> list[dict[str, Any]]:
    """Flatten a two-level map (``{group: {key: value}}``) into one record list."""
    records: list[dict[str, Any]] = []
    for group in flatten(value):
        group_id = group.pop("id")
        for key, child in group.items():
            record = _as_record(key, child)
            record.setdefault("parentId", group_id)
            records.append(record)
    return records


def apply_query(descriptor: QueryDescriptor, value: Any) -> Any:
    """
    Shape a raw store value according to ``descriptor``.

    Raises:
        InvalidQueryError: If ordering or flattening is impossible for the value.
    """
    data = value
    if descriptor.order_by is not None or descriptor.limit is not None:
        if isinstance(data, dict):
            items = (
                _order(data, descriptor.order_by)
                if descriptor.order_by is not None
                else list(data.items())
            )
            if descriptor.limit is not None:
                if descriptor.limit_direction == LimitDirection.FIRST:
                    items = items[: descriptor.limit]
                else:
                    items = items[-descriptor.limit:]
            data = dict(items)
        elif data is not None:
            raise InvalidQueryError(
                f"order_by/limit need a collection at '{descriptor.path}', "
                f"got {type(data).__name__}"
            )

    if descriptor.flatten_nested:
        data = flatten_nested(data)
    elif descriptor.flatten_to_array:
        data = flatten(data)

    if descriptor.filter is not None and isinstance(data, list):
        data = [item for item in data if descriptor.filter(item)]

    if descriptor.sort_key is not None and isinstance(data, list):
        data = sorted(data, key=descriptor.sort_key, reverse=descriptor.sort_reverse)

    if descriptor.transform is not None:
        data = descriptor.transform(data)
    return data
