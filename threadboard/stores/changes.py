"""Change-set handling for partial updates.

A change-set is the mapping of fields a client explicitly supplied. Only
fields that are present and non-empty overwrite stored values, so an
update that omits a field (or sends it blank) never nulls existing data.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def collect_changes(changes: BaseModel | dict[str, Any]) -> dict[str, Any]:
    """Reduce a change-set to the fields that should be written.

    Args:
        changes: A pydantic model (only explicitly set fields count) or a dict.

    Returns:
        Mapping of field name to new value, without empty values.
    """
    if isinstance(changes, BaseModel):
        raw = changes.model_dump(exclude_unset=True)
    else:
        raw = dict(changes)
    return {field: value for field, value in raw.items() if not _is_empty(value)}


def apply_changes(entity: T, changes: BaseModel | dict[str, Any], immutable: frozenset[str] = frozenset()) -> T:
    """Apply a change-set to an ORM entity in place.

    ``updated_at`` is refreshed on every call, even when no other field
    changes.

    Args:
        entity: The ORM instance to mutate.
        changes: The requested changes.
        immutable: Field names that must never be overwritten.

    Returns:
        The same entity, mutated.

    Raises:
        ValueError: If the change-set names an unknown or immutable field.
    """
    for field, value in collect_changes(changes).items():
        if field in immutable or not hasattr(entity, field):
            raise ValueError(f"Field '{field}' cannot be changed")
        setattr(entity, field, value)

    if hasattr(entity, "updated_at"):
        entity.updated_at = datetime.now(UTC)
    return entity
