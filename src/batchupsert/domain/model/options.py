"""Switches accepted by a save call."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Final

from batchupsert.domain.errors import UnknownOptionError

if TYPE_CHECKING:
    from collections.abc import Mapping

_CAMEL_CASE_KEYS: Final[dict[str, str]] = {
    "allowAssociationFields": "allow_association_fields",
    "allowNullSearch": "allow_null_search",
    "skipLookup": "skip_lookup",
    "ignoreConflicts": "ignore_conflicts",
    "skipIdAssignment": "skip_id_assignment",
}


@dataclass(frozen=True, slots=True, kw_only=True)
class SaveOptions:
    """Options for one save call; every switch defaults to off."""

    # write foreign keys of required associations
    allow_association_fields: bool = False
    # accept null search values and compare them null-safely
    allow_null_search: bool = False
    # insert one row per entity without looking for existing rows
    skip_lookup: bool = False
    ignore_conflicts: bool = False
    skip_id_assignment: bool = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None = None) -> SaveOptions:
        """Build options from a caller map using camelCase or snake_case keys."""

        if not values:
            return cls()
        known = {field.name for field in fields(cls)}
        resolved: dict[str, bool] = {}
        unknown: list[str] = []
        for key, value in values.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                unknown.append(key)
                continue
            resolved[name] = bool(value)
        if unknown:
            raise UnknownOptionError(unknown)
        return cls(**resolved)
