"""Turn a batch of same-type entities into an upsert plan.

The plan is dialect-free: it holds the column lists, merge flags and merge rows
a backend needs to render one set-based statement. Every structural check runs
here so that a bad batch fails before any statement is issued.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from batchupsert.domain.errors import (
    EmptySearchListError,
    InconsistentFlagError,
    InconsistentSearchColumnsError,
    MissingSearchValueError,
    MultipleEntityTypesError,
    PrimaryKeyUpdateError,
    RequiredAssociationError,
)
from batchupsert.domain.model import SaveOptions

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from batchupsert.domain.model import Entity, MergeFlag
    from batchupsert.domain.ports.metadata import EntityType


@dataclass(frozen=True, slots=True)
class MergeRow:
    """One input row: lookup keys plus the full record to write."""

    search: Mapping[str, Any]
    record: Mapping[str, Any]


@dataclass(frozen=True, slots=True, kw_only=True)
class UpsertPlan:
    entity_type: EntityType
    entities: tuple[Entity, ...]
    search_columns: tuple[str, ...]
    update_columns: tuple[str, ...]
    flags: Mapping[str, MergeFlag]
    null_safe_columns: frozenset[str]
    rows: tuple[MergeRow, ...]
    skip_lookup: bool = False
    ignore_conflicts: bool = False

    @property
    def primary_key(self) -> str:
        return self.entity_type.primary_key

    @property
    def record_columns(self) -> tuple[str, ...]:
        return _ordered_union(self.search_columns, self.update_columns)

    @property
    def insert_columns(self) -> tuple[str, ...]:
        # an explicit primary key used for lookup is written as-is
        if self.primary_key in self.search_columns:
            return self.record_columns
        return tuple(name for name in self.record_columns if name != self.primary_key)

    @property
    def returning_columns(self) -> tuple[str, ...]:
        return _ordered_union(self.search_columns, self.update_columns, (self.primary_key,))


def ensure_single_entity_type(entities: Sequence[Entity]) -> EntityType:
    types: list[EntityType] = []
    for entity in entities:
        if entity.entity_type not in types:
            types.append(entity.entity_type)
    if len(types) != 1:
        raise MultipleEntityTypesError(entity_type.name for entity_type in types)
    return types[0]


def plan_upsert(entities: Sequence[Entity], options: SaveOptions | None = None) -> UpsertPlan:
    """Check ``entities`` for consistency and build the plan for one statement."""

    active = options or SaveOptions()
    entity_type = ensure_single_entity_type(entities)
    primary_key = entity_type.primary_key

    to_search = _ordered_union(*(entity.search_columns for entity in entities))
    to_update = _ordered_union(*(entity.update_columns for entity in entities))

    if primary_key in to_update:
        raise PrimaryKeyUpdateError(primary_key)
    if not active.allow_association_fields:
        _check_associations(entity_type, to_search, to_update)
    flags = collect_flags(entities)

    if active.skip_lookup:
        rows = tuple(_merge_row(entity, to_search, to_update) for entity in entities)
        plan = UpsertPlan(
            entity_type=entity_type,
            entities=tuple(entities),
            search_columns=to_search,
            update_columns=to_update,
            flags=flags,
            null_safe_columns=frozenset(),
            rows=rows,
            skip_lookup=True,
            ignore_conflicts=active.ignore_conflicts,
        )
        if not plan.insert_columns:
            raise EmptySearchListError("Entities carry no attributes to insert")
        return plan

    if not to_search:
        raise EmptySearchListError()

    rows = _distinct_rows(entities, to_search, to_update)
    null_columns = tuple(
        name for name in to_search if any(row.search.get(name) is None for row in rows)
    )
    if not active.allow_null_search:
        column_sets = {frozenset(entity.search_columns) for entity in entities}
        if len(column_sets) > 1:
            raise InconsistentSearchColumnsError()
        if null_columns:
            raise MissingSearchValueError(null_columns)

    return UpsertPlan(
        entity_type=entity_type,
        entities=tuple(entities),
        search_columns=to_search,
        update_columns=to_update,
        flags=flags,
        null_safe_columns=frozenset(null_columns),
        rows=rows,
        skip_lookup=False,
        ignore_conflicts=active.ignore_conflicts,
    )


def collect_flags(entities: Sequence[Entity]) -> dict[str, MergeFlag]:
    """Return the single merge flag used for every update field."""

    flags: dict[str, MergeFlag] = {}
    for entity in entities:
        for attribute in entity.update_attributes:
            current = flags.setdefault(attribute.name, attribute.flag)
            if current is not attribute.flag:
                raise InconsistentFlagError(attribute.name, (current, attribute.flag))
    return flags


def _check_associations(
    entity_type: EntityType, to_search: tuple[str, ...], to_update: tuple[str, ...]
) -> None:
    for association in entity_type.associations.values():
        if association.optional:
            continue
        column = association.foreign_key
        if column in to_search or column in to_update:
            raise RequiredAssociationError(column)


def _distinct_rows(
    entities: Sequence[Entity], to_search: tuple[str, ...], to_update: tuple[str, ...]
) -> tuple[MergeRow, ...]:
    seen: set[str] = set()
    rows: list[MergeRow] = []
    for entity in entities:
        key = _search_key(entity)
        if key in seen:
            continue
        seen.add(key)
        rows.append(_merge_row(entity, to_search, to_update))
    return tuple(rows)


def _merge_row(entity: Entity, to_search: tuple[str, ...], to_update: tuple[str, ...]) -> MergeRow:
    search = entity.search_record()
    record = entity.record()
    return MergeRow(
        search={name: search.get(name) for name in to_search},
        record={name: record.get(name) for name in _ordered_union(to_search, to_update)},
    )


def _search_key(entity: Entity) -> str:
    return json.dumps(entity.search_record(), sort_keys=True, default=str)


def _ordered_union(*groups: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(name for group in groups for name in group))
