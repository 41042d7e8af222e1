"""Run one upsert batch and bind the returned identifiers to entities."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from batchupsert.domain.errors import CardinalityMismatchError
from batchupsert.domain.model import SaveOptions
from batchupsert.domain.planning import ensure_single_entity_type, plan_upsert

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from batchupsert.domain.model import Entity
    from batchupsert.domain.planning import UpsertPlan
    from batchupsert.domain.ports.execution import UpsertBackend


log = getLogger(__name__)


def save_group(
    entities: Sequence[Entity],
    *,
    backend: UpsertBackend,
    options: SaveOptions | None = None,
    universe: Sequence[Entity] | None = None,
) -> list[Entity]:
    """Persist same-type ``entities`` in one statement.

    Invalid entities are dropped silently. Returned rows are matched against
    every entity of the same type in ``universe`` (defaults to ``entities``), so
    duplicates outside the batch receive the id of the row they describe.
    Returns the entities that were submitted.
    """

    if not entities:
        return []
    active = options or SaveOptions()
    entity_type = ensure_single_entity_type(entities)

    submitted = [entity for entity in entities if entity.valid()]
    skipped = len(entities) - len(submitted)
    if skipped:
        log.info("Skipping %s invalid %s entities", skipped, entity_type.name)
    if not submitted:
        return []

    plan = plan_upsert(submitted, active)
    rows = list(backend.execute(plan))
    log.debug(
        "Upserted %s %s entities (%s merge rows, %s result rows)",
        len(submitted),
        entity_type.name,
        len(plan.rows),
        len(rows),
    )

    if plan.skip_lookup and len(rows) != len(submitted):
        raise CardinalityMismatchError(len(submitted), len(rows))
    if active.skip_id_assignment:
        return submitted

    if plan.skip_lookup:
        _bind_positionally(plan, submitted, rows)
    else:
        candidates = [
            entity for entity in (universe or entities) if entity.entity_type == entity_type
        ]
        bind_rows(rows, candidates)
    return submitted


def bind_rows(rows: Sequence[Mapping[str, Any]], entities: Sequence[Entity]) -> None:
    for row in rows:
        for entity in entities:
            entity.assign_id_if_matching(row)


def _bind_positionally(
    plan: UpsertPlan, entities: Sequence[Entity], rows: Sequence[Mapping[str, Any]]
) -> None:
    for entity, row in zip(entities, rows, strict=True):
        if not entity.has_id:
            entity.id = row[plan.primary_key]
