"""Dependency-ordered saving of mixed entity batches.

Entities may reference other entities of the same call whose ids are not known
yet (a post whose author is a new person). The scheduler repeatedly picks a
group of one entity type that can make progress, persists its ready members,
and lets the returned ids resolve references for the next round.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from batchupsert.domain.errors import UnresolvedReferenceError
from batchupsert.domain.persist import save_group

if TYPE_CHECKING:
    from collections.abc import Sequence

    from batchupsert.domain.model import Entity, SaveOptions
    from batchupsert.domain.ports.execution import UpsertBackend
    from batchupsert.domain.ports.metadata import EntityType


log = getLogger(__name__)


def group_by_entity_type(entities: Sequence[Entity]) -> list[list[Entity]]:
    """Group ``entities`` by type, keeping first-seen order."""

    groups: dict[EntityType, list[Entity]] = {}
    for entity in entities:
        groups.setdefault(entity.entity_type, []).append(entity)
    return list(groups.values())


def select_ready_group(groups: Sequence[list[Entity]]) -> list[Entity] | None:
    """Prefer a fully ready group, then any group with a ready member."""

    for group in groups:
        if all(entity.ready() for entity in group):
            return group
    for group in groups:
        if any(entity.ready() for entity in group):
            return group
    return None


def save(
    entities: Sequence[Entity],
    *,
    backend: UpsertBackend,
    options: SaveOptions | None = None,
) -> list[Entity]:
    """Persist ``entities`` in dependency order, one statement per round.

    Returns the entities that passed validation and were submitted. Stops
    quietly when only invalid or optional entities are left unresolvable.
    """

    universe = list(entities)
    remaining = list(entities)
    persisted: list[Entity] = []
    rounds = 0

    while remaining:
        group = select_ready_group(group_by_entity_type(remaining))
        if group is None:
            stuck = [
                entity
                for entity in remaining
                if not entity.optional and entity.valid(ignore_unresolved=True)
            ]
            if stuck:
                names = dict.fromkeys(entity.entity_type.name for entity in stuck)
                raise UnresolvedReferenceError(names)
            log.info("Leaving %s unresolvable entities unsaved", len(remaining))
            break

        ready = [entity for entity in group if entity.ready()]
        rounds += 1
        log.debug(
            "Round %s: saving %s of %s %s entities",
            rounds,
            len(ready),
            len(group),
            ready[0].entity_type.name,
        )
        persisted.extend(save_group(ready, backend=backend, options=options, universe=universe))

        done = {id(entity) for entity in ready}
        remaining = [entity for entity in remaining if id(entity) not in done]

    return persisted
