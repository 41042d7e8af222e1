"""Collect entities while building them, then save them together."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from batchupsert.domain.model import Entity, build
from batchupsert.domain.scheduling import save

if TYPE_CHECKING:
    from collections.abc import Mapping

    from batchupsert.domain.model import SaveOptions
    from batchupsert.domain.ports.execution import UpsertBackend
    from batchupsert.domain.ports.metadata import EntityType


@dataclass(slots=True)
class UpsertOperation:
    """Remember every entity built through it, in build order."""

    entities: list[Entity] = field(default_factory=list[Entity])

    def build(
        self,
        entity_type: EntityType,
        search: Mapping[str, Any],
        update: Mapping[str, Any] | None = None,
    ) -> Entity:
        entity = build(entity_type, search, update)
        self.entities.append(entity)
        return entity

    def save(self, *, backend: UpsertBackend, options: SaveOptions | None = None) -> list[Entity]:
        return save(self.entities, backend=backend, options=options)
