"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from batchupsert.adapters.jsonl import read_entities
from batchupsert.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from batchupsert.domain.ports.unit_of_work import UpsertUnitOfWork

if TYPE_CHECKING:
    from pathlib import Path

    from batchupsert.domain.model import SaveOptions

UnitOfWorkFactory = Callable[[], UpsertUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LoadResult:
    read: int
    persisted: int
    identified: int


def load_records(
    path: Path,
    *,
    table_name: str,
    primary_key: str | None = None,
    options: SaveOptions | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> LoadResult:
    """Upsert every record in ``path`` into ``table_name`` inside one transaction."""

    if unit_of_work_factory is None and not is_started():
        startup()
    effective_uow = unit_of_work_factory or SqlAlchemyUnitOfWork
    log.info("Loading records from %s into %s", path, table_name)

    with effective_uow() as uow:
        entity_type = uow.entity_type(table_name, primary_key=primary_key)
        entities = read_entities(path, entity_type)
        persisted = uow.save(entities, options)
        uow.commit()

    result = LoadResult(
        read=len(entities),
        persisted=len(persisted),
        identified=sum(1 for entity in entities if entity.has_id),
    )
    log.info(
        f"Finished loading {table_name}: read={result.read}, persisted={result.persisted}, "
        f"identified={result.identified}"
    )
    return result
