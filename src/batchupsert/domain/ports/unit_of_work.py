"""Unit-of-work abstraction around one database transaction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from batchupsert.domain.model import Entity, SaveOptions
    from batchupsert.domain.ports.metadata import EntityType


@runtime_checkable
class UpsertUnitOfWork(Protocol):
    """Transaction boundary that can describe tables and save entities."""

    def __enter__(self) -> UpsertUnitOfWork: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def entity_type(self, table_name: str, *, primary_key: str | None = None) -> EntityType: ...

    def save(
        self, entities: Sequence[Entity], options: SaveOptions | None = None
    ) -> list[Entity]: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
