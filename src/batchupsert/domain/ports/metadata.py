"""Port describing the table behind an entity type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class Association:
    """A belongs-to link stored in ``foreign_key`` of the owning table."""

    name: str
    foreign_key: str
    optional: bool = False


@runtime_checkable
class EntityType(Protocol):
    """Metadata the upsert core needs about one table.

    Implementations must be hashable; entities of equal types are batched together.
    """

    @property
    def name(self) -> str: ...

    @property
    def primary_key(self) -> str: ...

    @property
    def associations(self) -> Mapping[str, Association]: ...

    def is_valid(self, record: Mapping[str, Any]) -> bool: ...

    def normalize(self, name: str, value: Any) -> Any: ...
