"""Single named values carried by pending entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from batchupsert.domain.model.enums import MergeFlag


class Referenceable:
    """Base for records whose identifier may still be pending.

    An attribute holding a ``Referenceable`` stands for "the eventual id of that
    record" and stays unresolved until the record has an id.
    """

    __slots__ = ()

    @property
    def id(self) -> Any:
        raise NotImplementedError

    @property
    def has_id(self) -> bool:
        return self.id is not None


@dataclass(frozen=True, slots=True, eq=False)
class Attribute:
    name: str
    value: Any
    flag: MergeFlag

    @property
    def reference(self) -> Referenceable | None:
        return self.value if isinstance(self.value, Referenceable) else None

    @property
    def resolved(self) -> bool:
        reference = self.reference
        return reference is None or reference.has_id

    @property
    def effective_value(self) -> Any:
        reference = self.reference
        if reference is None:
            return self.value
        return reference.id

    @property
    def is_search(self) -> bool:
        return self.flag is MergeFlag.SEARCH

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Attribute):
            return NotImplemented
        return (
            self.name == other.name
            and self.effective_value == other.effective_value
            and self.flag is other.flag
        )

    def __hash__(self) -> int:
        return hash((self.name, self.flag))
