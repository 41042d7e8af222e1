"""Pending records awaiting a batch upsert.

An ``Entity`` collects search attributes (how to find an existing row) and
update attributes (what to write, with a merge flag each). Its ``id`` starts
empty and is assigned exactly once: directly, from a primary-key attribute, or
by matching a row returned from the database.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from batchupsert.domain.errors import IdentifierAlreadyAssignedError, InvalidSearchMappingError
from batchupsert.domain.model.attribute import Attribute, Referenceable
from batchupsert.domain.model.enums import MergeFlag

if TYPE_CHECKING:
    from batchupsert.domain.ports.metadata import EntityType


@dataclass(eq=False, kw_only=True)
class Entity(Referenceable):
    entity_type: EntityType
    attributes: list[Attribute] = field(default_factory=list[Attribute])
    optional: bool = False
    _id: Any = None

    # Identity ---------------------------------------------------------------

    @property
    def id(self) -> Any:
        return self._id

    @id.setter
    def id(self, value: Any) -> None:
        if self._id is not None and value != self._id:
            raise IdentifierAlreadyAssignedError(self._id, value)
        self._id = value

    def assign_id_if_matching(self, row: Mapping[str, Any]) -> Entity:
        """Take the row's primary key when every search value matches the row.

        Expected values come from the full attribute record, so a search key that
        is later overwritten by an update attribute is compared with the stored
        (updated) value.
        """

        if self.has_id:
            return self
        search = self.search_attributes
        if not search or not all(attribute.resolved for attribute in search):
            return self

        expected = self.record()
        for attribute in search:
            wanted = expected.get(attribute.name)
            actual = row.get(attribute.name)
            if isinstance(wanted, (dict, list)):
                actual = _decode_structured(actual)
            if actual != wanted:
                return self

        self.id = row[self.entity_type.primary_key]
        return self

    # Attribute views --------------------------------------------------------

    @property
    def search_attributes(self) -> list[Attribute]:
        return [attribute for attribute in self.attributes if attribute.is_search]

    @property
    def update_attributes(self) -> list[Attribute]:
        return [attribute for attribute in self.attributes if not attribute.is_search]

    @property
    def search_columns(self) -> list[str]:
        return _unique_names(self.search_attributes)

    @property
    def update_columns(self) -> list[str]:
        return _unique_names(self.update_attributes)

    def value_of(self, name: str) -> Any:
        """Return the effective value of the first attribute named ``name``."""

        column = self._column_for(name)
        for attribute in self.attributes:
            if attribute.name == column:
                return attribute.effective_value
        return None

    def record(self) -> dict[str, Any]:
        """Return every assignment, later attributes overriding earlier ones."""

        return self._normalized(self.attributes)

    def search_record(self) -> dict[str, Any]:
        return self._normalized(self.search_attributes)

    # State ------------------------------------------------------------------

    def ready(self) -> bool:
        return all(attribute.resolved for attribute in self.attributes)

    def valid(self, *, ignore_unresolved: bool = False) -> bool:
        """Check the record with the entity type.

        With ``ignore_unresolved`` the pending references are left out, so an
        entity is judged only on the values it already knows.
        """

        if not ignore_unresolved:
            return self.entity_type.is_valid(self.record())
        known = [attribute for attribute in self.attributes if attribute.resolved]
        return self.entity_type.is_valid(self._normalized(known))

    def mark_optional(self) -> Entity:
        self.optional = True
        return self

    # Builders ---------------------------------------------------------------

    def search(self, name: str, value: Any) -> Entity:
        return self.add(name, value, MergeFlag.SEARCH)

    def maybe(self, name: str, value: Any) -> Entity:
        """Update the stored value only when it is null."""

        return self.add(name, value, MergeFlag.MAYBE)

    def prefer(self, name: str, value: Any) -> Entity:
        """Update the stored value only when the new value is not null."""

        return self.add(name, value, MergeFlag.PREFER)

    def always(self, name: str, value: Any) -> Entity:
        return self.add(name, value, MergeFlag.ALWAYS)

    def add(self, name: str, value: Any, flag: MergeFlag | str) -> Entity:
        column = self._column_for(name)
        resolved_flag = MergeFlag.parse(flag, name=column)
        if (
            column == self.entity_type.primary_key
            and value is not None
            and not isinstance(value, Referenceable)
        ):
            self.id = value
        self.attributes.append(Attribute(column, value, resolved_flag))
        return self

    def _column_for(self, name: str) -> str:
        association = self.entity_type.associations.get(name)
        return association.foreign_key if association is not None else name

    def _normalized(self, attributes: list[Attribute]) -> dict[str, Any]:
        normalize = self.entity_type.normalize
        return {
            attribute.name: normalize(attribute.name, attribute.effective_value)
            for attribute in attributes
        }

    def __repr__(self) -> str:
        return (
            f"Entity({self.entity_type.name!r}, id={self._id!r}, "
            f"search={self.search_columns!r}, update={self.update_columns!r})"
        )


def build(
    entity_type: EntityType,
    search: Mapping[str, Any],
    update: Mapping[str, Any] | None = None,
) -> Entity:
    """Open an entity from search values and ``always`` update values."""

    if not isinstance(search, Mapping):
        raise InvalidSearchMappingError(search)
    if update is not None and not isinstance(update, Mapping):
        raise InvalidSearchMappingError(update)

    entity = Entity(entity_type=entity_type)
    for name, value in search.items():
        entity.search(name, value)
    for name, value in (update or {}).items():
        entity.always(name, value)
    return entity


def _unique_names(attributes: list[Attribute]) -> list[str]:
    return list(dict.fromkeys(attribute.name for attribute in attributes))


def _decode_structured(value: Any) -> Any:
    if not isinstance(value, (str, bytes)):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return None
