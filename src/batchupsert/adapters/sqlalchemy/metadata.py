"""Entity types backed by SQLAlchemy tables and mapped classes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import MetaData, Table, inspect
from sqlalchemy.orm import Mapper, RelationshipDirection

from batchupsert.adapters.sqlalchemy.coercion import coerce_to_column
from batchupsert.domain.ports.metadata import Association

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

log = logging.getLogger(__name__)

type RecordValidator = Callable[[Mapping[str, Any]], bool]
type Normalizer = Callable[[Any], Any]


@dataclass(eq=False, slots=True)
class TableEntityType:
    """``EntityType`` for one table.

    Associations default to the table's foreign keys: ``person_id`` becomes the
    ``person`` association, optional when the column is nullable. Values are
    first coerced to the Python type the column reads back as, then normalizers
    run on non-null values; both happen before values are validated, written,
    or compared. Types for the same table and primary key compare equal.
    """

    table: Table
    primary_key: str
    associations: Mapping[str, Association] = field(default_factory=dict[str, Association])
    validator: RecordValidator | None = None
    normalizers: Mapping[str, Normalizer] = field(default_factory=dict[str, Normalizer])

    @classmethod
    def from_table(
        cls,
        table: Table,
        *,
        primary_key: str | None = None,
        associations: Mapping[str, Association] | None = None,
        validator: RecordValidator | None = None,
        normalizers: Mapping[str, Normalizer] | None = None,
    ) -> TableEntityType:
        return cls(
            table=table,
            primary_key=primary_key or _single_primary_key(table),
            associations=(
                dict(associations) if associations is not None else _foreign_key_associations(table)
            ),
            validator=validator,
            normalizers=dict(normalizers or {}),
        )

    @classmethod
    def from_mapped(
        cls,
        mapped: type[Any],
        *,
        validator: RecordValidator | None = None,
        normalizers: Mapping[str, Normalizer] | None = None,
    ) -> TableEntityType:
        """Describe a mapped class using its many-to-one relationships."""

        mapper: Mapper[Any] = inspect(mapped)
        table = mapper.local_table
        if not isinstance(table, Table):
            raise TypeError(f"{mapped.__name__} is not mapped to a single table")
        associations: dict[str, Association] = {}
        for relationship in mapper.relationships:
            if relationship.direction is not RelationshipDirection.MANYTOONE:
                continue
            columns = list(relationship.local_columns)
            if len(columns) != 1:
                log.warning(
                    "Skipping composite association %s.%s", mapped.__name__, relationship.key
                )
                continue
            column = columns[0]
            associations[relationship.key] = Association(
                name=relationship.key,
                foreign_key=column.name,
                optional=bool(column.nullable),
            )
        return cls.from_table(
            table,
            associations=associations,
            validator=validator,
            normalizers=normalizers,
        )

    @property
    def name(self) -> str:
        return self.table.name

    def is_valid(self, record: Mapping[str, Any]) -> bool:
        for name, value in record.items():
            column = self.table.c.get(name)
            if column is None:
                log.warning("Unknown column %s.%s", self.table.name, name)
                return False
            if value is None and not column.nullable and not column.primary_key:
                return False
        return self.validator is None or self.validator(record)

    def normalize(self, name: str, value: Any) -> Any:
        if value is None:
            return None
        column = self.table.c.get(name)
        if column is not None:
            value = coerce_to_column(column, value)
        normalizer = self.normalizers.get(name)
        return value if normalizer is None else normalizer(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableEntityType):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    @property
    def _key(self) -> tuple[str, str]:
        return (self.table.fullname, self.primary_key)


def reflect_entity_type(
    connection: Connection,
    table_name: str,
    *,
    primary_key: str | None = None,
    schema: str | None = None,
) -> TableEntityType:
    """Load ``table_name`` from the database and describe it."""

    table = Table(table_name, MetaData(), autoload_with=connection, schema=schema)
    return TableEntityType.from_table(table, primary_key=primary_key)


def _single_primary_key(table: Table) -> str:
    columns = list(table.primary_key.columns)
    if len(columns) != 1:
        raise ValueError(
            f"Table {table.name} needs exactly one primary key column, found {len(columns)}"
        )
    return columns[0].name


def _foreign_key_associations(table: Table) -> dict[str, Association]:
    associations: dict[str, Association] = {}
    for foreign_key in table.foreign_keys:
        column = foreign_key.parent
        name = column.name.removesuffix("_id")
        associations[name] = Association(
            name=name, foreign_key=column.name, optional=bool(column.nullable)
        )
    return associations
