"""Structural errors raised while planning a batch upsert.

Every error here aborts the whole save call before a statement is issued.
Invalid entities are not errors: they are skipped by the executor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class UpsertError(ValueError):
    """Base class for batch upsert failures."""


class MultipleEntityTypesError(UpsertError):
    def __init__(self, names: Iterable[str]) -> None:
        joined = ", ".join(names)
        super().__init__(f"Entities must share one entity type, got {joined}")


class InvalidSearchMappingError(UpsertError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Mapping of attributes expected, got {type(value).__name__} instead")


class InconsistentSearchColumnsError(UpsertError):
    def __init__(self) -> None:
        super().__init__("Different sets of attributes are used for search")


class MissingSearchValueError(UpsertError):
    def __init__(self, columns: Iterable[str]) -> None:
        self.columns = tuple(columns)
        joined = ", ".join(self.columns)
        super().__init__(
            f"Search values contain nulls for: {joined}. Consider setting `allow_null_search`"
        )


class InconsistentFlagError(UpsertError):
    def __init__(self, name: str, flags: Iterable[str]) -> None:
        self.name = name
        self.flags = tuple(flags)
        super().__init__(f"`{name}` attribute has multiple flags: {list(self.flags)!r}")


class InvalidFlagError(UpsertError):
    def __init__(self, name: str, value: object) -> None:
        super().__init__(f"`{name}` attribute has invalid flag value: {value!r}")


class EmptySearchListError(UpsertError):
    def __init__(self, message: str = "Search attributes are empty") -> None:
        super().__init__(message)


class PrimaryKeyUpdateError(UpsertError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Primary key `{name}` cannot be updated")


class RequiredAssociationError(UpsertError):
    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(
            f"`{column}` belongs to a required association; "
            "set `allow_association_fields` to write it"
        )


class CardinalityMismatchError(UpsertError):
    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"Expected {expected} inserted rows, database returned {received}")


class UnresolvedReferenceError(UpsertError):
    def __init__(self, entity_types: Iterable[str]) -> None:
        self.entity_types = tuple(entity_types)
        joined = ", ".join(self.entity_types)
        super().__init__(f"Entities reference records that were never persisted: {joined}")


class UnknownOptionError(UpsertError):
    def __init__(self, names: Iterable[str]) -> None:
        joined = ", ".join(sorted(names))
        super().__init__(f"Unknown save options: {joined}")


class IdentifierAlreadyAssignedError(UpsertError):
    def __init__(self, current: object, incoming: object) -> None:
        super().__init__(f"Identifier already assigned ({current!r}), refusing {incoming!r}")
