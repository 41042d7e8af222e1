"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum

from batchupsert.domain.errors import InvalidFlagError


class MergeFlag(StrEnum):
    """Role of an attribute: a lookup key or an update merge policy."""

    SEARCH = "search"
    # keep the stored value unless it is null
    MAYBE = "maybe"
    # take the incoming value unless it is null
    PREFER = "prefer"
    ALWAYS = "always"

    @classmethod
    def parse(cls, value: MergeFlag | str, *, name: str) -> MergeFlag:
        """Return the flag for ``value`` or raise ``InvalidFlagError``."""

        if isinstance(value, MergeFlag):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise InvalidFlagError(name, value) from exc

    @property
    def is_update(self) -> bool:
        return self is not MergeFlag.SEARCH
