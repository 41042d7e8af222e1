"""Port for running a planned upsert against a store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from batchupsert.domain.planning import UpsertPlan


@runtime_checkable
class UpsertBackend(Protocol):
    """Render ``plan`` as one statement, run it, and return the result rows.

    Rows map field names to decoded values and always include the primary key.
    Store errors must propagate unchanged.
    """

    def execute(self, plan: UpsertPlan) -> Sequence[Mapping[str, Any]]: ...
