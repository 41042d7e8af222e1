from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.sql.dml import Insert

from batchupsert.adapters.sqlalchemy import SqlAlchemyUpsertBackend
from batchupsert.domain.model import SaveOptions, build
from batchupsert.domain.planning import plan_upsert
from batchupsert.domain.ports import UpsertBackend

if TYPE_CHECKING:
    from batchupsert.adapters.sqlalchemy import TableEntityType


class _FakeResult:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    def mappings(self) -> list[dict[str, Any]]:
        return self._rows


class _FakeConnection:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.statements: list[object] = []

    def execute(self, statement: object) -> _FakeResult:
        self.statements.append(statement)
        return _FakeResult(self.rows)


def test_backend_runs_rendered_statement_and_returns_dicts(
    people_type: TableEntityType,
) -> None:
    connection = _FakeConnection([{"name": "Ada", "id": 1}])
    backend = SqlAlchemyUpsertBackend(connection)  # type: ignore[arg-type]
    plan = plan_upsert([build(people_type, {"name": "Ada"})], SaveOptions(skip_lookup=True))

    rows = backend.execute(plan)

    assert isinstance(backend, UpsertBackend)
    assert rows == [{"name": "Ada", "id": 1}]
    assert len(connection.statements) == 1
    assert isinstance(connection.statements[0], Insert)
