from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import column
from sqlalchemy.dialects import postgresql

from batchupsert.adapters.sqlalchemy import render_upsert
from batchupsert.adapters.sqlalchemy.statements import merge_expression
from batchupsert.domain.model import MergeFlag, SaveOptions, build
from batchupsert.domain.planning import plan_upsert
from tests.support.schema import people

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.sql.expression import ClauseElement

    from batchupsert.adapters.sqlalchemy import TableEntityType
    from batchupsert.domain.model import Entity
    from batchupsert.domain.ports import Association


def _sql(statement: ClauseElement) -> str:
    return " ".join(str(statement.compile(dialect=postgresql.dialect())).split())


def _render(entities: list[Entity], options: SaveOptions | None = None) -> str:
    return _sql(render_upsert(plan_upsert(entities, options)))


def _insert_select(table: str, source: str, columns: list[str]) -> re.Pattern[str]:
    """Match INSERT .. SELECT whether or not the selected columns carry labels."""

    names = ", ".join(columns)
    selected = ", ".join(rf"{source}\.{name}(?: AS {name})?" for name in columns)
    return re.compile(rf"INSERT INTO {table} \({names}\) SELECT {selected} FROM")


def test_lookup_statement_joins_on_search_keys(people_type: TableEntityType) -> None:
    sql = _render([build(people_type, {"name": "Ada"}, {"age": 36})])

    assert sql.startswith("WITH merged AS")
    assert "AS incoming (_row, key__name, name, age)" in sql
    assert "LEFT OUTER JOIN people ON people.name = incoming.key__name" in sql
    assert "people.id AS _found_id" in sql
    assert "updated AS (UPDATE people SET age=merged.age FROM merged" in sql
    assert "WHERE people.id = merged._found_id" in sql
    assert "inserted AS (INSERT INTO people" in sql
    assert _insert_select("people", "merged", ["name", "age"]).search(sql)
    assert "WHERE merged._found_id IS NULL" in sql
    assert "FROM updated UNION SELECT" in sql
    assert "ON CONFLICT" not in sql


def test_merge_flags_render_as_coalesce(people_type: TableEntityType) -> None:
    entity = build(people_type, {"name": "Ada"}).maybe("age", 36).prefer("bio", "Countess")

    sql = _render([entity])

    assert "age=coalesce(people.age, merged.age)" in sql
    assert "bio=coalesce(merged.bio, people.bio)" in sql


def test_statement_without_updates_still_touches_matches(people_type: TableEntityType) -> None:
    sql = _render([build(people_type, {"name": "Ada"})])

    assert "UPDATE people SET id=people.id FROM merged" in sql
    assert "RETURNING people.name, people.id" in sql


def test_null_search_columns_compare_null_safely(people_type: TableEntityType) -> None:
    first = build(people_type, {"name": "Ada", "age": None})
    second = build(people_type, {"name": "Grace", "age": 85})

    sql = _render([first, second], SaveOptions(allow_null_search=True))

    assert "people.name = incoming.key__name" in sql
    assert "people.age IS NOT DISTINCT FROM incoming.key__age" in sql


def test_null_json_value_renders_as_sql_null(people_type: TableEntityType) -> None:
    sql = _render([build(people_type, {"name": "Ada"}, {"extra": None})])

    assert "CAST(NULL AS JSONB)" in sql


def test_ignore_conflicts_applies_to_insert(people_type: TableEntityType) -> None:
    sql = _render([build(people_type, {"name": "Ada"})], SaveOptions(ignore_conflicts=True))

    assert "ON CONFLICT DO NOTHING" in sql


def test_skip_lookup_renders_ordered_insert(people_type: TableEntityType) -> None:
    entities = [build(people_type, {"name": "Ada"}), build(people_type, {"name": "Ada"})]

    sql = _render(entities, SaveOptions(skip_lookup=True, ignore_conflicts=True))

    assert _insert_select("people", "incoming", ["name"]).match(sql)
    assert "FROM (VALUES" in sql
    assert "AS incoming (_row, name)" in sql
    assert "ORDER BY incoming._row" in sql
    assert "ON CONFLICT DO NOTHING RETURNING people.name, people.id" in sql
    assert "merged" not in sql


def test_explicit_primary_key_is_part_of_insert(people_type: TableEntityType) -> None:
    sql = _render([build(people_type, {"id": 42})])

    assert _insert_select("people", "merged", ["id"]).search(sql)


@pytest.mark.parametrize(
    ("flag", "expected"),
    [
        (MergeFlag.ALWAYS, "age"),
        (MergeFlag.MAYBE, "coalesce(people.age, age)"),
        (MergeFlag.PREFER, "coalesce(age, people.age)"),
    ],
)
def test_merge_expression(flag: MergeFlag, expected: str) -> None:
    expression = merge_expression(flag, existing=people.c.age, incoming=column("age"))

    assert _sql(expression) == expected


def test_merge_expression_rejects_search_flag() -> None:
    with pytest.raises(ValueError, match="no merge expression"):
        merge_expression(MergeFlag.SEARCH, existing=people.c.age, incoming=column("age"))


@dataclass(eq=False)
class _DetachedType:
    name: str = "detached"
    primary_key: str = "id"
    associations: Mapping[str, Association] = field(default_factory=dict)

    def is_valid(self, record: Mapping[str, Any]) -> bool:
        return True

    def normalize(self, name: str, value: Any) -> Any:
        return value


def test_render_requires_table_backed_entity_type() -> None:
    plan = plan_upsert([build(_DetachedType(), {"name": "Ada"})])

    with pytest.raises(TypeError, match="not backed by a SQLAlchemy table"):
        render_upsert(plan)
