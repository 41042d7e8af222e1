"""Render upsert plans as single PostgreSQL statements.

Lookup mode produces::

    WITH merged AS (
        SELECT incoming.*, <table>.<pk> AS _found_id
        FROM (VALUES ...) AS incoming LEFT OUTER JOIN <table> ON <search keys>
    ), updated AS (
        UPDATE <table> SET <merge expressions> FROM merged
        WHERE <table>.<pk> = merged._found_id RETURNING ...
    ), inserted AS (
        INSERT INTO <table> (...) SELECT ... FROM merged
        WHERE merged._found_id IS NULL [ON CONFLICT DO NOTHING] RETURNING ...
    )
    SELECT ... FROM updated UNION SELECT ... FROM inserted

Skip-lookup mode is a plain ``INSERT ... SELECT`` ordered by submission.
Search keys are compared with ``=`` unless the column holds a null somewhere in
the batch; those use ``IS NOT DISTINCT FROM`` so the others stay indexable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import Integer, and_, cast, column, func, literal, null, select, union, update, values
from sqlalchemy.dialects.postgresql import insert

from batchupsert.adapters.sqlalchemy.metadata import TableEntityType
from batchupsert.domain.model import MergeFlag

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Table
    from sqlalchemy.sql.expression import CTE, Executable, Values
    from sqlalchemy.types import TypeEngine

    from batchupsert.domain.planning import UpsertPlan

INPUT_NAME: Final[str] = "incoming"
ROW_ORDINAL: Final[str] = "_row"
FOUND_ID: Final[str] = "_found_id"


def key_label(name: str) -> str:
    return f"key__{name}"


def render_upsert(plan: UpsertPlan) -> Executable:
    table = table_for(plan)
    source = _input_values(plan, table)
    if plan.skip_lookup:
        return _insert_all(plan, table, source)

    merged = _merged(plan, table, source)
    updated = _updated(plan, table, merged)
    inserted = _inserted(plan, table, merged)
    returning = plan.returning_columns
    return union(
        select(*(updated.c[name] for name in returning)),
        select(*(inserted.c[name] for name in returning)),
    )


def table_for(plan: UpsertPlan) -> Table:
    entity_type = plan.entity_type
    if not isinstance(entity_type, TableEntityType):
        raise TypeError(f"Entity type {entity_type.name!r} is not backed by a SQLAlchemy table")
    return entity_type.table


def merge_expression(
    flag: MergeFlag, *, existing: ColumnElement[Any], incoming: ColumnElement[Any]
) -> ColumnElement[Any]:
    match flag:
        case MergeFlag.ALWAYS:
            return incoming
        case MergeFlag.MAYBE:
            return func.coalesce(existing, incoming)
        case MergeFlag.PREFER:
            return func.coalesce(incoming, existing)
        case MergeFlag.SEARCH:
            raise ValueError("Search attributes have no merge expression")


def _input_values(plan: UpsertPlan, table: Table) -> Values:
    key_names = () if plan.skip_lookup else plan.search_columns
    record_names = plan.record_columns
    columns = [
        column(ROW_ORDINAL, Integer()),
        *(column(key_label(name), table.c[name].type) for name in key_names),
        *(column(name, table.c[name].type) for name in record_names),
    ]
    data = [
        (
            index,
            *(_typed(row.search.get(name), table.c[name].type) for name in key_names),
            *(_typed(row.record.get(name), table.c[name].type) for name in record_names),
        )
        for index, row in enumerate(plan.rows)
    ]
    return values(*columns, name=INPUT_NAME).data(data)


def _typed(value: Any, type_: TypeEngine[Any]) -> ColumnElement[Any]:
    # NULL must stay SQL NULL, JSON types would otherwise bind it as 'null'
    if value is None:
        return cast(null(), type_)
    return cast(literal(value, type_), type_)


def _merged(plan: UpsertPlan, table: Table, source: Values) -> CTE:
    conditions = [
        _key_matches(
            table.c[name],
            source.c[key_label(name)],
            null_safe=name in plan.null_safe_columns,
        )
        for name in plan.search_columns
    ]
    return (
        select(*source.c, table.c[plan.primary_key].label(FOUND_ID))
        .select_from(source.outerjoin(table, and_(*conditions)))
        .cte("merged")
    )


def _key_matches(
    stored: ColumnElement[Any], incoming: ColumnElement[Any], *, null_safe: bool
) -> ColumnElement[bool]:
    if null_safe:
        return stored.is_not_distinct_from(incoming)
    return stored == incoming


def _updated(plan: UpsertPlan, table: Table, merged: CTE) -> CTE:
    assignments: dict[str, ColumnElement[Any]] = {
        name: merge_expression(flag, existing=table.c[name], incoming=merged.c[name])
        for name, flag in plan.flags.items()
    }
    if not assignments:
        # no-op assignment so matched rows are still returned
        assignments[plan.primary_key] = table.c[plan.primary_key]
    return (
        update(table)
        .where(table.c[plan.primary_key] == merged.c[FOUND_ID])
        .values(assignments)
        .returning(*(table.c[name] for name in plan.returning_columns))
        .cte("updated")
    )


def _inserted(plan: UpsertPlan, table: Table, merged: CTE) -> CTE:
    names = list(plan.insert_columns)
    statement = insert(table).from_select(
        names,
        select(*(merged.c[name] for name in names)).where(merged.c[FOUND_ID].is_(None)),
    )
    if plan.ignore_conflicts:
        statement = statement.on_conflict_do_nothing()
    return statement.returning(*(table.c[name] for name in plan.returning_columns)).cte(
        "inserted"
    )


def _insert_all(plan: UpsertPlan, table: Table, source: Values) -> Executable:
    names = list(plan.insert_columns)
    statement = insert(table).from_select(
        names,
        select(*(source.c[name] for name in names)).order_by(source.c[ROW_ORDINAL]),
    )
    if plan.ignore_conflicts:
        statement = statement.on_conflict_do_nothing()
    return statement.returning(*(table.c[name] for name in plan.returning_columns))
