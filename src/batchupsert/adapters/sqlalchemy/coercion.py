"""Bring caller values to the Python type a column reads back as.

Record files carry dates, decimals and identifiers as JSON strings or floats,
while the driver returns ``date``/``Decimal``/``UUID`` objects. Values are
coerced before they are written so the returned rows compare equal to them.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Final
from uuid import UUID

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Column

log = logging.getLogger(__name__)


def _to_int(value: Any) -> Any:
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, (float, Decimal)) and value == int(value):
        return int(value)
    return value


def _to_float(value: Any) -> Any:
    if isinstance(value, (str, int, Decimal)):
        return float(value)
    return value


def _to_decimal(value: Any) -> Any:
    if isinstance(value, (str, int, float)):
        # via str so 0.1 stays 0.1 rather than its binary expansion
        return Decimal(str(value).strip())
    return value


def _to_text(value: Any) -> Any:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return value


def _to_uuid(value: Any) -> Any:
    return UUID(value) if isinstance(value, str) else value


def _from_iso(kind: type[date] | type[time]) -> Callable[[Any], Any]:
    def parse(value: Any) -> Any:
        return kind.fromisoformat(value.strip()) if isinstance(value, str) else value

    return parse


_COERCERS: Final[dict[type, Callable[[Any], Any]]] = {
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    str: _to_text,
    UUID: _to_uuid,
    date: _from_iso(date),
    datetime: _from_iso(datetime),
    time: _from_iso(time),
}


def python_type_of(column: Column[Any]) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def coerce_to_column(column: Column[Any], value: Any) -> Any:
    """Return ``value`` as the column's Python type when it can be converted.

    Unconvertible values are returned unchanged; the database rejects them.
    """

    if value is None:
        return None
    python_type = python_type_of(column)
    if python_type is None or isinstance(value, python_type):
        return value
    coercer = _COERCERS.get(python_type)
    if coercer is None:
        return value
    try:
        return coercer(value)
    except (ValueError, TypeError, OverflowError, InvalidOperation):
        log.debug("Cannot read %r as %s for column %s", value, python_type.__name__, column)
        return value
