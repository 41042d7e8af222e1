"""SQLAlchemy adapter package for batchupsert."""

from __future__ import annotations

from .backend import SqlAlchemyUpsertBackend
from .metadata import TableEntityType, reflect_entity_type
from .statements import render_upsert
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyUpsertBackend",
    "StartupError",
    "TableEntityType",
    "is_started",
    "reflect_entity_type",
    "render_upsert",
    "shutdown",
    "startup",
]
