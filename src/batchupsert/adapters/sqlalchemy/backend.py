"""Execute upsert plans on a SQLAlchemy connection or session."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from batchupsert.adapters.sqlalchemy.statements import render_upsert

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection
    from sqlalchemy.orm import Session

    from batchupsert.domain.planning import UpsertPlan


log = getLogger(__name__)


class SqlAlchemyUpsertBackend:
    """Run each plan as one statement on the connection it was given.

    Transactions belong to the caller; database errors propagate unchanged.
    """

    def __init__(self, connection: Connection | Session) -> None:
        self.connection = connection

    def execute(self, plan: UpsertPlan) -> list[dict[str, Any]]:
        statement = render_upsert(plan)
        log.debug("Executing upsert into %s with %s rows", plan.entity_type.name, len(plan.rows))
        result = self.connection.execute(statement)
        return [dict(row) for row in result.mappings()]
