from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from batchupsert.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from tests.support.memory_backend import InMemoryUpsertBackend
from tests.support.schema import metadata, person_type, post_type

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from batchupsert.adapters.sqlalchemy import TableEntityType


@pytest.fixture
def people_type() -> TableEntityType:
    return person_type()


@pytest.fixture
def posts_type() -> TableEntityType:
    return post_type()


@pytest.fixture
def backend() -> InMemoryUpsertBackend:
    return InMemoryUpsertBackend()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
