"""SQLAlchemy-backed unit of work for batch upserts."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from batchupsert.adapters.sqlalchemy.backend import SqlAlchemyUpsertBackend
from batchupsert.adapters.sqlalchemy.metadata import TableEntityType, reflect_entity_type
from batchupsert.config import get_database_config
from batchupsert.domain.scheduling import save

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from batchupsert.domain.model import Entity, SaveOptions


log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(frozen=True, slots=True)
class _Binding:
    """The engine batches run on and the sessions opened against it."""

    engine: Engine
    sessions: sessionmaker[Session]

    @classmethod
    def to(cls, engine: Engine) -> _Binding:
        return cls(engine=engine, sessions=sessionmaker(bind=engine, expire_on_commit=False))


class _Bindings:
    """Holds at most one ``_Binding``; replaced only when asked to."""

    def __init__(self) -> None:
        self.current: _Binding | None = None

    def bind(self, engine: Engine) -> None:
        if self.current is not None and self.current.engine is not engine:
            self.release()
        self.current = _Binding.to(engine)

    def release(self) -> None:
        if self.current is not None:
            self.current.engine.dispose()
            self.current = None

    def require(self) -> _Binding:
        if self.current is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call batchupsert.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self.current


_BINDINGS = _Bindings()


def _engine_from_config() -> Engine:
    config = get_database_config()
    if not config.is_postgresql:
        log.warning("Upsert statements need PostgreSQL, configured URI is not")
    return create_engine(config.uri, echo=config.echo)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine``, ``database_uri`` or the configured URI.

    Raises ``StartupError`` when already bound unless ``force`` is set, in which
    case the previous engine is disposed.
    """

    if is_started() and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )
    if engine is None:
        engine = create_engine(database_uri) if database_uri else _engine_from_config()
    _BINDINGS.bind(engine)
    log.debug("Bound upsert adapter to %s", engine.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _BINDINGS.current is not None


def shutdown() -> None:
    """Dispose the bound engine, if any."""

    _BINDINGS.release()


class SqlAlchemyUnitOfWork:
    """One session and transaction; rolled back when the block raises."""

    def __init__(self) -> None:
        binding = _BINDINGS.require()
        self.engine: Engine = binding.engine
        self.session_factory: sessionmaker[Session] = binding.sessions
        self._session: Session | None = None
        self._entity_types: dict[tuple[str, str | None], TableEntityType] = {}

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self.session_factory()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session

    @property
    def backend(self) -> SqlAlchemyUpsertBackend:
        return SqlAlchemyUpsertBackend(self.session)

    def entity_type(self, table_name: str, *, primary_key: str | None = None) -> TableEntityType:
        """Reflect ``table_name`` once per unit of work."""

        key = (table_name, primary_key)
        if key not in self._entity_types:
            self._entity_types[key] = reflect_entity_type(
                self.session.connection(), table_name, primary_key=primary_key
            )
        return self._entity_types[key]

    def save(self, entities: Sequence[Entity], options: SaveOptions | None = None) -> list[Entity]:
        return save(entities, backend=self.backend, options=options)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from batchupsert.domain.ports.unit_of_work import UpsertUnitOfWork

    _uow_check: UpsertUnitOfWork = SqlAlchemyUnitOfWork()
