"""SQLAlchemy-backed units of work for typing and deduplication runs.

The adapter owns one process-wide engine. ``startup()`` binds it (building one from
``DATABASE_URI`` when none is passed), maps the bookkeeping entities and migrates the
engine-owned tables; every unit of work then draws a session from the shared factory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from typedupe.config import get_database_config, get_table_naming
from typedupe.domain.ports.unit_of_work import RepositoryCollection, StreamRepositories

from .mappings import StreamTables, start_mappers, stream_tables
from .migrations import upgrade_head
from .repositories import (
    SqlAlchemyRawLogRepository,
    SqlAlchemyStreamStateRepository,
    SqlAlchemyTypedTableRepository,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from typedupe.config import TableNaming
    from typedupe.domain.model import StreamSchema


class StartupError(RuntimeError):
    """Raised when the adapter or a unit of work is used in the wrong lifecycle state."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = field(default=None, repr=False)

    def bind(self, engine: Engine) -> None:
        if self.engine is not None and self.engine is not engine:
            self.engine.dispose()
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def clear(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None

    def session_factory(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError("SQLAlchemy adapter not started; call startup() first")
        return self.sessions


_STATE = _AdapterState()


def _create_engine(database_uri: str | None, isolation_level: str | None) -> Engine:
    database = get_database_config()
    options: dict[str, Any] = {}
    level = isolation_level or database.isolation_level
    if level is not None:
        options["isolation_level"] = level
    return create_engine(database_uri or database.uri, **options)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    isolation_level: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or a new one) and migrate bookkeeping tables."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already started; pass force=True to rebind")

    resolved = engine if engine is not None else _create_engine(database_uri, isolation_level)
    start_mappers()
    upgrade_head(engine=resolved)
    _STATE.bind(resolved)


def configured_engine() -> Engine | None:
    return _STATE.engine


def require_engine() -> Engine:
    if _STATE.engine is None:
        raise StartupError("SQLAlchemy adapter not started")
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the bound engine; a later ``startup()`` starts from scratch."""

    _STATE.clear()


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block; rolls back when the block raises."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory()
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SqlAlchemyStreamUnitOfWork(BaseSqlAlchemyUnitOfWork[StreamRepositories]):
    """Unit of work over one stream's raw log, typed table and bookkeeping row."""

    def __init__(self, schema: StreamSchema, naming: TableNaming | None = None) -> None:
        super().__init__()
        self.tables: StreamTables = stream_tables(schema, naming or get_table_naming())

    def _build_repositories(self, session: Session) -> StreamRepositories:
        return StreamRepositories(
            schema=self.tables.schema,
            raw_log=SqlAlchemyRawLogRepository(session, self.tables),
            typed_table=SqlAlchemyTypedTableRepository(session, self.tables),
            stream_state=SqlAlchemyStreamStateRepository(session),
        )


if TYPE_CHECKING:
    from typedupe.domain.model import ColumnSpec, ColumnType
    from typedupe.domain.ports import StreamUnitOfWork

    _uow_check: StreamUnitOfWork = SqlAlchemyStreamUnitOfWork(
        StreamSchema("check", (ColumnSpec("id", ColumnType.INTEGER),), "id")
    )
