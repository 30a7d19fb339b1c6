from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from typedupe.adapters.sqlalchemy import (
    SqlAlchemyStreamUnitOfWork,
    prepare_raw_table,
    prepare_typed_table,
    shutdown,
    start_mappers,
    startup,
)
from typedupe.adapters.sqlalchemy.migrations import upgrade_head
from typedupe.config import TableNaming
from typedupe.domain.model import StreamSchema  # noqa: TC001

from tests.helpers.streams import users_schema

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def naming() -> TableNaming:
    return TableNaming()


@pytest.fixture
def users() -> StreamSchema:
    return users_schema()


@pytest.fixture
def started_adapter(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()


@pytest.fixture
def users_unit_of_work(
    started_adapter: Engine,
    users: StreamSchema,
    naming: TableNaming,
) -> Callable[[], SqlAlchemyStreamUnitOfWork]:
    prepare_raw_table(started_adapter, users, naming)
    prepare_typed_table(started_adapter, users, naming)

    def factory() -> SqlAlchemyStreamUnitOfWork:
        return SqlAlchemyStreamUnitOfWork(users, naming)

    return factory
