from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from graphwright.adapters.sqlalchemy import SqlAlchemyGraphStore, SqlAlchemyJobQueue, start_mappers
from graphwright.adapters.sqlalchemy.migrations import upgrade_head
from graphwright.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyPipelineUnitOfWork,
    shutdown,
    startup,
)
from graphwright.app import Runtime, build_runtime
from graphwright.config import PipelineConfig
from tests.support.fakes import FakeExtractionGateway, FrozenClock, RecordingDeliverableSink

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyPipelineUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyPipelineUnitOfWork:
        return SqlAlchemyPipelineUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def graph_store(sqlite_engine: Engine, clock: FrozenClock) -> SqlAlchemyGraphStore:
    return SqlAlchemyGraphStore(sqlite_engine, graph="test", clock=clock)


@pytest.fixture
def job_queue(sqlite_engine: Engine, clock: FrozenClock) -> SqlAlchemyJobQueue:
    return SqlAlchemyJobQueue(sqlite_engine, clock=clock)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(backoff_base_seconds=0.0, literacy_threshold=0.0)


@pytest.fixture
def extraction() -> FakeExtractionGateway:
    return FakeExtractionGateway()


@pytest.fixture
def deliverables() -> RecordingDeliverableSink:
    return RecordingDeliverableSink()


@pytest.fixture
def runtime(
    monkeypatch: pytest.MonkeyPatch,
    sqlite_engine: Engine,
    pipeline_config: PipelineConfig,
    extraction: FakeExtractionGateway,
    deliverables: RecordingDeliverableSink,
    clock: FrozenClock,
) -> Iterator[Runtime]:
    monkeypatch.delenv("GRAPHWRIGHT_RIGHTS_URL", raising=False)
    try:
        yield build_runtime(
            engine=sqlite_engine,
            config=pipeline_config,
            extraction=extraction,
            deliverables=deliverables,
            clock=clock,
        )
    finally:
        shutdown()
