"""SQLAlchemy adapter package for graphwright."""

from __future__ import annotations

from .graph_store import SqlAlchemyGraphStore
from .job_queue import SqlAlchemyJobQueue
from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyLexiconTermRepository,
    SqlAlchemyPipelineRunRepository,
    SqlAlchemyPoolEntityRepository,
    SqlAlchemyPoolRelationRepository,
    SqlAlchemyRightsRepository,
    SqlAlchemySourceItemRepository,
)
from .unit_of_work import (
    SqlAlchemyPipelineUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyGraphStore",
    "SqlAlchemyJobQueue",
    "SqlAlchemyLexiconTermRepository",
    "SqlAlchemyPipelineRunRepository",
    "SqlAlchemyPipelineUnitOfWork",
    "SqlAlchemyPoolEntityRepository",
    "SqlAlchemyPoolRelationRepository",
    "SqlAlchemyRightsRepository",
    "SqlAlchemySourceItemRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
