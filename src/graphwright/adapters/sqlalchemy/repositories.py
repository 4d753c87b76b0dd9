"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from graphwright.adapters.sqlalchemy.mappings import (
    lexicon_term_table,
    pipeline_run_table,
    pool_entity_table,
    pool_relation_table,
    rights_record_table,
    source_item_table,
)
from graphwright.domain.model import (
    LexiconTerm,
    PipelineRun,
    PoolEntity,
    PoolRelation,
    RightsRecord,
    RunStatus,
    SourceItem,
)

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from sqlalchemy import Table
    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    """Shared add/get for mapped aggregates."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    def add(self, entity: TEntity) -> None:
        # no mapped relationships, so flush to keep inserts in foreign-key order
        self.session.add(entity)
        self.session.flush()

    def get(self, entity_id: UUID) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)


class SqlAlchemyRunScopedRepository[TEntity](SqlAlchemyRepository[TEntity]):
    def __init__(self, session: Session, entity_cls: type[TEntity], table: Table) -> None:
        super().__init__(session, entity_cls)
        self._table = table

    def for_run(self, run_id: UUID) -> list[TEntity]:
        stmt = (
            select(self._entity_cls)
            .where(self._table.c.run_id == run_id)
            .order_by(self._table.c.created_at, self._table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyPipelineRunRepository(SqlAlchemyRepository[PipelineRun]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, PipelineRun)

    def list_by_status(self, statuses: Collection[RunStatus]) -> list[PipelineRun]:
        if not statuses:
            return []
        stmt = (
            select(PipelineRun)
            .where(pipeline_run_table.c.status.in_(list(statuses)))
            .order_by(pipeline_run_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def needing_acceptance(self) -> list[PipelineRun]:
        stmt = (
            select(PipelineRun)
            .where(pipeline_run_table.c.status == RunStatus.COMPLETED)
            .where(pipeline_run_table.c.acceptance.is_(None))
            .order_by(pipeline_run_table.c.completed_at)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemySourceItemRepository(SqlAlchemyRunScopedRepository[SourceItem]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, SourceItem, source_item_table)


class SqlAlchemyRightsRepository(SqlAlchemyRepository[RightsRecord]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, RightsRecord)

    def get_by_context(self, context_key: str) -> RightsRecord | None:
        stmt = select(RightsRecord).where(rights_record_table.c.context_key == context_key)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_many(self, rights_ids: Collection[UUID]) -> list[RightsRecord]:
        if not rights_ids:
            return []
        stmt = select(RightsRecord).where(rights_record_table.c.id.in_(list(rights_ids)))
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyPoolEntityRepository(SqlAlchemyRunScopedRepository[PoolEntity]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, PoolEntity, pool_entity_table)


class SqlAlchemyPoolRelationRepository(SqlAlchemyRunScopedRepository[PoolRelation]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, PoolRelation, pool_relation_table)


class SqlAlchemyLexiconTermRepository(SqlAlchemyRunScopedRepository[LexiconTerm]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, LexiconTerm, lexicon_term_table)
