"""Ports for persisting pipeline aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from graphwright.domain.model import (
    LexiconTerm,
    PipelineRun,
    PoolEntity,
    PoolRelation,
    RightsRecord,
    SourceItem,
)

if TYPE_CHECKING:
    from collections.abc import Collection
    from uuid import UUID

    from graphwright.domain.model import RunStatus


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, entity_id: UUID) -> TEntity | None: ...


@runtime_checkable
class PipelineRunRepository(Repository[PipelineRun], Protocol):
    """Persistence contract for pipeline runs. Runs are never deleted."""

    def list_by_status(self, statuses: Collection[RunStatus]) -> list[PipelineRun]: ...

    def needing_acceptance(self) -> list[PipelineRun]: ...


@runtime_checkable
class RunScopedRepository[TEntity](Repository[TEntity], Protocol):
    """Repositories whose rows belong to a single pipeline run."""

    def for_run(self, run_id: UUID) -> list[TEntity]: ...


@runtime_checkable
class SourceItemRepository(RunScopedRepository[SourceItem], Protocol):
    """Persistence contract for source items."""


@runtime_checkable
class RightsRepository(Repository[RightsRecord], Protocol):
    """Append-only persistence contract for rights records."""

    def get_by_context(self, context_key: str) -> RightsRecord | None: ...

    def get_many(self, rights_ids: Collection[UUID]) -> list[RightsRecord]: ...


@runtime_checkable
class PoolEntityRepository(RunScopedRepository[PoolEntity], Protocol):
    """Persistence contract for extracted pool entities."""


@runtime_checkable
class PoolRelationRepository(RunScopedRepository[PoolRelation], Protocol):
    """Persistence contract for extracted relations."""


@runtime_checkable
class LexiconTermRepository(RunScopedRepository[LexiconTerm], Protocol):
    """Persistence contract for lexicon terms."""
