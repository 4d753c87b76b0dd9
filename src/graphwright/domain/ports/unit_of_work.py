"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from graphwright.domain.ports.persistence import (
        LexiconTermRepository,
        PipelineRunRepository,
        PoolEntityRepository,
        PoolRelationRepository,
        RightsRepository,
        SourceItemRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    ``commit`` raises :class:`graphwright.domain.errors.ConcurrentUpdateError` when
    an optimistic-locking check fails.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class PipelineRepositories(RepositoryCollection):
    """Repositories required to drive a pipeline run."""

    runs: PipelineRunRepository
    items: SourceItemRepository
    rights: RightsRepository
    entities: PoolEntityRepository
    relations: PoolRelationRepository
    terms: LexiconTermRepository


type PipelineUnitOfWork = UnitOfWork[PipelineRepositories]
