"""Explicit context objects passed from the executor into stage logic."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from graphwright.config.pipeline import PipelineConfig
from graphwright.domain.ports.gateways import ExtractionContext
from graphwright.domain.verbs import DEFAULT_GLOSSARY, VerbGlossary

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.domain.model import RunOptions, SourceItem, Stage
    from graphwright.domain.ports.gateways import (
        DeliverableSink,
        EmbeddingGateway,
        ExtractionGateway,
        RightsInferenceGateway,
    )
    from graphwright.domain.ports.graph import GraphStore
    from graphwright.domain.ports.unit_of_work import PipelineUnitOfWork

type UnitOfWorkFactory = Callable[[], PipelineUnitOfWork]
type GraphStoreFactory = Callable[[str], GraphStore]


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class StageServices:
    """Collaborators available to stage logic, injected once at wiring time."""

    unit_of_work_factory: UnitOfWorkFactory
    graph_store_factory: GraphStoreFactory
    extraction: ExtractionGateway | None = None
    rights_inference: RightsInferenceGateway | None = None
    embeddings: EmbeddingGateway | None = None
    deliverables: DeliverableSink | None = None
    glossary: VerbGlossary = DEFAULT_GLOSSARY
    config: PipelineConfig = field(default_factory=PipelineConfig)
    clock: Callable[[], datetime] = utcnow


@dataclass(frozen=True, slots=True)
class RunContext:
    """Which run and stage is executing, and with what collaborators.

    Built by the executor for every stage attempt and handed down explicitly to
    stage logic and from there to the external gateways.
    """

    run_id: UUID
    stage: Stage
    knowledge_base: str
    attempt: int
    options: RunOptions
    services: StageServices

    @property
    def prefix(self) -> str:
        return f"[run {self.run_id}][{self.stage}]"

    @property
    def config(self) -> PipelineConfig:
        return self.services.config

    def now(self) -> datetime:
        return self.services.clock()

    def unit_of_work(self) -> PipelineUnitOfWork:
        return self.services.unit_of_work_factory()

    def graph_store(self) -> GraphStore:
        return self.services.graph_store_factory(self.knowledge_base)

    def extraction_context(self, item: SourceItem) -> ExtractionContext:
        return ExtractionContext(
            run_id=self.run_id,
            item_id=item.id,
            knowledge_base=self.knowledge_base,
            media_type=item.media_type,
            uri=item.uri,
        )
