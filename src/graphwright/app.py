"""Application wiring: build the pipeline runtime on top of the configured adapters."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from graphwright.adapters.deliverables import JsonFileDeliverableSink
from graphwright.adapters.extraction import HttpExtractionGateway
from graphwright.adapters.rights_inference import HttpRightsInferenceGateway
from graphwright.adapters.sqlalchemy import (
    SqlAlchemyGraphStore,
    SqlAlchemyJobQueue,
    SqlAlchemyPipelineUnitOfWork,
    configured_engine,
    startup,
)
from graphwright.config import (
    ExtractionServiceConfig,
    MissingConfigurationError,
    PipelineConfig,
    RightsServiceConfig,
)
from graphwright.domain.model import SourceInput
from graphwright.domain.pipeline import (
    AcceptanceGateRunner,
    Orchestrator,
    StageExecutor,
    StageServices,
    Watchdog,
    Worker,
    build_default_handlers,
)
from graphwright.domain.pipeline.context import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from sqlalchemy.engine import Engine

    from graphwright.domain.ports.gateways import (
        DeliverableSink,
        EmbeddingGateway,
        ExtractionGateway,
        RightsInferenceGateway,
    )

log = getLogger(__name__)


@dataclass(slots=True)
class Runtime:
    """Everything a CLI command needs, built once per process."""

    services: StageServices
    queue: SqlAlchemyJobQueue
    orchestrator: Orchestrator
    executor: StageExecutor
    acceptance: AcceptanceGateRunner

    def worker(self, worker_id: str | None = None) -> Worker:
        if worker_id is None:
            return Worker(self.queue, self.executor, clock=self.services.clock)
        return Worker(self.queue, self.executor, worker_id=worker_id, clock=self.services.clock)

    def watchdog(self) -> Watchdog:
        return Watchdog(
            orchestrator=self.orchestrator,
            acceptance=self.acceptance,
            config=self.services.config,
            clock=self.services.clock,
        )


def _ensure_engine(engine: Engine | None) -> Engine:
    if engine is not None:
        return startup(engine=engine, force=True)
    current = configured_engine()
    return current if current is not None else startup()


def _default_extraction() -> ExtractionGateway | None:
    try:
        return HttpExtractionGateway(config=ExtractionServiceConfig.from_environment())
    except MissingConfigurationError:
        log.warning("No extraction service configured; lexicon and pools stages will fail")
        return None


def _default_rights_inference() -> RightsInferenceGateway | None:
    config = RightsServiceConfig.from_environment()
    return HttpRightsInferenceGateway(config=config) if config is not None else None


def build_runtime(
    *,
    engine: Engine | None = None,
    config: PipelineConfig | None = None,
    extraction: ExtractionGateway | None = None,
    rights_inference: RightsInferenceGateway | None = None,
    embeddings: EmbeddingGateway | None = None,
    deliverables: DeliverableSink | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Runtime:
    """Wire adapters, stage handlers and supervisors around one database engine."""

    resolved_engine = _ensure_engine(engine)
    pipeline_config = config or PipelineConfig.from_environment()

    def graph_store_factory(knowledge_base: str) -> SqlAlchemyGraphStore:
        return SqlAlchemyGraphStore(resolved_engine, graph=knowledge_base, clock=clock)

    services = StageServices(
        unit_of_work_factory=SqlAlchemyPipelineUnitOfWork,
        graph_store_factory=graph_store_factory,
        extraction=extraction or _default_extraction(),
        rights_inference=rights_inference or _default_rights_inference(),
        embeddings=embeddings,
        deliverables=deliverables or JsonFileDeliverableSink(),
        config=pipeline_config,
        clock=clock,
    )
    queue = SqlAlchemyJobQueue(resolved_engine, clock=services.clock)
    return Runtime(
        services=services,
        queue=queue,
        orchestrator=Orchestrator(SqlAlchemyPipelineUnitOfWork, queue, clock=services.clock),
        executor=StageExecutor(build_default_handlers(), services, queue),
        acceptance=AcceptanceGateRunner(
            graph_store_factory, services.glossary, pipeline_config
        ),
    )


def read_sources(paths: Iterable[Path]) -> list[SourceInput]:
    """Read files (directories recursively) into source inputs for a new run."""

    sources: list[SourceInput] = []
    for path in paths:
        files = sorted(p for p in path.rglob("*") if p.is_file()) if path.is_dir() else [path]
        for file_path in files:
            content = file_path.read_text(encoding="utf-8", errors="replace")
            stat = file_path.stat()
            sources.append(
                SourceInput(
                    uri=file_path.as_posix(),
                    content=content,
                    metadata={"filename": file_path.name, "size_bytes": stat.st_size},
                )
            )
    log.info("Read %s source file(s)", len(sources))
    return sources
