"""Terminal acceptance gates evaluated once per completed run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graphwright.domain.graph_assembly import verify_graph
from graphwright.domain.model import Stage

from .stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from graphwright.config.pipeline import PipelineConfig
    from graphwright.domain.model import PipelineRun, SourceItem
    from graphwright.domain.ports.graph import GraphStore
    from graphwright.domain.verbs import VerbGlossary

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GateResult:
    name: str
    passed: bool
    summary: str

    def to_payload(self) -> dict[str, object]:
        return {"name": self.name, "passed": self.passed, "summary": self.summary}


@dataclass(frozen=True, slots=True)
class AcceptanceReport:
    run_id: str
    checks: tuple[GateResult, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return all(check.passed for check in self.checks)

    @property
    def failed_checks(self) -> list[str]:
        return [check.name for check in self.checks if not check.passed]

    @property
    def summary(self) -> str:
        verdict = "PASS" if self.passed else "FAIL"
        passed = sum(1 for check in self.checks if check.passed)
        return f"Acceptance Gates: {verdict} ({passed}/{len(self.checks)} checks passed)"

    def to_payload(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "passed": self.passed,
            "summary": self.summary,
            "checks": [check.to_payload() for check in self.checks],
        }


def _stage_metric(run: PipelineRun, stage: Stage, name: str) -> float:
    return float(run.metrics.get(stage.value, {}).get(name, 0))


@dataclass(slots=True)
class AcceptanceGateRunner:
    """Evaluate the named checks over a completed run and its graph slice."""

    graph_store_factory: Callable[[str], GraphStore]
    glossary: VerbGlossary
    config: PipelineConfig

    def evaluate(self, run: PipelineRun, items: Sequence[SourceItem]) -> AcceptanceReport:
        checks = (
            self._items_present(items),
            self._rights_pointer_present(items),
            self._stage_produced(run, Stage.LEXICON, "terms_extracted", "lexicon_extracted"),
            self._stage_produced(run, Stage.POOLS, "entities_extracted", "pools_extracted"),
            self._graph_assembled(run),
            self._graph_integrity(run),
            self._embeddings_present(run),
            self._literacy_threshold(run),
        )
        report = AcceptanceReport(run_id=str(run.id), checks=checks)
        log.info("[run %s] %s", run.id, report.summary)
        for check in checks:
            status = "ok" if check.passed else "FAILED"
            log.info("[run %s]   %s %s: %s", run.id, check.name, status, check.summary)
        return report

    @staticmethod
    def _items_present(items: Sequence[SourceItem]) -> GateResult:
        return GateResult("items_present", bool(items), f"{len(items)} source item(s) ingested")

    def _rights_pointer_present(self, items: Sequence[SourceItem]) -> GateResult:
        with_rights = sum(1 for item in items if item.rights_id is not None)
        ratio = with_rights / len(items) if items else 0.0
        threshold = self.config.rights_coverage_threshold
        return GateResult(
            "rights_pointer_present",
            ratio >= threshold,
            f"{with_rights}/{len(items)} items carry a rights reference "
            f"({ratio:.0%}, need {threshold:.0%})",
        )

    @staticmethod
    def _stage_produced(run: PipelineRun, stage: Stage, metric: str, name: str) -> GateResult:
        value = _stage_metric(run, stage, metric)
        return GateResult(name, value > 0, f"{int(value)} {metric.replace('_', ' ')}")

    @staticmethod
    def _graph_assembled(run: PipelineRun) -> GateResult:
        nodes = _stage_metric(run, Stage.GRAPH, "nodes_created")
        updated = _stage_metric(run, Stage.GRAPH, "nodes_updated")
        edges = _stage_metric(run, Stage.GRAPH, "edges_created")
        return GateResult(
            "graph_assembled",
            nodes + updated > 0,
            f"{int(nodes)} node(s) created, {int(updated)} updated, {int(edges)} edge(s) created",
        )

    def _graph_integrity(self, run: PipelineRun) -> GateResult:
        store = self.graph_store_factory(run.knowledge_base)
        report = verify_graph(store, self.glossary, run_id=run.id)
        if report.ok:
            return GateResult(
                "graph_integrity",
                True,
                f"no violations across {report.total_nodes} node(s) "
                f"and {report.total_edges} edge(s)",
            )
        return GateResult(
            "graph_integrity",
            False,
            f"{report.error_count} violation(s): {report.by_check()}",
        )

    @staticmethod
    def _embeddings_present(run: PipelineRun) -> GateResult:
        if _stage_metric(run, Stage.EMBEDDINGS, "skipped"):
            return GateResult("embeddings_present", True, "embeddings skipped (no provider)")
        embedded = _stage_metric(run, Stage.EMBEDDINGS, "nodes_embedded")
        processed = _stage_metric(run, Stage.EMBEDDINGS, ITEMS_PROCESSED)
        return GateResult(
            "embeddings_present",
            embedded > 0,
            f"{int(embedded)} embedding(s) for {int(processed)} node(s)",
        )

    def _literacy_threshold(self, run: PipelineRun) -> GateResult:
        score = _stage_metric(run, Stage.LITERACY, "literacy_score")
        threshold = self.config.literacy_threshold
        return GateResult(
            "literacy_threshold",
            score >= threshold,
            f"literacy score {score:.1f} (threshold {threshold})",
        )
