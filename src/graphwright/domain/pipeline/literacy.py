"""Literacy scoring: how well a run's graph covers and connects its knowledge."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graphwright.domain.model import CONTENT_POOLS, CORE_POOLS, TEMPORAL_FIELDS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from graphwright.domain.model import GraphEdge, GraphNode, NodeRef
    from graphwright.domain.verbs import VerbGlossary

COVERAGE_WEIGHT = 0.3
CONNECTIVITY_WEIGHT = 0.3
RIGHTS_WEIGHT = 0.2
TEMPORAL_WEIGHT = 0.2


@dataclass(frozen=True, slots=True)
class LiteracyReport:
    pool_coverage: float
    connectivity: float
    rights_coverage: float
    temporal_coverage: float
    gaps: tuple[str, ...] = field(default_factory=tuple)

    @property
    def score(self) -> float:
        weighted = (
            self.pool_coverage * COVERAGE_WEIGHT
            + self.connectivity * CONNECTIVITY_WEIGHT
            + self.rights_coverage * RIGHTS_WEIGHT
            + self.temporal_coverage * TEMPORAL_WEIGHT
        )
        return round(weighted * 100, 1)

    def as_metrics(self) -> dict[str, float]:
        return {
            "pool_coverage": round(self.pool_coverage, 3),
            "connectivity": round(self.connectivity, 3),
            "rights_coverage": round(self.rights_coverage, 3),
            "temporal_coverage": round(self.temporal_coverage, 3),
            "gaps": len(self.gaps),
            "literacy_score": self.score,
        }


def _ratio(part: int, whole: int) -> float:
    return part / whole if whole else 0.0


def compute_literacy(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    glossary: VerbGlossary,
) -> LiteracyReport:
    """Score the content nodes of a graph slice.

    ``edges`` may include edges to nodes outside the slice; only structural verbs
    count towards connectivity.
    """

    content = [node for node in nodes if node.pool in CONTENT_POOLS]
    connected: set[NodeRef] = set()
    for edge in edges:
        if glossary.is_structural(edge.verb):
            connected.add(edge.source)
            connected.add(edge.target)

    populated = {node.pool for node in content}
    missing_pools = sorted(pool.value for pool in CORE_POOLS if pool not in populated)
    gaps = [f"no knowledge in pool {name}" for name in missing_pools]

    isolated = [node for node in content if node.ref not in connected]
    if isolated:
        gaps.append(f"{len(isolated)} content node(s) without structural relationships")
    without_rights = [node for node in content if not node.properties.get("rights_id")]
    if without_rights:
        gaps.append(f"{len(without_rights)} content node(s) without rights reference")
    without_time = [
        node for node in content if not any(node.properties.get(f) for f in TEMPORAL_FIELDS)
    ]
    if without_time:
        gaps.append(f"{len(without_time)} content node(s) without temporal grounding")

    return LiteracyReport(
        pool_coverage=_ratio(len(CORE_POOLS) - len(missing_pools), len(CORE_POOLS)),
        connectivity=_ratio(len(content) - len(isolated), len(content)),
        rights_coverage=_ratio(len(content) - len(without_rights), len(content)),
        temporal_coverage=_ratio(len(content) - len(without_time), len(content)),
        gaps=tuple(gaps),
    )
