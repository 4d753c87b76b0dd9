from __future__ import annotations

from graphwright.domain.model import GraphEdge, GraphNode, NodeRef, Pool
from graphwright.domain.pipeline import compute_literacy
from graphwright.domain.verbs import DEFAULT_GLOSSARY

IDEA = NodeRef(Pool.IDEA, "idea")
MANIFEST = NodeRef(Pool.MANIFEST, "garden")
RIGHTS = NodeRef(Pool.RIGHTS, "r1")


def _content(ref: NodeRef, **properties: object) -> GraphNode:
    base: dict[str, object] = {
        "canonical_name": ref.key,
        "rights_id": "r1",
        "valid_time_start": "2025-03-01T12:00:00+00:00",
    }
    return GraphNode(ref, {**base, **properties})


def test_fully_grounded_pair_scores_on_coverage_only() -> None:
    nodes = [_content(IDEA), _content(MANIFEST), GraphNode(RIGHTS, {"canonical_name": "r"})]
    edges = [
        GraphEdge(IDEA, "embodies", MANIFEST),
        GraphEdge(MANIFEST, "is_embodiment_of", IDEA),
        GraphEdge(IDEA, "has_rights", RIGHTS),
    ]

    report = compute_literacy(nodes, edges, DEFAULT_GLOSSARY)

    assert report.connectivity == 1.0
    assert report.rights_coverage == 1.0
    assert report.temporal_coverage == 1.0
    assert report.pool_coverage == 2 / 7
    assert report.score == 78.6
    assert len(report.gaps) == 5
    assert report.as_metrics()["literacy_score"] == 78.6


def test_rights_links_do_not_count_as_connectivity() -> None:
    nodes = [_content(IDEA, rights_id=None, valid_time_start=None)]
    edges = [GraphEdge(IDEA, "has_rights", RIGHTS)]

    report = compute_literacy(nodes, edges, DEFAULT_GLOSSARY)

    assert report.connectivity == 0.0
    assert report.rights_coverage == 0.0
    assert report.temporal_coverage == 0.0
    assert "1 content node(s) without structural relationships" in report.gaps
    assert "1 content node(s) without rights reference" in report.gaps
    assert "1 content node(s) without temporal grounding" in report.gaps


def test_empty_slice_scores_zero() -> None:
    report = compute_literacy([], [], DEFAULT_GLOSSARY)

    assert report.score == 0.0
    assert len(report.gaps) == 7
