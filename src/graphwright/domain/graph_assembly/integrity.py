"""Whole-graph integrity checks that report every violation at once."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graphwright.domain.model import CONTENT_POOLS, TEMPORAL_FIELDS, Pool
from graphwright.domain.verbs import RIGHTS_VERB

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.domain.model import GraphEdge, GraphNode
    from graphwright.domain.ports.graph import GraphStore
    from graphwright.domain.verbs import VerbGlossary

    from .context import AssemblyContext, AssemblyInput

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IntegrityViolation:
    check: str
    subject: str
    message: str


@dataclass(slots=True)
class IntegrityReport:
    run_id: UUID
    violations: list[IntegrityViolation] = field(default_factory=list)
    nodes_by_pool: Counter[str] = field(default_factory=Counter)
    edges_by_verb: Counter[str] = field(default_factory=Counter)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def error_count(self) -> int:
        return len(self.violations)

    @property
    def total_nodes(self) -> int:
        return sum(self.nodes_by_pool.values())

    @property
    def total_edges(self) -> int:
        return sum(self.edges_by_verb.values())

    def add(self, check: str, subject: object, message: str) -> None:
        self.violations.append(IntegrityViolation(check, str(subject), message))

    def by_check(self) -> dict[str, int]:
        return dict(Counter(violation.check for violation in self.violations))

    def to_payload(self) -> dict[str, object]:
        return {
            "run_id": str(self.run_id),
            "ok": self.ok,
            "error_count": self.error_count,
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "nodes_by_pool": dict(self.nodes_by_pool),
            "edges_by_verb": dict(self.edges_by_verb),
            "violations": [
                {"check": item.check, "subject": item.subject, "message": item.message}
                for item in self.violations
            ],
        }


def _has_temporal(node: GraphNode) -> bool:
    return any(node.properties.get(name) for name in TEMPORAL_FIELDS)


def run_slice(store: GraphStore, run_id: UUID) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Nodes the run touched and every edge incident to them."""

    run_marker = str(run_id)
    nodes = [node for node in store.nodes() if run_marker in node.run_ids()]
    edges: dict[tuple[object, ...], GraphEdge] = {}
    for node in nodes:
        for edge in store.edges(node=node.ref):
            edges[edge.key] = edge
    return nodes, list(edges.values())


def verify_graph(store: GraphStore, glossary: VerbGlossary, *, run_id: UUID) -> IntegrityReport:
    """Check the nodes this run touched and every edge incident to them."""

    report = IntegrityReport(run_id=run_id)
    nodes, edge_list = run_slice(store, run_id)
    edges: dict[tuple[object, ...], GraphEdge] = {edge.key: edge for edge in edge_list}

    for node in nodes:
        report.nodes_by_pool[node.pool.value] += 1
        if not node.canonical_name.strip():
            report.add("canonical_name", node.ref, "node has an empty canonical name")
        if not _has_temporal(node):
            report.add("temporal", node.ref, "node has no temporal field populated")
        if node.pool in CONTENT_POOLS:
            _check_rights(node, store, report)

    for edge in edges.values():
        report.edges_by_verb[edge.verb] += 1
        _check_edge(edge, edges, glossary, report)

    if not report.ok:
        log.warning(
            "[run %s] integrity check found %s violations: %s",
            run_id,
            report.error_count,
            report.by_check(),
        )
    return report


def _check_rights(node: GraphNode, store: GraphStore, report: IntegrityReport) -> None:
    rights_id = node.properties.get("rights_id")
    if not isinstance(rights_id, str) or not rights_id:
        report.add("rights", node.ref, "content node has no rights reference")
        return
    links = [
        edge
        for edge in store.edges(node=node.ref, verb=RIGHTS_VERB)
        if edge.source == node.ref and edge.target.pool is Pool.RIGHTS
    ]
    if not links:
        report.add("rights", node.ref, f"content node is not linked to rights {rights_id}")
        return
    if not any(store.get_node(edge.target) is not None for edge in links):
        report.add("rights", node.ref, f"rights record {rights_id} is missing from the graph")


def _check_edge(
    edge: GraphEdge,
    edges: dict[tuple[object, ...], GraphEdge],
    glossary: VerbGlossary,
    report: IntegrityReport,
) -> None:
    subject = f"{edge.source} -{edge.verb}-> {edge.target}"
    if not glossary.is_known(edge.verb):
        report.add("verb", subject, f"verb '{edge.verb}' is not in the glossary")
        return
    if edge.source == edge.target:
        report.add("self_loop", subject, "edge loops on a single node")
    if edge.verb not in glossary:
        # reverse form; its forward twin is checked from the other side
        return
    entry = glossary.entry(edge.verb)
    if not entry.accepts(edge.source.pool, edge.target.pool):
        report.add(
            "pool_constraint",
            subject,
            f"'{edge.verb}' does not allow {edge.source.pool.value} -> {edge.target.pool.value}",
        )
    if entry.reverse_verb is not None and not entry.symmetric:
        if (edge.target, entry.reverse_verb, edge.source) not in edges:
            report.add("reverse", subject, f"missing reverse edge '{entry.reverse_verb}'")


@dataclass(slots=True)
class IntegrityVerifier:
    name: str = "integrity"

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        context.integrity = verify_graph(context.store, context.glossary, run_id=data.run_id)
