"""Deliverables: export the run's graph slice and summary through the sink."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphwright.domain.errors import RunNotFoundError
from graphwright.domain.graph_assembly import run_slice
from graphwright.domain.model import Stage

from ..stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from graphwright.domain.model import GraphEdge, GraphNode, PipelineRun

    from ..context import RunContext

log = logging.getLogger(__name__)


def _node_payload(node: GraphNode) -> dict[str, object]:
    properties = {name: value for name, value in node.properties.items() if name != "embedding"}
    return {"pool": node.pool.value, "key": node.ref.key, "properties": properties}


def _edge_payload(edge: GraphEdge) -> dict[str, object]:
    return {
        "source": str(edge.source),
        "verb": edge.verb,
        "target": str(edge.target),
        "properties": dict(edge.properties),
    }


def graph_export(
    run: PipelineRun, nodes: list[GraphNode], edges: list[GraphEdge]
) -> dict[str, object]:
    return {
        "run_id": str(run.id),
        "knowledge_base": run.knowledge_base,
        "nodes": [_node_payload(node) for node in sorted(nodes, key=lambda n: n.ref)],
        "edges": [
            _edge_payload(edge)
            for edge in sorted(edges, key=lambda e: (e.source, e.verb, e.target))
        ],
    }


def run_summary(run: PipelineRun) -> dict[str, object]:
    return {
        "run_id": str(run.id),
        "knowledge_base": run.knowledge_base,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "retry_count": run.retry_count,
        "resume_count": run.resume_count,
        "metrics": dict(run.metrics),
    }


class DeliverablesHandler:
    stage = Stage.DELIVERABLES
    required_metrics = (ITEMS_PROCESSED, "deliverables_published")

    def expected_items(self, context: RunContext) -> int:
        return 0

    def run(self, context: RunContext) -> dict[str, float]:
        sink = context.services.deliverables
        if sink is None:
            log.info("%s no deliverable sink configured, skipping", context.prefix)
            return {ITEMS_PROCESSED: 0, "deliverables_published": 0, "skipped": 1}

        with context.unit_of_work() as uow:
            run = uow.repositories.runs.get(context.run_id)
            if run is None:
                raise RunNotFoundError(f"Pipeline run {context.run_id} does not exist")
        nodes, edges = run_slice(context.graph_store(), context.run_id)

        locations = [
            sink.publish(context.run_id, "graph", graph_export(run, nodes, edges)),
            sink.publish(context.run_id, "summary", run_summary(run)),
        ]
        for location in locations:
            log.info("%s published %s", context.prefix, location)
        return {
            ITEMS_PROCESSED: len(nodes),
            "deliverables_published": len(locations),
            "nodes_exported": len(nodes),
            "edges_exported": len(edges),
        }
