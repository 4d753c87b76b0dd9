"""Embeddings and literacy: post-assembly enrichment of the run's graph slice."""

from __future__ import annotations

import logging
from itertools import batched
from typing import TYPE_CHECKING

from graphwright.domain.errors import InvalidDataError
from graphwright.domain.graph_assembly import run_slice
from graphwright.domain.model import CONTENT_POOLS, Stage

from ..literacy import compute_literacy
from ..stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from graphwright.domain.model import GraphNode

    from ..context import RunContext

log = logging.getLogger(__name__)

EMBEDDING_BATCH_SIZE = 64


def _content_nodes(context: RunContext) -> list[GraphNode]:
    nodes, _ = run_slice(context.graph_store(), context.run_id)
    return [node for node in nodes if node.pool in CONTENT_POOLS]


class EmbeddingsHandler:
    """Attach vectors to content nodes; skipped when no provider is configured."""

    stage = Stage.EMBEDDINGS
    required_metrics = (ITEMS_PROCESSED,)

    def expected_items(self, context: RunContext) -> int:
        if context.services.embeddings is None:
            return 0
        return len(_content_nodes(context))

    def run(self, context: RunContext) -> dict[str, float]:
        gateway = context.services.embeddings
        if gateway is None:
            log.info("%s no embedding provider configured, skipping", context.prefix)
            return {ITEMS_PROCESSED: 0, "skipped": 1}

        store = context.graph_store()
        nodes = _content_nodes(context)
        pending = [node for node in nodes if "embedding" not in node.properties]
        created = 0
        for batch in batched(pending, EMBEDDING_BATCH_SIZE):
            texts = [str(node.properties.get("repr_text") or node.canonical_name) for node in batch]
            vectors = gateway.embed(texts)
            if len(vectors) != len(batch):
                raise InvalidDataError(
                    f"Embedding provider returned {len(vectors)} vectors for {len(batch)} texts"
                )
            for node, vector in zip(batch, vectors, strict=True):
                store.upsert_node(node.pool, node.ref.key, {"embedding": list(vector)})
                created += 1
        return {
            ITEMS_PROCESSED: len(nodes),
            "embeddings_created": created,
            "nodes_embedded": len(nodes) - len(pending) + created,
            "skipped": 0,
        }


class LiteracyHandler:
    stage = Stage.LITERACY
    required_metrics = (ITEMS_PROCESSED, "literacy_score")

    def expected_items(self, context: RunContext) -> int:
        return 0

    def run(self, context: RunContext) -> dict[str, float]:
        nodes, edges = run_slice(context.graph_store(), context.run_id)
        report = compute_literacy(nodes, edges, context.services.glossary)
        for gap in report.gaps:
            log.info("%s gap: %s", context.prefix, gap)
        return {ITEMS_PROCESSED: len(nodes), **report.as_metrics()}
