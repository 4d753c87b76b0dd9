"""Fold nodes that denote the same real-world entity into one survivor."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graphwright.domain.model import (
    CONTENT_POOLS,
    MergeReason,
    NodeMerge,
    Pool,
    normalize_label,
)

from .edges import new_edge_properties, ordered_pair
from .properties import merge_node_properties

if TYPE_CHECKING:
    from graphwright.domain.model import GraphNode

    from .context import AssemblyContext, AssemblyInput

log = logging.getLogger(__name__)

type DedupKey = tuple[Pool, str, str | None]


def dedup_key(node: GraphNode) -> DedupKey | None:
    """Identity key within a pool; manifests also need a matching ``type``."""

    label = normalize_label(node.canonical_name)
    if not label:
        return None
    if node.pool is Pool.MANIFEST:
        manifest_type = node.properties.get("type")
        return (node.pool, label, str(manifest_type) if manifest_type is not None else None)
    return (node.pool, label, None)


@dataclass(slots=True)
class Deduplicator:
    name: str = "deduplicate"

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        groups: dict[DedupKey, list[GraphNode]] = defaultdict(list)
        for node in context.store.nodes():
            if node.pool not in CONTENT_POOLS:
                continue
            key = dedup_key(node)
            if key is not None:
                groups[key].append(node)

        for key, nodes in groups.items():
            if len(nodes) < 2:
                continue
            survivor, *duplicates = sorted(nodes, key=lambda item: (item.created_at, item.ref.key))
            merged_properties = merge_node_properties(nodes)
            context.store.upsert_node(survivor.pool, survivor.ref.key, merged_properties)
            for duplicate in duplicates:
                self._fold(duplicate, survivor, label=key[1], data=data, context=context)

    def _fold(
        self,
        duplicate: GraphNode,
        survivor: GraphNode,
        *,
        label: str,
        data: AssemblyInput,
        context: AssemblyContext,
    ) -> None:
        store = context.store
        repointed = 0
        self_loops = 0
        for edge in store.edges(node=duplicate.ref):
            source = survivor.ref if edge.source == duplicate.ref else edge.source
            target = survivor.ref if edge.target == duplicate.ref else edge.target
            if source == target:
                self_loops += 1
                continue
            entry = context.glossary.forward_of(edge.verb)
            if entry is None and edge.verb in context.glossary:
                entry = context.glossary.entry(edge.verb)
            if entry is not None and entry.symmetric:
                source, target = ordered_pair(source, target)
            properties = new_edge_properties(store, source, edge.verb, target, edge.properties)
            store.upsert_edge(source, edge.verb, target, properties)
            repointed += 1

        store.delete_node(duplicate.ref)
        store.record_alias(duplicate.ref, survivor.ref)
        context.redirect(duplicate.ref, survivor.ref)

        merge = NodeMerge(
            pool=survivor.pool,
            kept_key=survivor.ref.key,
            removed_key=duplicate.ref.key,
            reason=MergeReason.SAME_CANONICAL_LABEL,
            run_id=data.run_id,
            details={
                "label": label,
                "edges_repointed": repointed,
                "self_loops_dropped": self_loops,
            },
            created_at=context.now(),
        )
        store.record_merge(merge)
        context.merges.append(merge)
        context.stats.duplicates_resolved += 1
        context.stats.edges_repointed += repointed
        log.info(
            "Merged %s into %s (%s '%s', %s edges re-pointed)",
            duplicate.ref,
            survivor.ref,
            survivor.pool.value,
            label,
            repointed,
        )
