"""Remove content nodes that no structural relationship justifies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graphwright.domain.model import ISOLATED_POOLS, Pool

if TYPE_CHECKING:
    from .context import AssemblyContext, AssemblyInput

log = logging.getLogger(__name__)


@dataclass(slots=True)
class OrphanRemover:
    """Detach-delete nodes without structural edges.

    Rights and lexicon links do not count as structure. Nodes of allow-listed
    pools are always kept, as are nodes younger than the grace window, whose edges
    may simply not have been written yet.
    """

    name: str = "orphans"
    allow_isolated: frozenset[Pool] = field(default_factory=lambda: ISOLATED_POOLS)
    grace_seconds: float = 3600.0

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        now = context.now()
        store = context.store
        for node in store.nodes():
            if node.pool in self.allow_isolated:
                continue
            if (now - node.created_at).total_seconds() < self.grace_seconds:
                continue
            structural = [
                edge
                for edge in store.edges(node=node.ref)
                if context.glossary.is_structural(edge.verb)
            ]
            if structural:
                continue
            store.delete_node(node.ref)
            detail: dict[str, object] = {
                "pool": node.pool.value,
                "key": node.ref.key,
                "canonical_name": node.canonical_name,
                "reason": "no structural relationships",
            }
            context.removed_orphans.append(detail)
            context.stats.orphans_removed += 1
            log.info(
                "[run %s] removed orphan %s ('%s')", data.run_id, node.ref, node.canonical_name
            )
