"""Load rights records, lexicon terms and pool entities as graph nodes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graphwright.domain.errors import MissingRightsError
from graphwright.domain.model import NodeRef, Pool

from .properties import accumulate, entity_properties, rights_properties, term_properties

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from graphwright.domain.model import GraphNode

    from .context import AssemblyContext, AssemblyInput

log = logging.getLogger(__name__)

_ACCUMULATING_ONLY = ("run_ids", "source_item_ids", "entity_ids")


@dataclass(slots=True)
class NodeLoader:
    """Upsert every entity by identity; entities without rights never enter the graph."""

    name: str = "nodes"

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        for record in data.rights:
            self._upsert(
                NodeRef(Pool.RIGHTS, str(record.id)),
                rights_properties(record, run_id=data.run_id),
                context=context,
            )
        for term in data.terms:
            self._upsert(
                NodeRef(Pool.LEXICON, term.canonical),
                term_properties(term, run_id=data.run_id),
                context=context,
            )

        known_rights = {record.id for record in data.rights}
        for entity in data.entities:
            try:
                properties = entity_properties(
                    entity, run_id=data.run_id, known_rights=known_rights
                )
            except MissingRightsError as exc:
                context.stats.entities_excluded += 1
                log.warning("[run %s] excluding entity: %s", data.run_id, exc)
                continue

            identity = NodeRef(entity.pool, str(entity.id))
            ref = context.store.resolve(identity)
            if ref != identity or _already_loaded(entity.id, context.store.get_node(ref)):
                # scalars were settled when the entity first loaded or was merged
                properties = {name: properties[name] for name in _ACCUMULATING_ONLY}
            self._upsert(ref, properties, context=context)
            context.node_refs[entity.id] = ref

    @staticmethod
    def _upsert(
        ref: NodeRef, properties: Mapping[str, object], *, context: AssemblyContext
    ) -> None:
        existing = context.store.get_node(ref)
        merged = accumulate(existing.properties if existing else None, properties)
        _, created = context.store.upsert_node(ref.pool, ref.key, merged)
        if created:
            context.stats.nodes_created += 1
        elif existing is not None and existing.properties != merged:
            context.stats.nodes_updated += 1


def _already_loaded(entity_id: UUID, node: GraphNode | None) -> bool:
    if node is None:
        return False
    loaded = node.properties.get("entity_ids")
    return isinstance(loaded, list) and str(entity_id) in loaded
