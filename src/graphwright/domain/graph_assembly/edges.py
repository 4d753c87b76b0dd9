"""Resolve extracted relations against the glossary and write them as edges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graphwright.domain.errors import VerbError
from graphwright.domain.model import NodeRef, Pool, normalize_label
from graphwright.domain.verbs import RIGHTS_VERB

if TYPE_CHECKING:
    from collections.abc import Mapping

    from graphwright.domain.model import PoolRelation
    from graphwright.domain.ports.graph import GraphStore

    from .context import AssemblyContext, AssemblyInput

log = logging.getLogger(__name__)

LEXICON_VERB = "normalizes"


def ordered_pair(source: NodeRef, target: NodeRef) -> tuple[NodeRef, NodeRef]:
    """Symmetric edges are stored once, with endpoints in canonical order."""

    return (source, target) if source <= target else (target, source)


def new_edge_properties(
    store: GraphStore,
    source: NodeRef,
    verb: str,
    target: NodeRef,
    properties: Mapping[str, object],
) -> dict[str, object]:
    """Properties an existing edge does not carry yet; the first writer keeps its values."""

    for edge in store.edges(node=source, verb=verb):
        if edge.source == source and edge.target == target:
            return {
                name: value
                for name, value in properties.items()
                if name not in edge.properties
            }
    return dict(properties)


@dataclass(slots=True)
class EdgeLoader:
    """Write forward edges, generated reverse edges, rights links and lexicon links."""

    name: str = "edges"

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        for relation in data.relations:
            self._load_relation(relation, context=context)
        self._link_rights(context=context)
        self._link_lexicon(data, context=context)
        log.info(
            "[run %s] edges: created=%s reverse=%s rights=%s rejected=%s by_verb=%s",
            data.run_id,
            context.stats.edges_created,
            context.stats.reverse_edges,
            context.stats.rights_edges,
            context.stats.relations_rejected,
            dict(context.stats.by_verb),
        )

    def _load_relation(self, relation: PoolRelation, *, context: AssemblyContext) -> None:
        stats = context.stats
        source = context.node_refs.get(relation.source_id)
        target = context.node_refs.get(relation.target_id)
        if source is None or target is None:
            stats.relations_missing_endpoint += 1
            log.debug("Skipping relation %s: endpoint not in graph", relation.id)
            return
        source = context.store.resolve(source)
        target = context.store.resolve(target)

        resolution = context.glossary.resolve(relation.raw_verb, source.pool, target.pool)
        if resolution.confidence < context.min_verb_confidence:
            stats.relations_rejected += 1
            stats.low_confidence_mappings += 1
            log.warning(
                "Rejecting relation %s: '%s' resolved to '%s' with confidence %.2f",
                relation.id,
                relation.raw_verb,
                resolution.verb,
                resolution.confidence,
            )
            return
        if resolution.warning is not None:
            stats.low_confidence_mappings += 1
        if resolution.inverted:
            source, target = target, source

        try:
            context.glossary.validate(resolution.verb, source, target)
        except VerbError as exc:
            stats.relations_rejected += 1
            log.warning("Rejecting relation %s: %s", relation.id, exc)
            return

        if resolution.symmetric:
            source, target = ordered_pair(source, target)
        properties: dict[str, object] = {
            "raw_verb": relation.raw_verb,
            "confidence": min(resolution.confidence, relation.confidence),
            "mapping_confidence": resolution.confidence,
            "evidence": relation.evidence,
            "run_id": str(relation.run_id),
            "relation_id": str(relation.id),
        }
        if resolution.warning is not None:
            properties["mapping_warning"] = resolution.warning
        if self._write(source, resolution.verb, target, properties, context=context):
            stats.edges_created += 1
            stats.by_verb[resolution.verb] += 1

        if resolution.reverse_verb is not None and not resolution.symmetric:
            reverse_properties = {**properties, "generated_reverse_of": resolution.verb}
            if self._write(
                target, resolution.reverse_verb, source, reverse_properties, context=context
            ):
                stats.reverse_edges += 1

    def _link_rights(self, *, context: AssemblyContext) -> None:
        for ref in set(context.node_refs.values()):
            node = context.store.get_node(context.store.resolve(ref))
            if node is None:
                continue
            rights_id = node.properties.get("rights_id")
            if not isinstance(rights_id, str):
                continue
            rights_ref = NodeRef(Pool.RIGHTS, rights_id)
            if context.store.get_node(rights_ref) is None:
                continue
            if self._write(node.ref, RIGHTS_VERB, rights_ref, {}, context=context):
                context.stats.rights_edges += 1

    def _link_lexicon(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        entry = context.glossary.entry(LEXICON_VERB)
        forms: dict[str, NodeRef] = {}
        for term in data.terms:
            term_ref = NodeRef(Pool.LEXICON, term.canonical)
            forms[normalize_label(term.canonical)] = term_ref
            for surface in term.surface_forms:
                forms.setdefault(normalize_label(surface), term_ref)
        if not forms:
            return
        for entity in data.entities:
            ref = context.node_refs.get(entity.id)
            term_ref = forms.get(entity.canonical_key)
            if ref is None or term_ref is None:
                continue
            ref = context.store.resolve(ref)
            if self._write(term_ref, entry.verb, ref, {}, context=context):
                context.stats.lexicon_edges += 1
            if entry.reverse_verb is not None:
                self._write(ref, entry.reverse_verb, term_ref, {}, context=context)

    @staticmethod
    def _write(
        source: NodeRef,
        verb: str,
        target: NodeRef,
        properties: Mapping[str, object],
        *,
        context: AssemblyContext,
    ) -> bool:
        properties = new_edge_properties(context.store, source, verb, target, properties)
        _, created = context.store.upsert_edge(source, verb, target, properties)
        return created
