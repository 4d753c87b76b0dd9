"""Inputs, shared state and results of a graph assembly pass."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from graphwright.domain.verbs import DEFAULT_GLOSSARY, VerbGlossary

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.domain.model import (
        LexiconTerm,
        NodeMerge,
        NodeRef,
        PoolEntity,
        PoolRelation,
        RightsRecord,
    )
    from graphwright.domain.ports.graph import GraphStore

    from .integrity import IntegrityReport


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class AssemblyInput:
    """Everything one run extracted, as loaded from the pipeline repositories."""

    run_id: UUID
    entities: Sequence[PoolEntity] = ()
    relations: Sequence[PoolRelation] = ()
    rights: Sequence[RightsRecord] = ()
    terms: Sequence[LexiconTerm] = ()


@dataclass(slots=True)
class AssemblyStats:
    constraints_created: int = 0
    nodes_created: int = 0
    nodes_updated: int = 0
    entities_excluded: int = 0
    edges_created: int = 0
    reverse_edges: int = 0
    rights_edges: int = 0
    lexicon_edges: int = 0
    relations_rejected: int = 0
    relations_missing_endpoint: int = 0
    low_confidence_mappings: int = 0
    duplicates_resolved: int = 0
    edges_repointed: int = 0
    orphans_removed: int = 0
    by_verb: Counter[str] = field(default_factory=Counter)

    def as_metrics(self) -> dict[str, float]:
        return {
            "constraints_created": self.constraints_created,
            "nodes_created": self.nodes_created,
            "nodes_updated": self.nodes_updated,
            "entities_excluded": self.entities_excluded,
            "edges_created": self.edges_created,
            "reverse_edges": self.reverse_edges,
            "rights_edges": self.rights_edges,
            "lexicon_edges": self.lexicon_edges,
            "relations_rejected": self.relations_rejected,
            "relations_missing_endpoint": self.relations_missing_endpoint,
            "low_confidence_mappings": self.low_confidence_mappings,
            "duplicates_resolved": self.duplicates_resolved,
            "edges_repointed": self.edges_repointed,
            "orphans_removed": self.orphans_removed,
        }


@dataclass(slots=True)
class AssemblyContext:
    """Mutable state shared by the assembly phases of a single pass.

    The graph store is injected here rather than looked up globally, so tests and
    callers can point assembly at any isolated graph.
    """

    run_id: UUID
    store: GraphStore
    glossary: VerbGlossary = DEFAULT_GLOSSARY
    clock: Callable[[], datetime] = _utcnow
    min_verb_confidence: float = 0.0
    stats: AssemblyStats = field(default_factory=AssemblyStats)
    node_refs: dict[UUID, NodeRef] = field(default_factory=dict)
    merges: list[NodeMerge] = field(default_factory=list)
    removed_orphans: list[dict[str, object]] = field(default_factory=list)
    integrity: IntegrityReport | None = None

    def now(self) -> datetime:
        return self.clock()

    def redirect(self, merged: NodeRef, survivor: NodeRef) -> None:
        """Point every entity that resolved to ``merged`` at ``survivor`` instead."""

        for entity_id, ref in self.node_refs.items():
            if ref == merged:
                self.node_refs[entity_id] = survivor


@dataclass(frozen=True, slots=True)
class AssemblyResult:
    run_id: UUID
    stats: AssemblyStats
    merges: tuple[NodeMerge, ...]
    removed_orphans: tuple[dict[str, object], ...]
    integrity: IntegrityReport | None

    @property
    def ok(self) -> bool:
        return self.integrity is None or self.integrity.ok
