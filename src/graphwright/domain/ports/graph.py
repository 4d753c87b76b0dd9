"""Graph store port: the property-graph primitives graph assembly needs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from graphwright.domain.model import (
        GraphEdge,
        GraphNode,
        NodeMerge,
        NodeRef,
        Pool,
        SchemaConstraint,
    )


@runtime_checkable
class GraphStore(Protocol):
    """A property graph scoped to one knowledge base.

    Writes are upserts keyed by node reference or by (source, verb, target), so
    repeated writes converge instead of compounding. Node upserts merge the given
    properties into the stored ones (later wins) and enforce declared existence
    constraints.
    """

    def declare_constraint(self, constraint: SchemaConstraint) -> bool:
        """Ensure ``constraint`` exists; returns ``True`` if it was newly created."""
        ...

    def constraints(self) -> tuple[SchemaConstraint, ...]: ...

    def upsert_node(
        self, pool: Pool, key: str, properties: Mapping[str, object]
    ) -> tuple[GraphNode, bool]: ...

    def get_node(self, ref: NodeRef) -> GraphNode | None: ...

    def nodes(self, pool: Pool | None = None) -> list[GraphNode]: ...

    def delete_node(self, ref: NodeRef) -> bool:
        """Remove the node together with every edge touching it."""
        ...

    def upsert_edge(
        self,
        source: NodeRef,
        verb: str,
        target: NodeRef,
        properties: Mapping[str, object] | None = None,
    ) -> tuple[GraphEdge, bool]: ...

    def edges(self, *, node: NodeRef | None = None, verb: str | None = None) -> list[GraphEdge]: ...

    def delete_edge(self, source: NodeRef, verb: str, target: NodeRef) -> bool: ...

    def record_alias(self, merged: NodeRef, survivor: NodeRef) -> None: ...

    def resolve(self, ref: NodeRef) -> NodeRef:
        """Follow merge aliases to the surviving node reference."""
        ...

    def record_merge(self, merge: NodeMerge) -> None: ...

    def merges(self) -> list[NodeMerge]: ...
