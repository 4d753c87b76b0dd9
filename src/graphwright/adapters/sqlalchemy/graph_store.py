"""Property graph persisted in relational tables, one graph per knowledge base."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import and_, delete, insert, or_, select, update

from graphwright.adapters.sqlalchemy.mappings import (
    graph_alias_table,
    graph_constraint_table,
    graph_edge_table,
    graph_merge_table,
    graph_node_table,
)
from graphwright.domain.errors import ConstraintViolationError
from graphwright.domain.model import (
    ConstraintKind,
    GraphEdge,
    GraphNode,
    NodeMerge,
    NodeRef,
    Pool,
    SchemaConstraint,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from sqlalchemy import ColumnElement, Connection, Row
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

# Alias chains longer than this indicate a cycle.
MAX_ALIAS_HOPS = 64


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class SqlAlchemyGraphStore:
    """Graph store backed by the ``graph_*`` tables.

    Every public method runs in its own transaction, so callers must not hold an
    open session on the same connection while writing to the graph.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        graph: str = "default",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine
        self.graph = graph
        self._clock = clock
        self._constraints: tuple[SchemaConstraint, ...] | None = None

    # constraints --------------------------------------------------------------

    def declare_constraint(self, constraint: SchemaConstraint) -> bool:
        table = graph_constraint_table
        with self._engine.begin() as conn:
            exists = conn.execute(
                select(table.c.name)
                .where(table.c.graph == self.graph)
                .where(table.c.name == constraint.name)
            ).first()
            if exists is not None:
                return False
            conn.execute(
                insert(table).values(
                    graph=self.graph,
                    name=constraint.name,
                    kind=constraint.kind,
                    pool=constraint.pool,
                    properties=list(constraint.properties),
                )
            )
        self._constraints = None
        log.debug("Declared constraint %s on graph %s", constraint.name, self.graph)
        return True

    def constraints(self) -> tuple[SchemaConstraint, ...]:
        if self._constraints is None:
            table = graph_constraint_table
            with self._engine.connect() as conn:
                rows = conn.execute(
                    select(table.c.kind, table.c.pool, table.c.properties)
                    .where(table.c.graph == self.graph)
                    .order_by(table.c.name)
                ).all()
            self._constraints = tuple(
                SchemaConstraint(row.kind, row.pool, tuple(row.properties)) for row in rows
            )
        return self._constraints

    @staticmethod
    def _check_constraints(
        constraints: tuple[SchemaConstraint, ...],
        pool: Pool,
        key: str,
        properties: Mapping[str, object],
    ) -> None:
        violated = [
            constraint.name
            for constraint in constraints
            if constraint.pool is pool
            and constraint.kind is ConstraintKind.EXISTS
            and not constraint.is_satisfied_by(dict(properties))
        ]
        if violated:
            raise ConstraintViolationError(
                f"Node {pool.value}:{key} violates constraints: {', '.join(violated)}"
            )

    # nodes --------------------------------------------------------------------

    def upsert_node(
        self, pool: Pool, key: str, properties: Mapping[str, object]
    ) -> tuple[GraphNode, bool]:
        table = graph_node_table
        now = self._clock()
        constraints = self.constraints()
        with self._engine.begin() as conn:
            row = conn.execute(select(table).where(self._node_clause(NodeRef(pool, key)))).first()
            merged = {**(row.properties if row is not None else {}), **properties}
            self._check_constraints(constraints, pool, key, merged)
            if row is None:
                conn.execute(
                    insert(table).values(
                        graph=self.graph,
                        pool=pool,
                        key=key,
                        properties=merged,
                        created_at=now,
                        updated_at=now,
                    )
                )
                return GraphNode(NodeRef(pool, key), merged, created_at=now, updated_at=now), True
            conn.execute(
                update(table)
                .where(self._node_clause(NodeRef(pool, key)))
                .values(properties=merged, updated_at=now)
            )
        return (
            GraphNode(NodeRef(pool, key), merged, created_at=row.created_at, updated_at=now),
            False,
        )

    def get_node(self, ref: NodeRef) -> GraphNode | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(graph_node_table).where(self._node_clause(ref))).first()
        return _node_from_row(row) if row is not None else None

    def nodes(self, pool: Pool | None = None) -> list[GraphNode]:
        table = graph_node_table
        stmt = select(table).where(table.c.graph == self.graph)
        if pool is not None:
            stmt = stmt.where(table.c.pool == pool)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt.order_by(table.c.pool, table.c.key)).all()
        return [_node_from_row(row) for row in rows]

    def delete_node(self, ref: NodeRef) -> bool:
        with self._engine.begin() as conn:
            conn.execute(delete(graph_edge_table).where(self._touching_clause(ref)))
            result = conn.execute(delete(graph_node_table).where(self._node_clause(ref)))
        return result.rowcount > 0

    # edges --------------------------------------------------------------------

    def upsert_edge(
        self,
        source: NodeRef,
        verb: str,
        target: NodeRef,
        properties: Mapping[str, object] | None = None,
    ) -> tuple[GraphEdge, bool]:
        table = graph_edge_table
        clause = self._edge_clause(source, verb, target)
        now = self._clock()
        with self._engine.begin() as conn:
            for ref in (source, target):
                found = conn.execute(
                    select(graph_node_table.c.key).where(self._node_clause(ref))
                ).first()
                if found is None:
                    raise ConstraintViolationError(
                        f"Cannot link {source} -[{verb}]-> {target}: node {ref} does not exist"
                    )
            row = conn.execute(select(table).where(clause)).first()
            if row is None:
                merged = dict(properties or {})
                conn.execute(
                    insert(table).values(
                        graph=self.graph,
                        source_pool=source.pool,
                        source_key=source.key,
                        verb=verb,
                        target_pool=target.pool,
                        target_key=target.key,
                        properties=merged,
                        created_at=now,
                    )
                )
                return GraphEdge(source, verb, target, merged, created_at=now), True
            merged = {**row.properties, **(properties or {})}
            if merged != row.properties:
                conn.execute(update(table).where(clause).values(properties=merged))
        return GraphEdge(source, verb, target, merged, created_at=row.created_at), False

    def edges(self, *, node: NodeRef | None = None, verb: str | None = None) -> list[GraphEdge]:
        table = graph_edge_table
        stmt = select(table).where(table.c.graph == self.graph)
        if node is not None:
            stmt = stmt.where(self._touching_clause(node))
        if verb is not None:
            stmt = stmt.where(table.c.verb == verb)
        stmt = stmt.order_by(
            table.c.source_pool, table.c.source_key, table.c.verb, table.c.target_key
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_edge_from_row(row) for row in rows]

    def delete_edge(self, source: NodeRef, verb: str, target: NodeRef) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(graph_edge_table).where(self._edge_clause(source, verb, target))
            )
        return result.rowcount > 0

    # aliases and merge audit ----------------------------------------------------

    def record_alias(self, merged: NodeRef, survivor: NodeRef) -> None:
        if merged == survivor:
            return
        table = graph_alias_table
        scope = and_(table.c.graph == self.graph, table.c.pool == merged.pool)
        with self._engine.begin() as conn:
            # keep chains one hop long
            conn.execute(
                update(table)
                .where(scope)
                .where(table.c.survivor_key == merged.key)
                .values(survivor_key=survivor.key)
            )
            conn.execute(delete(table).where(scope).where(table.c.merged_key == merged.key))
            conn.execute(
                insert(table).values(
                    graph=self.graph,
                    pool=merged.pool,
                    merged_key=merged.key,
                    survivor_key=survivor.key,
                )
            )

    def resolve(self, ref: NodeRef) -> NodeRef:
        table = graph_alias_table
        current = ref
        seen = {ref.key}
        with self._engine.connect() as conn:
            for _ in range(MAX_ALIAS_HOPS):
                survivor_key = conn.execute(
                    select(table.c.survivor_key)
                    .where(table.c.graph == self.graph)
                    .where(table.c.pool == current.pool)
                    .where(table.c.merged_key == current.key)
                ).scalar_one_or_none()
                if survivor_key is None or survivor_key in seen:
                    return current
                seen.add(survivor_key)
                current = NodeRef(current.pool, survivor_key)
        log.warning("Alias chain for %s exceeds %s hops", ref, MAX_ALIAS_HOPS)
        return current

    def record_merge(self, merge: NodeMerge) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                insert(graph_merge_table).values(
                    id=merge.id,
                    graph=self.graph,
                    pool=merge.pool,
                    kept_key=merge.kept_key,
                    removed_key=merge.removed_key,
                    reason=merge.reason,
                    run_id=merge.run_id,
                    details=dict(merge.details),
                    created_at=merge.created_at,
                )
            )

    def merges(self) -> list[NodeMerge]:
        table = graph_merge_table
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(table).where(table.c.graph == self.graph).order_by(table.c.created_at)
            ).all()
        return [
            NodeMerge(
                id=row.id,
                pool=row.pool,
                kept_key=row.kept_key,
                removed_key=row.removed_key,
                reason=row.reason,
                run_id=row.run_id,
                details=row.details,
                created_at=row.created_at,
            )
            for row in rows
        ]

    # clauses ------------------------------------------------------------------

    def _node_clause(self, ref: NodeRef) -> ColumnElement[bool]:
        table = graph_node_table
        return and_(
            table.c.graph == self.graph, table.c.pool == ref.pool, table.c.key == ref.key
        )

    def _edge_clause(self, source: NodeRef, verb: str, target: NodeRef) -> ColumnElement[bool]:
        table = graph_edge_table
        return and_(
            table.c.graph == self.graph,
            table.c.source_pool == source.pool,
            table.c.source_key == source.key,
            table.c.verb == verb,
            table.c.target_pool == target.pool,
            table.c.target_key == target.key,
        )

    def _touching_clause(self, ref: NodeRef) -> ColumnElement[bool]:
        table = graph_edge_table
        return and_(
            table.c.graph == self.graph,
            or_(
                and_(table.c.source_pool == ref.pool, table.c.source_key == ref.key),
                and_(table.c.target_pool == ref.pool, table.c.target_key == ref.key),
            ),
        )


def _node_from_row(row: Row[tuple[object, ...]]) -> GraphNode:
    mapping = row._mapping  # noqa: SLF001
    return GraphNode(
        NodeRef(mapping["pool"], mapping["key"]),
        dict(mapping["properties"]),
        created_at=mapping["created_at"],
        updated_at=mapping["updated_at"],
    )


def _edge_from_row(row: Row[tuple[object, ...]]) -> GraphEdge:
    mapping = row._mapping  # noqa: SLF001
    return GraphEdge(
        NodeRef(mapping["source_pool"], mapping["source_key"]),
        mapping["verb"],
        NodeRef(mapping["target_pool"], mapping["target_key"]),
        dict(mapping["properties"]),
        created_at=mapping["created_at"],
    )


if TYPE_CHECKING:
    from graphwright.domain.ports.graph import GraphStore

    _graph_store_check: type[GraphStore] = SqlAlchemyGraphStore
