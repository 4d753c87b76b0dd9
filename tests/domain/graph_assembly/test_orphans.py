from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from graphwright.domain.graph_assembly import AssemblyContext, AssemblyInput, OrphanRemover
from graphwright.domain.model import NodeRef, Pool

if TYPE_CHECKING:
    from graphwright.adapters.sqlalchemy import SqlAlchemyGraphStore
    from tests.support.fakes import FrozenClock


def _node(store: SqlAlchemyGraphStore, pool: Pool, key: str) -> NodeRef:
    node, _ = store.upsert_node(
        pool, key, {"canonical_name": key, "valid_time_start": "2025-03-01T12:00:00+00:00"}
    )
    return node.ref


def _remove_orphans(
    store: SqlAlchemyGraphStore, clock: FrozenClock, *, grace_seconds: float
) -> AssemblyContext:
    run_id = uuid4()
    context = AssemblyContext(run_id=run_id, store=store, clock=clock)
    OrphanRemover(grace_seconds=grace_seconds).run(AssemblyInput(run_id), context=context)
    return context


def test_only_structural_edges_keep_a_node(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    lonely = _node(graph_store, Pool.IDEA, "lonely")
    rights_only = _node(graph_store, Pool.IDEA, "rights only")
    idea = _node(graph_store, Pool.IDEA, "linked")
    manifest = _node(graph_store, Pool.MANIFEST, "garden")
    rights = _node(graph_store, Pool.RIGHTS, "r1")
    term = _node(graph_store, Pool.LEXICON, "garden")
    graph_store.upsert_edge(rights_only, "has_rights", rights)
    graph_store.upsert_edge(idea, "embodies", manifest)
    clock.advance(hours=2)

    context = _remove_orphans(graph_store, clock, grace_seconds=0)

    remaining = {node.ref for node in graph_store.nodes()}
    assert remaining == {idea, manifest, rights, term}
    assert lonely not in remaining
    assert rights_only not in remaining
    assert graph_store.edges(node=rights_only) == []
    assert context.stats.orphans_removed == 2
    assert {detail["key"] for detail in context.removed_orphans} == {"lonely", "rights only"}


def test_nodes_inside_the_grace_window_are_kept(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    old = _node(graph_store, Pool.PRACTICAL, "old")
    clock.advance(minutes=50)
    young = _node(graph_store, Pool.PRACTICAL, "young")
    clock.advance(minutes=20)

    context = _remove_orphans(graph_store, clock, grace_seconds=3600)

    remaining = {node.ref for node in graph_store.nodes()}
    assert young in remaining
    assert old not in remaining
    assert context.stats.orphans_removed == 1
