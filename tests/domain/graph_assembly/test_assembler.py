from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from graphwright.domain.graph_assembly import (
    AssemblyContext,
    AssemblyInput,
    GraphAssembler,
    default_phases,
    required_constraints,
)
from graphwright.domain.model import (
    MergeReason,
    NodeRef,
    Pool,
    PoolEntity,
    PoolRelation,
    stable_id,
)
from tests.support.fakes import START
from tests.support.knowledge import garden_knowledge, rights_record

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.adapters.sqlalchemy import SqlAlchemyGraphStore
    from graphwright.domain.graph_assembly import AssemblyResult
    from graphwright.domain.model import RightsRecord
    from tests.support.fakes import FrozenClock


def _assemble(
    store: SqlAlchemyGraphStore,
    clock: FrozenClock,
    data: AssemblyInput,
    *,
    min_verb_confidence: float = 0.0,
) -> AssemblyResult:
    context = AssemblyContext(
        run_id=data.run_id, store=store, clock=clock, min_verb_confidence=min_verb_confidence
    )
    return GraphAssembler(default_phases()).run(data, context=context)


def test_repeated_mentions_fold_into_one_node_per_pool(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()
    rights = rights_record(run_id)

    result = _assemble(graph_store, clock, garden_knowledge(run_id, rights, items=2))

    ideas = graph_store.nodes(Pool.IDEA)
    manifests = graph_store.nodes(Pool.MANIFEST)
    assert [node.canonical_name for node in ideas] == ["Radical Inclusion"]
    assert [node.canonical_name for node in manifests] == ["Community Garden"]
    assert len(ideas[0].properties["entity_ids"]) == 2  # type: ignore[arg-type]
    assert len(ideas[0].properties["source_item_ids"]) == 2  # type: ignore[arg-type]

    assert result.ok
    assert result.stats.duplicates_resolved == 2
    assert result.stats.constraints_created == len(required_constraints())
    assert {merge.reason for merge in result.merges} == {MergeReason.SAME_CANONICAL_LABEL}
    assert len(graph_store.merges()) == 2


def test_forward_reverse_rights_and_lexicon_edges(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()
    rights = rights_record(run_id)

    _assemble(graph_store, clock, garden_knowledge(run_id, rights, items=2))

    idea = graph_store.nodes(Pool.IDEA)[0].ref
    manifest = graph_store.nodes(Pool.MANIFEST)[0].ref
    rights_ref = NodeRef(Pool.RIGHTS, str(rights.id))
    edge_keys = {edge.key for edge in graph_store.edges()}

    assert (idea, "embodies", manifest) in edge_keys
    assert (manifest, "is_embodiment_of", idea) in edge_keys
    assert (idea, "has_rights", rights_ref) in edge_keys
    assert (manifest, "has_rights", rights_ref) in edge_keys
    assert (NodeRef(Pool.LEXICON, "radical inclusion"), "normalizes", idea) in edge_keys
    assert (idea, "normalized_by", NodeRef(Pool.LEXICON, "radical inclusion")) in edge_keys

    embodies = next(edge for edge in graph_store.edges(verb="embodies"))
    assert embodies.properties["raw_verb"] == "implements"
    assert embodies.properties["mapping_confidence"] == 0.9
    assert "mapping_warning" in embodies.properties


def test_rerunning_assembly_changes_nothing(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()
    data = garden_knowledge(run_id, rights_record(run_id), items=3)
    _assemble(graph_store, clock, data)
    nodes_before = {node.ref for node in graph_store.nodes()}
    edges_before = {edge.key for edge in graph_store.edges()}

    again = _assemble(graph_store, clock, data)

    assert again.stats.nodes_created == 0
    assert again.stats.edges_created == 0
    assert again.stats.duplicates_resolved == 0
    assert again.stats.constraints_created == 0
    assert {node.ref for node in graph_store.nodes()} == nodes_before
    assert {edge.key for edge in graph_store.edges()} == edges_before
    assert again.ok


def test_entities_without_rights_never_enter_the_graph(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()

    result = _assemble(graph_store, clock, garden_knowledge(run_id, None, items=1))

    assert graph_store.nodes(Pool.IDEA) == []
    assert result.stats.entities_excluded == 2
    assert result.stats.relations_missing_endpoint == 1


def test_low_confidence_mappings_are_rejected_below_the_floor(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()

    result = _assemble(
        graph_store,
        clock,
        garden_knowledge(run_id, rights_record(run_id), items=1),
        min_verb_confidence=0.95,
    )

    assert graph_store.edges(verb="embodies") == []
    assert result.stats.relations_rejected == 1
    assert result.stats.low_confidence_mappings == 1


def test_later_runs_extend_existing_nodes(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    first_run, second_run = uuid4(), uuid4()
    _assemble(graph_store, clock, garden_knowledge(first_run, rights_record(first_run), items=1))
    clock.advance(minutes=5)

    result = _assemble(
        graph_store, clock, garden_knowledge(second_run, rights_record(second_run), items=1)
    )

    idea = graph_store.nodes(Pool.IDEA)
    assert len(idea) == 1
    assert set(idea[0].run_ids()) == {str(first_run), str(second_run)}
    assert result.stats.duplicates_resolved == 2


def test_rerunning_assembly_after_merges_keeps_properties(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()
    data = garden_knowledge(run_id, rights_record(run_id), items=2)
    _assemble(graph_store, clock, data)
    nodes_before = {node.ref: node.properties for node in graph_store.nodes()}
    edges_before = {edge.key: edge.properties for edge in graph_store.edges()}

    again = _assemble(graph_store, clock, data)

    assert {node.ref: node.properties for node in graph_store.nodes()} == nodes_before
    assert {edge.key: edge.properties for edge in graph_store.edges()} == edges_before
    assert again.stats.nodes_updated == 0


def _relational(run_id: UUID, rights: RightsRecord, index: int, label: str) -> PoolEntity:
    item_id = stable_id(run_id, "item", index)
    return PoolEntity(
        id=stable_id(run_id, item_id, label),
        run_id=run_id,
        item_id=item_id,
        local_ref=label,
        pool=Pool.RELATIONAL,
        label=label,
        repr_text=f"{label} in item {index}",
        rights_id=rights.id,
        created_at=START,
    )


def _co_occurs(run_id: UUID, source: PoolEntity, target: PoolEntity) -> PoolRelation:
    return PoolRelation(
        id=stable_id(run_id, "relation", source.id, target.id),
        run_id=run_id,
        item_id=source.item_id,
        source_id=source.id,
        target_id=target.id,
        raw_verb="co_occurs_with",
        created_at=START,
    )


def test_symmetric_relations_are_stored_once_in_canonical_order(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()
    rights = rights_record(run_id)
    swap = _relational(run_id, rights, 0, "Seed Swap")
    circle = _relational(run_id, rights, 0, "Sharing Circle")
    data = AssemblyInput(
        run_id=run_id,
        entities=[swap, circle],
        relations=[_co_occurs(run_id, swap, circle), _co_occurs(run_id, circle, swap)],
        rights=[rights],
    )

    result = _assemble(graph_store, clock, data)

    (edge,) = graph_store.edges(verb="co_occurs_with")
    assert edge.source < edge.target
    assert {edge.source.key, edge.target.key} == {str(swap.id), str(circle.id)}
    assert result.stats.edges_created == 1
    assert result.stats.reverse_edges == 0


def test_merging_a_node_keeps_its_symmetric_edge_canonical(
    graph_store: SqlAlchemyGraphStore, clock: FrozenClock
) -> None:
    run_id = uuid4()
    rights = rights_record(run_id)
    swap = _relational(run_id, rights, 0, "Seed Swap")
    circle = _relational(run_id, rights, 0, "Sharing Circle")
    circle_again = _relational(run_id, rights, 1, "Sharing Circle")
    data = AssemblyInput(
        run_id=run_id,
        entities=[swap, circle, circle_again],
        relations=[_co_occurs(run_id, circle, swap), _co_occurs(run_id, swap, circle_again)],
        rights=[rights],
    )

    result = _assemble(graph_store, clock, data)

    survivor = next(
        node.ref
        for node in graph_store.nodes(Pool.RELATIONAL)
        if node.canonical_name == "Sharing Circle"
    )
    (edge,) = graph_store.edges(verb="co_occurs_with")
    assert edge.source < edge.target
    assert {edge.source, edge.target} == {NodeRef(Pool.RELATIONAL, str(swap.id)), survivor}
    assert result.stats.duplicates_resolved == 1
    assert result.stats.edges_repointed >= 1
