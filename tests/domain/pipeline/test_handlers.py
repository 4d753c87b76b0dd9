from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from graphwright.domain.errors import InvalidDataError
from graphwright.domain.model import (
    PipelineRun,
    Pool,
    RunOptions,
    SourceInput,
    Stage,
    stable_id,
)
from graphwright.domain.pipeline import RunContext, build_default_handlers
from graphwright.domain.ports.gateways import ExtractedRelation, ExtractionResult
from tests.support.fakes import (
    FakeEmbeddingGateway,
    FakeExtractionGateway,
    FakeRightsInferenceGateway,
    declared_options,
    idea_manifest_result,
    make_sources,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from graphwright.app import Runtime

HANDLERS = build_default_handlers()


def _context(runtime: Runtime, run: PipelineRun, stage: Stage, **services: object) -> RunContext:
    return RunContext(
        run_id=run.id,
        stage=stage,
        knowledge_base=run.knowledge_base,
        attempt=1,
        options=run.run_options,
        services=replace(runtime.services, **services),  # type: ignore[arg-type]
    )


def _run_stage(
    runtime: Runtime, run: PipelineRun, stage: Stage, **services: object
) -> Mapping[str, float]:
    return HANDLERS[stage].run(_context(runtime, run, stage, **services))


def _run_through(runtime: Runtime, run: PipelineRun, last: Stage) -> None:
    for stage in Stage:
        _run_stage(runtime, run, stage)
        if stage is last:
            return


def test_handlers_cover_every_stage() -> None:
    assert set(HANDLERS) == set(Stage)
    assert all(handler.stage is stage for stage, handler in HANDLERS.items())


def test_intake_rejects_empty_items_unless_skipping(runtime: Runtime) -> None:
    sources = [*make_sources(1), SourceInput(uri="notes/empty.txt", content="  \n")]
    strict = runtime.orchestrator.create_run(sources, declared_options())
    lenient = runtime.orchestrator.create_run(sources, declared_options(skip_failed_items=True))

    with pytest.raises(InvalidDataError, match=r"notes/empty\.txt"):
        _run_stage(runtime, strict, Stage.INTAKE)
    metrics = _run_stage(runtime, lenient, Stage.INTAKE)

    assert metrics == {"items_processed": 1, "items_failed": 1}
    with runtime.services.unit_of_work_factory() as uow:
        items = {item.uri: item for item in uow.repositories.items.for_run(lenient.id)}
    assert items["notes/empty.txt"].failed
    assert items["notes/item-0.md"].media_type == "text/markdown"
    assert items["notes/item-0.md"].content_hash is not None


def test_declared_rights_register_one_record_per_run(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(3), declared_options())

    metrics = _run_stage(runtime, run, Stage.RIGHTS)
    again = _run_stage(runtime, run, Stage.RIGHTS)

    assert metrics == {"items_processed": 3, "items_quarantined": 0, "records_created": 1}
    assert again["records_created"] == 0
    with runtime.services.unit_of_work_factory() as uow:
        rights_ids = {item.rights_id for item in uow.repositories.items.for_run(run.id)}
    assert len(rights_ids) == 1
    assert None not in rights_ids


def test_inferred_rights_quarantine_low_confidence_items(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(2), RunOptions())
    gateway = FakeRightsInferenceGateway(by_filename={"item-1.md": 0.4})

    metrics = _run_stage(runtime, run, Stage.RIGHTS, rights_inference=gateway)
    again = _run_stage(runtime, run, Stage.RIGHTS, rights_inference=gateway)

    assert metrics == {"items_processed": 2, "items_quarantined": 1, "records_created": 2}
    assert again["records_created"] == 0
    assert gateway.calls == 2
    with runtime.services.unit_of_work_factory() as uow:
        items = {item.uri: item for item in uow.repositories.items.for_run(run.id)}
        rights_id = items["notes/item-1.md"].rights_id
        assert rights_id is not None
        quarantined_rights = uow.repositories.rights.get(rights_id)
    assert items["notes/item-1.md"].quarantined
    assert not items["notes/item-0.md"].quarantined
    assert quarantined_rights is not None
    assert not quarantined_rights.trainable
    assert not quarantined_rights.publishable


def test_rights_stage_refuses_runs_without_any_rights_source(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), RunOptions())

    with pytest.raises(InvalidDataError, match="No declared rights"):
        _run_stage(runtime, run, Stage.RIGHTS)


def test_lexicon_caches_extraction_per_item(
    runtime: Runtime, extraction: FakeExtractionGateway
) -> None:
    run = runtime.orchestrator.create_run(make_sources(2), declared_options())
    _run_through(runtime, run, Stage.RIGHTS)

    first = _run_stage(runtime, run, Stage.LEXICON)
    second = _run_stage(runtime, run, Stage.LEXICON)

    assert first["terms_extracted"] == 2
    assert second == first
    assert len(extraction.calls) == 2
    with runtime.services.unit_of_work_factory() as uow:
        terms = {term.canonical: term for term in uow.repositories.terms.for_run(run.id)}
    assert set(terms) == {"radical inclusion", "community garden"}
    assert terms["radical inclusion"].id == stable_id(run.id, "term", "radical inclusion")
    assert terms["community garden"].pools == ["Manifest"]


def test_lexicon_skips_rejected_items_when_allowed(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(
        make_sources(2), declared_options(skip_failed_items=True)
    )
    _run_through(runtime, run, Stage.RIGHTS)
    gateway = FakeExtractionGateway(failures=[InvalidDataError("unparseable")])

    metrics = _run_stage(runtime, run, Stage.LEXICON, extraction=gateway)

    assert metrics["items_processed"] == 1
    assert metrics["items_failed"] == 1


def test_lexicon_needs_an_extraction_service(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options())

    with pytest.raises(InvalidDataError, match="No extraction service"):
        _run_stage(runtime, run, Stage.LEXICON, extraction=None)


def test_pools_use_stable_identifiers(runtime: Runtime, extraction: FakeExtractionGateway) -> None:
    dangling = ExtractionResult(
        entities=idea_manifest_result().entities,
        relations=(
            *idea_manifest_result().relations,
            ExtractedRelation(source_ref="e1", verb="cites", target_ref="e9"),
        ),
    )
    extraction.by_uri["notes/item-0.md"] = dangling
    run = runtime.orchestrator.create_run(make_sources(2), declared_options())
    _run_through(runtime, run, Stage.LEXICON)

    metrics = _run_stage(runtime, run, Stage.POOLS)
    again = _run_stage(runtime, run, Stage.POOLS)

    assert metrics["entities_extracted"] == 4
    assert metrics["relations_extracted"] == 2
    assert metrics["relations_dropped"] == 1
    assert again == metrics
    with runtime.services.unit_of_work_factory() as uow:
        entities = uow.repositories.entities.for_run(run.id)
        relations = uow.repositories.relations.for_run(run.id)
    assert len(entities) == 4
    assert len(relations) == 2
    for entity in entities:
        assert entity.id == stable_id(run.id, entity.item_id, entity.local_ref)
        assert entity.rights_id is not None
    assert {entity.pool for entity in entities} == {Pool.IDEA, Pool.MANIFEST}


def test_embeddings_attach_vectors_once(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(2), declared_options())
    _run_through(runtime, run, Stage.GRAPH)
    gateway = FakeEmbeddingGateway()

    first = _run_stage(runtime, run, Stage.EMBEDDINGS, embeddings=gateway)
    second = _run_stage(runtime, run, Stage.EMBEDDINGS, embeddings=gateway)

    assert first["embeddings_created"] == 2
    assert second["embeddings_created"] == 0
    assert second["nodes_embedded"] == 2
    assert gateway.batches == [2]
    store = runtime.services.graph_store_factory(run.knowledge_base)
    assert all("embedding" in node.properties for node in store.nodes(Pool.IDEA))


def test_literacy_and_deliverables_report_on_the_run_slice(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(2), declared_options())
    _run_through(runtime, run, Stage.EMBEDDINGS)

    literacy = _run_stage(runtime, run, Stage.LITERACY)
    deliverables = _run_stage(runtime, run, Stage.DELIVERABLES)

    assert literacy["literacy_score"] == 78.6
    assert literacy["connectivity"] == 1.0
    assert deliverables["deliverables_published"] == 2
    assert deliverables["nodes_exported"] == 5


def test_graph_stage_blocks_on_integrity_violations(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options())
    _run_through(runtime, run, Stage.POOLS)
    store = runtime.services.graph_store_factory(run.knowledge_base)
    store.upsert_node(Pool.IDEA, "broken", {"canonical_name": "", "run_ids": [str(run.id)]})

    with pytest.raises(InvalidDataError, match="integrity"):
        _run_stage(runtime, run, Stage.GRAPH)

    lenient = replace(runtime.services.config, block_on_integrity_violations=False)
    metrics = _run_stage(runtime, run, Stage.GRAPH, config=lenient)
    assert metrics["integrity_errors"] > 0
