from __future__ import annotations

from typing import TYPE_CHECKING

from graphwright.domain.graph_assembly import AssemblyInput
from graphwright.domain.model import (
    LexiconTerm,
    Pool,
    PoolEntity,
    PoolRelation,
    RightsRecord,
    RightsTerms,
    stable_id,
)
from graphwright.domain.rights import declared_context_key
from tests.support.fakes import START, declared_cc_by

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


def rights_record(run_id: UUID, terms: RightsTerms | None = None) -> RightsRecord:
    return RightsRecord.from_terms(
        declared_context_key(run_id), terms or declared_cc_by(), now=START
    )


def garden_knowledge(
    run_id: UUID,
    rights: RightsRecord | None,
    *,
    items: int = 2,
    verb: str = "implements",
    now: datetime = START,
) -> AssemblyInput:
    """Every item mentions the same idea embodied by the same manifest."""

    entities: list[PoolEntity] = []
    relations: list[PoolRelation] = []
    for index in range(items):
        item_id = stable_id(run_id, "item", index)
        idea = PoolEntity(
            id=stable_id(run_id, item_id, "e1"),
            run_id=run_id,
            item_id=item_id,
            local_ref="e1",
            pool=Pool.IDEA,
            label="Radical Inclusion",
            repr_text=f"Radical inclusion as described in item {index}",
            rights_id=rights.id if rights else None,
            created_at=now,
        )
        manifest = PoolEntity(
            id=stable_id(run_id, item_id, "e2"),
            run_id=run_id,
            item_id=item_id,
            local_ref="e2",
            pool=Pool.MANIFEST,
            label="Community Garden",
            repr_text="The community garden project",
            rights_id=rights.id if rights else None,
            attributes={"type": "project"},
            created_at=now,
        )
        entities += [idea, manifest]
        relations.append(
            PoolRelation(
                id=stable_id(run_id, item_id, "relation", "e1", verb, "e2"),
                run_id=run_id,
                item_id=item_id,
                source_id=idea.id,
                target_id=manifest.id,
                raw_verb=verb,
                created_at=now,
            )
        )

    terms = [
        LexiconTerm(
            id=stable_id(run_id, "term", canonical),
            run_id=run_id,
            canonical=canonical,
            surface_forms=[surface],
            pools=[pool.value],
            created_at=now,
        )
        for canonical, surface, pool in (
            ("radical inclusion", "Radical Inclusion", Pool.IDEA),
            ("community garden", "Community Garden", Pool.MANIFEST),
        )
    ]
    return AssemblyInput(
        run_id=run_id,
        entities=entities,
        relations=relations,
        rights=[rights] if rights else [],
        terms=terms,
    )
