"""Graph: assemble the run's extracted knowledge into the property graph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from graphwright.domain.errors import InvalidDataError
from graphwright.domain.graph_assembly import (
    AssemblyContext,
    AssemblyInput,
    GraphAssembler,
    default_phases,
)
from graphwright.domain.model import Stage

from ..stages import ITEMS_PROCESSED

if TYPE_CHECKING:
    from ..context import RunContext

log = logging.getLogger(__name__)


class GraphHandler:
    stage = Stage.GRAPH
    required_metrics = (
        ITEMS_PROCESSED,
        "nodes_created",
        "edges_created",
        "duplicates_resolved",
        "orphans_removed",
        "integrity_errors",
    )

    def expected_items(self, context: RunContext) -> int:
        with context.unit_of_work() as uow:
            return len(uow.repositories.entities.for_run(context.run_id))

    def load_input(self, context: RunContext) -> AssemblyInput:
        with context.unit_of_work() as uow:
            repositories = uow.repositories
            entities = repositories.entities.for_run(context.run_id)
            items = repositories.items.for_run(context.run_id)
            rights_ids = {entity.rights_id for entity in entities if entity.rights_id}
            rights_ids |= {item.rights_id for item in items if item.rights_id}
            return AssemblyInput(
                run_id=context.run_id,
                entities=entities,
                relations=repositories.relations.for_run(context.run_id),
                rights=repositories.rights.get_many(rights_ids),
                terms=repositories.terms.for_run(context.run_id),
            )

    def run(self, context: RunContext) -> dict[str, float]:
        data = self.load_input(context)
        config = context.config
        assembler = GraphAssembler(
            phases=default_phases(orphan_grace_seconds=config.orphan_grace_seconds)
        )
        assembly = AssemblyContext(
            run_id=context.run_id,
            store=context.graph_store(),
            glossary=context.services.glossary,
            clock=context.services.clock,
            min_verb_confidence=config.min_verb_confidence,
        )
        result = assembler.run(data, context=assembly)

        metrics: dict[str, float] = {ITEMS_PROCESSED: len(data.entities)}
        metrics.update(result.stats.as_metrics())
        integrity = result.integrity
        metrics["integrity_errors"] = integrity.error_count if integrity else 0
        if integrity is not None and not integrity.ok:
            if config.block_on_integrity_violations:
                raise InvalidDataError(
                    f"Graph integrity check found {integrity.error_count} violation(s)",
                    details=integrity.to_payload(),
                )
            log.warning(
                "%s continuing despite %s integrity violation(s)",
                context.prefix,
                integrity.error_count,
            )
        return metrics
