"""Schema constraints declared before any node is written."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graphwright.domain.model import (
    CONTENT_POOLS,
    TEMPORAL_FIELDS,
    ConstraintKind,
    Pool,
    SchemaConstraint,
)

if TYPE_CHECKING:
    from .context import AssemblyContext, AssemblyInput

log = logging.getLogger(__name__)


def required_constraints() -> tuple[SchemaConstraint, ...]:
    constraints: list[SchemaConstraint] = []
    for pool in Pool:
        constraints.append(SchemaConstraint(ConstraintKind.UNIQUE, pool, ("key",)))
        constraints.append(SchemaConstraint(ConstraintKind.EXISTS, pool, ("canonical_name",)))
        constraints.append(SchemaConstraint(ConstraintKind.EXISTS, pool, TEMPORAL_FIELDS))
        if pool in CONTENT_POOLS:
            constraints.append(SchemaConstraint(ConstraintKind.EXISTS, pool, ("rights_id",)))
            constraints.append(SchemaConstraint(ConstraintKind.EXISTS, pool, ("repr_text",)))
    return tuple(constraints)


@dataclass(slots=True)
class SchemaSetup:
    name: str = "schema"

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None:
        _ = data
        for constraint in required_constraints():
            if context.store.declare_constraint(constraint):
                context.stats.constraints_created += 1
        if context.stats.constraints_created:
            log.info("Declared %s graph constraints", context.stats.constraints_created)
