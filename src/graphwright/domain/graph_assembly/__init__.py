"""Graph assembly: schema, nodes, edges, deduplication, orphan removal, integrity."""

from __future__ import annotations

from .assembler import AssemblyPhase, GraphAssembler, default_phases
from .context import AssemblyContext, AssemblyInput, AssemblyResult, AssemblyStats
from .deduplication import Deduplicator
from .edges import EdgeLoader
from .integrity import (
    IntegrityReport,
    IntegrityVerifier,
    IntegrityViolation,
    run_slice,
    verify_graph,
)
from .nodes import NodeLoader
from .orphans import OrphanRemover
from .schema import SchemaSetup, required_constraints

__all__ = [
    "AssemblyContext",
    "AssemblyInput",
    "AssemblyPhase",
    "AssemblyResult",
    "AssemblyStats",
    "Deduplicator",
    "EdgeLoader",
    "GraphAssembler",
    "IntegrityReport",
    "IntegrityVerifier",
    "IntegrityViolation",
    "NodeLoader",
    "OrphanRemover",
    "SchemaSetup",
    "default_phases",
    "required_constraints",
    "run_slice",
    "verify_graph",
]
