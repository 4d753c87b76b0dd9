"""Value types describing nodes, edges and constraints of the property graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from .enums import ConstraintKind
from .pools import Pool


@dataclass(frozen=True, slots=True, order=True)
class NodeRef:
    pool: Pool
    key: str

    def __str__(self) -> str:
        return f"{self.pool.value}:{self.key}"


@dataclass(slots=True)
class GraphNode:
    ref: NodeRef
    properties: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def pool(self) -> Pool:
        return self.ref.pool

    @property
    def canonical_name(self) -> str:
        value = self.properties.get("canonical_name")
        return value if isinstance(value, str) else ""

    def run_ids(self) -> list[str]:
        value = self.properties.get("run_ids")
        if not isinstance(value, list):
            return []
        return [str(item) for item in value]


@dataclass(slots=True)
class GraphEdge:
    source: NodeRef
    verb: str
    target: NodeRef
    properties: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def key(self) -> tuple[NodeRef, str, NodeRef]:
        return (self.source, self.verb, self.target)

    def touches(self, ref: NodeRef) -> bool:
        return ref in (self.source, self.target)


@dataclass(frozen=True, slots=True)
class SchemaConstraint:
    """Uniqueness or existence rule declared for the nodes of one pool.

    An existence constraint with several properties is satisfied when any one of
    them is populated.
    """

    kind: ConstraintKind
    pool: Pool
    properties: tuple[str, ...]

    @property
    def name(self) -> str:
        return f"{self.kind.value}_{self.pool.value.lower()}_{'_or_'.join(self.properties)}"

    def is_satisfied_by(self, properties: dict[str, object]) -> bool:
        if self.kind is not ConstraintKind.EXISTS:
            return True
        return any(_is_populated(properties.get(name)) for name in self.properties)


def _is_populated(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True
