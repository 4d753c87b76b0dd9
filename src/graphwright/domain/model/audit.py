"""Audit records for graph deduplication decisions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from .enums import MergeReason

if TYPE_CHECKING:
    from .pools import Pool


@dataclass(eq=False, kw_only=True)
class NodeMerge:
    """Audit record for folding a duplicate node into its surviving counterpart."""

    id: UUID = field(default_factory=uuid4)
    pool: Pool
    kept_key: str
    removed_key: str
    reason: MergeReason = MergeReason.SAME_CANONICAL_LABEL
    run_id: UUID | None = None
    details: dict[str, object] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
