"""Pool entities, relations and lexicon terms produced by extraction."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final
from uuid import NAMESPACE_URL, UUID, uuid5

from .pools import Pool

_ID_NAMESPACE: Final[UUID] = uuid5(NAMESPACE_URL, "urn:graphwright:knowledge")
_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_label(label: str) -> str:
    """Canonical comparison key for labels: case, accents and punctuation folded."""

    decomposed = unicodedata.normalize("NFKD", label)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    without_punctuation = _NON_WORD.sub(" ", stripped.casefold())
    return _WHITESPACE.sub(" ", without_punctuation).strip()


def stable_id(*parts: object) -> UUID:
    """Deterministic identifier so that re-running a stage yields the same rows."""

    return uuid5(_ID_NAMESPACE, ":".join(str(part) for part in parts))


@dataclass(eq=False, kw_only=True)
class PoolEntity:
    """A typed knowledge unit extracted from one source item."""

    id: UUID
    run_id: UUID
    item_id: UUID
    local_ref: str
    pool: Pool
    label: str
    repr_text: str
    rights_id: UUID | None
    valid_time_start: datetime | None = None
    valid_time_end: datetime | None = None
    observed_at: datetime | None = None
    attributes: dict[str, object] = field(default_factory=dict)
    confidence: float = 1.0
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def canonical_key(self) -> str:
        return normalize_label(self.label)


@dataclass(eq=False, kw_only=True)
class PoolRelation:
    id: UUID
    run_id: UUID
    item_id: UUID
    source_id: UUID
    target_id: UUID
    raw_verb: str
    evidence: str | None = None
    confidence: float = 1.0
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


@dataclass(eq=False, kw_only=True)
class LexiconTerm:
    """A canonical term with the surface forms it was seen under."""

    id: UUID
    run_id: UUID
    canonical: str
    surface_forms: list[str] = field(default_factory=list)
    pools: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
