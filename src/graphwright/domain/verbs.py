"""Closed relationship vocabulary with reverse/symmetric semantics and verb mapping.

The glossary is fixed at import time. Extracted relations arrive with free-form
verbs, so :meth:`VerbGlossary.resolve` maps them onto the closed set by trying
exact and reverse forms first, then known alternate phrasings and regex
heuristics, before settling on the generic ``connects_to`` fallback. Only exact
and reverse forms are trusted at full confidence; the others carry an advisory
warning so that callers can apply their own confidence floor.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from graphwright.domain.errors import PoolConstraintError, SelfLoopError, UnknownVerbError
from graphwright.domain.model.pools import Pool

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

    from graphwright.domain.model.graph import NodeRef

log = logging.getLogger(__name__)

FALLBACK_VERB: Final[str] = "connects_to"
RIGHTS_VERB: Final[str] = "has_rights"

EXACT_CONFIDENCE: Final[float] = 1.0
ALTERNATE_CONFIDENCE: Final[float] = 0.9
HEURISTIC_CONFIDENCE: Final[float] = 0.7
FALLBACK_CONFIDENCE: Final[float] = 0.5

type PoolSet = frozenset[Pool] | None


@dataclass(frozen=True, slots=True)
class VerbGlossaryEntry:
    verb: str
    reverse_verb: str | None = None
    symmetric: bool = False
    source_pools: PoolSet = None
    target_pools: PoolSet = None
    system: bool = False

    def accepts(self, source_pool: Pool, target_pool: Pool) -> bool:
        source_ok = self.source_pools is None or source_pool in self.source_pools
        target_ok = self.target_pools is None or target_pool in self.target_pools
        return source_ok and target_ok


@dataclass(frozen=True, slots=True)
class VerbResolution:
    raw_verb: str
    verb: str
    reverse_verb: str | None
    symmetric: bool
    confidence: float
    warning: str | None = None
    inverted: bool = False

    @property
    def is_fallback(self) -> bool:
        return self.verb == FALLBACK_VERB and self.confidence < EXACT_CONFIDENCE


def _pools(*pools: Pool) -> frozenset[Pool]:
    return frozenset(pools)


DEFAULT_ENTRIES: Final[tuple[VerbGlossaryEntry, ...]] = (
    VerbGlossaryEntry(
        "embodies",
        "is_embodiment_of",
        source_pools=_pools(Pool.IDEA),
        target_pools=_pools(Pool.MANIFEST),
    ),
    VerbGlossaryEntry(
        "elicits",
        "is_elicited_by",
        source_pools=_pools(Pool.MANIFEST),
        target_pools=_pools(Pool.EXPERIENCE),
    ),
    VerbGlossaryEntry(
        "influences", "is_influenced_by", source_pools=_pools(Pool.IDEA, Pool.EMANATION)
    ),
    VerbGlossaryEntry(
        "refines",
        "is_refined_by",
        source_pools=_pools(Pool.EVOLUTIONARY),
        target_pools=_pools(Pool.IDEA),
    ),
    VerbGlossaryEntry(
        "version_of",
        "has_version",
        source_pools=_pools(Pool.EVOLUTIONARY),
        target_pools=_pools(Pool.MANIFEST),
    ),
    VerbGlossaryEntry(
        "co_occurs_with",
        symmetric=True,
        source_pools=_pools(Pool.RELATIONAL),
        target_pools=_pools(Pool.RELATIONAL),
    ),
    VerbGlossaryEntry(
        "located_at",
        "hosts",
        source_pools=_pools(Pool.MANIFEST),
        target_pools=_pools(Pool.SPATIAL),
    ),
    VerbGlossaryEntry(
        "adjacent_to",
        symmetric=True,
        source_pools=_pools(Pool.SPATIAL),
        target_pools=_pools(Pool.SPATIAL),
    ),
    VerbGlossaryEntry(
        "validated_by",
        "validates",
        source_pools=_pools(Pool.PRACTICAL),
        target_pools=_pools(Pool.EXPERIENCE),
    ),
    VerbGlossaryEntry(
        "supports",
        source_pools=_pools(Pool.EVIDENCE),
        target_pools=_pools(Pool.IDEA),
    ),
    VerbGlossaryEntry(
        "refutes",
        source_pools=_pools(Pool.EVIDENCE),
        target_pools=_pools(Pool.IDEA),
    ),
    VerbGlossaryEntry(
        "diffuses_through",
        source_pools=_pools(Pool.EMANATION),
        target_pools=_pools(Pool.RELATIONAL),
    ),
    VerbGlossaryEntry(
        "codifies",
        "is_codified_by",
        source_pools=_pools(Pool.IDEA),
        target_pools=_pools(Pool.PRACTICAL),
    ),
    VerbGlossaryEntry(
        "inspires",
        "is_inspired_by",
        source_pools=_pools(Pool.EXPERIENCE),
        target_pools=_pools(Pool.EMANATION),
    ),
    VerbGlossaryEntry(
        "feeds_back",
        "is_fed_by",
        source_pools=_pools(Pool.EMANATION),
        target_pools=_pools(Pool.IDEA),
    ),
    VerbGlossaryEntry("derived_from", "has_derivative"),
    VerbGlossaryEntry(FALLBACK_VERB, "is_connected_to"),
    VerbGlossaryEntry("cites", "cited_by"),
    VerbGlossaryEntry("precedes", "follows"),
    VerbGlossaryEntry(
        "authors",
        "authored_by",
        source_pools=_pools(Pool.ACTOR),
        target_pools=_pools(Pool.MANIFEST),
    ),
    VerbGlossaryEntry(
        "owns",
        "owned_by",
        source_pools=_pools(Pool.ACTOR),
        target_pools=_pools(Pool.MANIFEST),
    ),
    VerbGlossaryEntry(
        "member_of",
        "has_member",
        source_pools=_pools(Pool.ACTOR),
        target_pools=_pools(Pool.RELATIONAL),
    ),
    VerbGlossaryEntry(
        "reports",
        "reported_by",
        source_pools=_pools(Pool.ACTOR),
        target_pools=_pools(Pool.EXPERIENCE),
    ),
    VerbGlossaryEntry(
        "measures",
        "measured_by",
        source_pools=_pools(Pool.EVIDENCE),
        target_pools=_pools(Pool.MANIFEST),
    ),
    VerbGlossaryEntry(
        "requires_mitigation",
        "mitigates",
        source_pools=_pools(Pool.RISK),
        target_pools=_pools(Pool.PRACTICAL),
    ),
    VerbGlossaryEntry(
        "produces",
        "produced_by",
        source_pools=_pools(Pool.METHOD),
        target_pools=_pools(Pool.EVIDENCE),
    ),
    VerbGlossaryEntry(
        "standardizes",
        "standardized_by",
        source_pools=_pools(Pool.METHOD),
        target_pools=_pools(Pool.PRACTICAL),
    ),
    VerbGlossaryEntry(
        "normalizes", "normalized_by", source_pools=_pools(Pool.LEXICON), system=True
    ),
    VerbGlossaryEntry("disambiguates", "disambiguated_by", source_pools=_pools(Pool.LEXICON)),
    VerbGlossaryEntry(RIGHTS_VERB, target_pools=_pools(Pool.RIGHTS), system=True),
)

DEFAULT_ALTERNATES: Final[Mapping[str, str]] = MappingProxyType(
    {
        "implements": "embodies",
        "realizes": "embodies",
        "instantiates": "embodies",
        "extends": "refines",
        "overrides": "refines",
        "migrates": "refines",
        "updates": "refines",
        "imports": FALLBACK_VERB,
        "requires": FALLBACK_VERB,
        "depends_on": FALLBACK_VERB,
        "uses": FALLBACK_VERB,
        "includes": FALLBACK_VERB,
        "references": FALLBACK_VERB,
        "belongs_to": FALLBACK_VERB,
        "has_many": FALLBACK_VERB,
        "indexes": FALLBACK_VERB,
        "inherits_from": "derived_from",
        "subclasses": "derived_from",
        "tests": "validates",
        "verifies": "validates",
        "asserts": "validates",
        "commits": "version_of",
        "branches_from": "version_of",
        "forked_from": "version_of",
        "merged_into": "version_of",
        "releases": "version_of",
        "documents": "codifies",
        "describes": "codifies",
        "specifies": "codifies",
        "defines": "codifies",
        "explains": "codifies",
        "builds": "produces",
        "compiles": "produces",
        "generates": "produces",
        "deploys": "influences",
        "publishes": "influences",
        "wrote": "authors",
        "written_by": "authored_by",
    }
)

DEFAULT_HEURISTICS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r"based_on|deriv"), "derived_from"),
    (re.compile(r"trigger|caus|affect"), "influences"),
    (re.compile(r"updat|improv|revis"), "refines"),
    (re.compile(r"creat|generat|produc"), "produces"),
    (re.compile(r"cite|quot"), "cites"),
    (re.compile(r"before|preced|lead"), "precedes"),
    (re.compile(r"connect|link|relat|part_of|contain|use|call"), FALLBACK_VERB),
)


def normalize_verb(raw_verb: str) -> str:
    return re.sub(r"[\s\-]+", "_", raw_verb.strip().lower())


class VerbGlossary:
    """Immutable vocabulary of relationship types."""

    def __init__(
        self,
        entries: Iterable[VerbGlossaryEntry] = DEFAULT_ENTRIES,
        *,
        alternates: Mapping[str, str] = DEFAULT_ALTERNATES,
        heuristics: Sequence[tuple[re.Pattern[str], str]] = DEFAULT_HEURISTICS,
    ) -> None:
        by_verb: dict[str, VerbGlossaryEntry] = {}
        by_reverse: dict[str, VerbGlossaryEntry] = {}
        for entry in entries:
            if entry.symmetric and entry.reverse_verb is not None:
                raise ValueError(f"Symmetric verb {entry.verb!r} cannot declare a reverse")
            by_verb[entry.verb] = entry
            if entry.reverse_verb is not None:
                by_reverse[entry.reverse_verb] = entry
        clashes = set(by_verb) & set(by_reverse)
        if clashes:
            raise ValueError(f"Reverse verbs shadow forward verbs: {sorted(clashes)}")
        self._entries: Mapping[str, VerbGlossaryEntry] = MappingProxyType(by_verb)
        self._reverse: Mapping[str, VerbGlossaryEntry] = MappingProxyType(by_reverse)
        self._alternates = MappingProxyType(dict(alternates))
        self._heuristics = tuple(heuristics)
        if FALLBACK_VERB not in self._entries:
            raise ValueError(f"Glossary must define the fallback verb {FALLBACK_VERB!r}")

    def __contains__(self, verb: object) -> bool:
        return isinstance(verb, str) and verb in self._entries

    def __iter__(self) -> Iterator[VerbGlossaryEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, verb: str) -> VerbGlossaryEntry:
        try:
            return self._entries[verb]
        except KeyError as exc:
            raise UnknownVerbError(f"Verb {verb!r} is not in the glossary") from exc

    def is_known(self, verb: str) -> bool:
        """Whether ``verb`` is a forward verb or the reverse form of one."""

        return verb in self._entries or verb in self._reverse

    def forward_of(self, reverse_verb: str) -> VerbGlossaryEntry | None:
        return self._reverse.get(reverse_verb)

    def is_structural(self, verb: str) -> bool:
        """System verbs (rights links, lexicon links) do not justify a node's existence."""

        entry = self._entries.get(verb) or self._reverse.get(verb)
        return entry is not None and not entry.system

    def resolve(self, raw_verb: str, source_pool: Pool, target_pool: Pool) -> VerbResolution:
        verb = normalize_verb(raw_verb)

        direct = self._lookup(verb)
        if direct is not None:
            entry, inverted = direct
            return self._resolution(raw_verb, entry, EXACT_CONFIDENCE, None, inverted=inverted)

        alternate = self._alternates.get(verb)
        if alternate is not None:
            mapped = self._lookup(alternate)
            if mapped is not None and self._fits(mapped, source_pool, target_pool):
                entry, inverted = mapped
                warning = f"Alternate verb '{raw_verb}' mapped to glossary verb '{entry.verb}'"
                return self._resolution(
                    raw_verb, entry, ALTERNATE_CONFIDENCE, warning, inverted=inverted
                )

        for pattern, candidate in self._heuristics:
            if not pattern.search(verb):
                continue
            mapped = self._lookup(candidate)
            if mapped is not None and self._fits(mapped, source_pool, target_pool):
                entry, inverted = mapped
                warning = f"Fuzzy match: '{raw_verb}' mapped to '{entry.verb}'"
                return self._resolution(
                    raw_verb, entry, HEURISTIC_CONFIDENCE, warning, inverted=inverted
                )

        warning = (
            f"Unknown verb '{raw_verb}' defaulted to '{FALLBACK_VERB}' - consider manual review"
        )
        return self._resolution(
            raw_verb, self._entries[FALLBACK_VERB], FALLBACK_CONFIDENCE, warning, inverted=False
        )

    def validate(self, verb: str, source: NodeRef, target: NodeRef) -> VerbGlossaryEntry:
        """Check a forward verb against its pool constraints; reject self-loops."""

        entry = self.entry(verb)
        if source == target:
            raise SelfLoopError(f"Relationship '{verb}' would loop on {source}")
        if not entry.accepts(source.pool, target.pool):
            raise PoolConstraintError(
                f"Verb '{verb}' does not allow {source.pool.value} -> {target.pool.value}"
            )
        return entry

    def _lookup(self, verb: str) -> tuple[VerbGlossaryEntry, bool] | None:
        entry = self._entries.get(verb)
        if entry is not None:
            return entry, False
        entry = self._reverse.get(verb)
        if entry is not None:
            return entry, True
        return None

    @staticmethod
    def _fits(
        mapped: tuple[VerbGlossaryEntry, bool], source_pool: Pool, target_pool: Pool
    ) -> bool:
        entry, inverted = mapped
        if inverted:
            return entry.accepts(target_pool, source_pool)
        return entry.accepts(source_pool, target_pool)

    @staticmethod
    def _resolution(
        raw_verb: str,
        entry: VerbGlossaryEntry,
        confidence: float,
        warning: str | None,
        *,
        inverted: bool,
    ) -> VerbResolution:
        if warning is not None:
            log.warning(warning)
        return VerbResolution(
            raw_verb=raw_verb,
            verb=entry.verb,
            reverse_verb=entry.reverse_verb,
            symmetric=entry.symmetric,
            confidence=confidence,
            warning=warning,
            inverted=inverted,
        )


DEFAULT_GLOSSARY: Final[VerbGlossary] = VerbGlossary()
