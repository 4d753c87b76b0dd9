"""The closed set of semantic pools a knowledge entity can belong to."""

from __future__ import annotations

from enum import StrEnum
from typing import assert_never


class PoolKind(StrEnum):
    CORE = "core"
    EXTENSION = "extension"
    SYSTEM = "system"


class Pool(StrEnum):
    IDEA = "Idea"
    MANIFEST = "Manifest"
    EXPERIENCE = "Experience"
    RELATIONAL = "Relational"
    EVOLUTIONARY = "Evolutionary"
    PRACTICAL = "Practical"
    EMANATION = "Emanation"
    SPATIAL = "Spatial"
    EVIDENCE = "Evidence"
    ACTOR = "Actor"
    RISK = "Risk"
    METHOD = "Method"
    RIGHTS = "Rights"
    LEXICON = "Lexicon"

    @classmethod
    def parse(cls, value: str) -> Pool:
        """Resolve a pool name case-insensitively (``"idea"`` -> ``Pool.IDEA``)."""

        normalized = value.strip().lower()
        for pool in cls:
            if pool.value.lower() == normalized or pool.name.lower() == normalized:
                return pool
        raise ValueError(f"Unknown pool: {value!r}")

    @property
    def kind(self) -> PoolKind:
        return pool_kind(self)

    @property
    def is_content(self) -> bool:
        return self.kind is not PoolKind.SYSTEM

    @property
    def temporal_field(self) -> str:
        """Name of the temporal property that nodes of this pool must carry."""

        if self in {Pool.EXPERIENCE, Pool.EVIDENCE}:
            return "observed_at"
        return "valid_time_start"


def pool_kind(pool: Pool) -> PoolKind:
    match pool:
        case (
            Pool.IDEA
            | Pool.MANIFEST
            | Pool.EXPERIENCE
            | Pool.RELATIONAL
            | Pool.EVOLUTIONARY
            | Pool.PRACTICAL
            | Pool.EMANATION
        ):
            return PoolKind.CORE
        case Pool.SPATIAL | Pool.EVIDENCE | Pool.ACTOR | Pool.RISK | Pool.METHOD:
            return PoolKind.EXTENSION
        case Pool.RIGHTS | Pool.LEXICON:
            return PoolKind.SYSTEM
        case _:
            assert_never(pool)


CORE_POOLS: frozenset[Pool] = frozenset(pool for pool in Pool if pool.kind is PoolKind.CORE)
CONTENT_POOLS: frozenset[Pool] = frozenset(pool for pool in Pool if pool.is_content)

# Pools whose nodes may legitimately exist without structural relationships.
ISOLATED_POOLS: frozenset[Pool] = frozenset(
    {
        Pool.RIGHTS,
        Pool.LEXICON,
        Pool.SPATIAL,
        Pool.EVIDENCE,
        Pool.ACTOR,
        Pool.RISK,
        Pool.METHOD,
    }
)

TEMPORAL_FIELDS: tuple[str, ...] = ("valid_time_start", "valid_time_end", "observed_at")
