"""Enumerations shared across the domain model."""

from __future__ import annotations

from enum import StrEnum


class Stage(StrEnum):
    INTAKE = "intake"
    RIGHTS = "rights"
    LEXICON = "lexicon"
    POOLS = "pools"
    GRAPH = "graph"
    EMBEDDINGS = "embeddings"
    LITERACY = "literacy"
    DELIVERABLES = "deliverables"

    @property
    def position(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def next(self) -> Stage | None:
        index = self.position + 1
        return STAGE_ORDER[index] if index < len(STAGE_ORDER) else None

    @property
    def is_terminal(self) -> bool:
        return self.next is None


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


class RunStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    RETRYING = "retrying"
    PAUSED = "paused"
    FAILED = "failed"
    COMPLETED = "completed"


ACTIVE_STATUSES: frozenset[RunStatus] = frozenset(
    {RunStatus.PENDING, RunStatus.RUNNING, RunStatus.RETRYING}
)


class ErrorKind(StrEnum):
    TRANSIENT = "transient"
    INVALID_DATA = "invalid_data"
    ABORTED = "aborted"
    UNEXPECTED = "unexpected"

    @property
    def auto_resumable(self) -> bool:
        return self is ErrorKind.UNEXPECTED


class JobStatus(StrEnum):
    QUEUED = "queued"
    CLAIMED = "claimed"
    DONE = "done"
    DISCARDED = "discarded"
    ABANDONED = "abandoned"


class ClaimStatus(StrEnum):
    QUEUED = "queued"
    CLAIMED = "claimed"
    NONE = "none"


class ConsentStatus(StrEnum):
    UNKNOWN = "unknown"
    EXPLICIT_CONSENT = "explicit_consent"
    IMPLICIT_CONSENT = "implicit_consent"
    NO_CONSENT = "no_consent"
    WITHDRAWN = "withdrawn"

    @property
    def denied(self) -> bool:
        return self in {ConsentStatus.NO_CONSENT, ConsentStatus.WITHDRAWN}


class LicenseType(StrEnum):
    UNSPECIFIED = "unspecified"
    CC0 = "cc0"
    CC_BY = "cc_by"
    CC_BY_SA = "cc_by_sa"
    CC_BY_NC = "cc_by_nc"
    CC_BY_NC_SA = "cc_by_nc_sa"
    CC_BY_ND = "cc_by_nd"
    CC_BY_NC_ND = "cc_by_nc_nd"
    PROPRIETARY = "proprietary"
    PUBLIC_DOMAIN = "public_domain"
    FAIR_USE = "fair_use"
    CUSTOM = "custom"


class MergeReason(StrEnum):
    SAME_CANONICAL_LABEL = "same_canonical_label"
    MANUAL = "manual"


class ConstraintKind(StrEnum):
    UNIQUE = "unique"
    EXISTS = "exists"
