"""Domain model for pipeline runs, rights and knowledge graph entities."""

from __future__ import annotations

from .audit import NodeMerge
from .enums import (
    ACTIVE_STATUSES,
    STAGE_ORDER,
    ClaimStatus,
    ConsentStatus,
    ConstraintKind,
    ErrorKind,
    JobStatus,
    LicenseType,
    MergeReason,
    RunStatus,
    Stage,
)
from .graph import GraphEdge, GraphNode, NodeRef, SchemaConstraint
from .items import SourceInput, SourceItem, content_hash, detect_media_type
from .knowledge import LexiconTerm, PoolEntity, PoolRelation, normalize_label, stable_id
from .pools import CONTENT_POOLS, CORE_POOLS, ISOLATED_POOLS, TEMPORAL_FIELDS, Pool, PoolKind
from .rights import RightsRecord, RightsTerms
from .run import PipelineRun, RunOptions, StageMetrics

__all__ = [
    "ACTIVE_STATUSES",
    "CONTENT_POOLS",
    "CORE_POOLS",
    "ISOLATED_POOLS",
    "STAGE_ORDER",
    "TEMPORAL_FIELDS",
    "ClaimStatus",
    "ConsentStatus",
    "ConstraintKind",
    "ErrorKind",
    "GraphEdge",
    "GraphNode",
    "JobStatus",
    "LexiconTerm",
    "LicenseType",
    "MergeReason",
    "NodeMerge",
    "NodeRef",
    "PipelineRun",
    "Pool",
    "PoolEntity",
    "PoolKind",
    "PoolRelation",
    "RightsRecord",
    "RightsTerms",
    "RunOptions",
    "RunStatus",
    "SchemaConstraint",
    "SourceInput",
    "SourceItem",
    "Stage",
    "StageMetrics",
    "content_hash",
    "detect_media_type",
    "normalize_label",
    "stable_id",
]
