"""SQLAlchemy mapping metadata for the pipeline domain model and the property graph."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
    text,
)
from sqlalchemy.orm import configure_mappers

from graphwright.domain.model import (
    ConsentStatus,
    ConstraintKind,
    ErrorKind,
    JobStatus,
    LexiconTerm,
    LicenseType,
    MergeReason,
    PipelineRun,
    Pool,
    PoolEntity,
    PoolRelation,
    RightsRecord,
    RunStatus,
    SourceItem,
    Stage,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]

# Predicate shared by the model and the migration; enum columns store member names.
OPEN_JOB_PREDICATE: Final[str] = "status IN ('QUEUED', 'CLAIMED')"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONDocument(TypeDecorator[Any]):
    """JSON stored as text; mutate by reassigning, in-place changes are not tracked."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True, default=str)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Any:
        _ = dialect
        if value is None:
            return None
        return json.loads(value)


def _enum(enum_cls: type[Any]) -> Enum:
    return Enum(enum_cls, native_enum=False, length=32)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Pipeline tables -------------------------------------------------------------

pipeline_run_table = Table(
    "pipeline_run",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("knowledge_base", String(128), nullable=False),
    Column("stage", _enum(Stage), nullable=False),
    Column("status", _enum(RunStatus), nullable=False, index=True),
    Column("options", JSONDocument, nullable=False, default=dict),
    Column("stage_started_at", UTCDateTime(), nullable=True),
    Column("retry_count", Integer, nullable=False, default=0),
    Column("resume_count", Integer, nullable=False, default=0),
    Column("pause_requested", Boolean, nullable=False, default=False),
    Column("metrics", JSONDocument, nullable=False, default=dict),
    Column("error_kind", _enum(ErrorKind), nullable=True),
    Column("last_error", Text, nullable=True),
    Column("error_details", JSONDocument, nullable=True),
    Column("acceptance", JSONDocument, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("started_at", UTCDateTime(), nullable=True),
    Column("completed_at", UTCDateTime(), nullable=True),
    Column("last_retry_at", UTCDateTime(), nullable=True),
    Column("version", Integer, nullable=False),
)

rights_record_table = Table(
    "rights_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("context_key", String(255), nullable=False, unique=True),
    Column("license", _enum(LicenseType), nullable=False),
    Column("consent", _enum(ConsentStatus), nullable=False),
    Column("publishable", Boolean, nullable=False),
    Column("trainable", Boolean, nullable=False),
    Column("attribution_required", Boolean, nullable=False),
    Column("confidence", Float, nullable=False),
    Column("embargo_until", UTCDateTime(), nullable=True),
    Column("custom_terms", JSONDocument, nullable=False, default=dict),
    Column("source", String(32), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

source_item_table = Table(
    "source_item",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("run_id", UUIDColumnType, ForeignKey("pipeline_run.id"), nullable=False, index=True),
    Column("uri", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("metadata", JSONDocument, key="source_metadata", nullable=False, default=dict),
    Column("media_type", String(64), nullable=True),
    Column("content_hash", String(64), nullable=True),
    Column("rights_id", UUIDColumnType, ForeignKey("rights_record.id"), nullable=True),
    Column("quarantined", Boolean, nullable=False, default=False),
    Column("quarantine_reason", Text, nullable=True),
    Column("failed", Boolean, nullable=False, default=False),
    Column("extraction", JSONDocument, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
)

pool_entity_table = Table(
    "pool_entity",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("run_id", UUIDColumnType, ForeignKey("pipeline_run.id"), nullable=False, index=True),
    Column("item_id", UUIDColumnType, ForeignKey("source_item.id"), nullable=False),
    Column("local_ref", String(255), nullable=False),
    Column("pool", _enum(Pool), nullable=False),
    Column("label", Text, nullable=False),
    Column("repr_text", Text, nullable=False),
    Column("rights_id", UUIDColumnType, ForeignKey("rights_record.id"), nullable=True),
    Column("valid_time_start", UTCDateTime(), nullable=True),
    Column("valid_time_end", UTCDateTime(), nullable=True),
    Column("observed_at", UTCDateTime(), nullable=True),
    Column("attributes", JSONDocument, nullable=False, default=dict),
    Column("confidence", Float, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

pool_relation_table = Table(
    "pool_relation",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("run_id", UUIDColumnType, ForeignKey("pipeline_run.id"), nullable=False, index=True),
    Column("item_id", UUIDColumnType, ForeignKey("source_item.id"), nullable=False),
    Column("source_id", UUIDColumnType, ForeignKey("pool_entity.id"), nullable=False),
    Column("target_id", UUIDColumnType, ForeignKey("pool_entity.id"), nullable=False),
    Column("raw_verb", String(128), nullable=False),
    Column("evidence", Text, nullable=True),
    Column("confidence", Float, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

lexicon_term_table = Table(
    "lexicon_term",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("run_id", UUIDColumnType, ForeignKey("pipeline_run.id"), nullable=False, index=True),
    Column("canonical", String(255), nullable=False),
    Column("surface_forms", JSONDocument, nullable=False, default=list),
    Column("pools", JSONDocument, nullable=False, default=list),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("run_id", "canonical"),
)

stage_job_table = Table(
    "stage_job",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("run_id", UUIDColumnType, ForeignKey("pipeline_run.id"), nullable=False),
    Column("stage", _enum(Stage), nullable=False),
    Column("status", _enum(JobStatus), nullable=False),
    Column("enqueued_at", UTCDateTime(), nullable=False),
    Column("available_at", UTCDateTime(), nullable=False),
    Column("claimed_at", UTCDateTime(), nullable=True),
    Column("claimed_by", String(128), nullable=True),
    Column("finished_at", UTCDateTime(), nullable=True),
    Column("attempts", Integer, nullable=False, default=0),
    Index("ix_stage_job_status_available_at", "status", "available_at"),
    Index(
        "uq_stage_job_open_run_stage",
        "run_id",
        "stage",
        unique=True,
        sqlite_where=text(OPEN_JOB_PREDICATE),
        postgresql_where=text(OPEN_JOB_PREDICATE),
    ),
)

# Property graph tables -------------------------------------------------------

graph_node_table = Table(
    "graph_node",
    mapper_registry.metadata,
    Column("graph", String(128), primary_key=True),
    Column("pool", _enum(Pool), primary_key=True),
    Column("key", String(255), primary_key=True),
    Column("properties", JSONDocument, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

graph_edge_table = Table(
    "graph_edge",
    mapper_registry.metadata,
    Column("graph", String(128), primary_key=True),
    Column("source_pool", _enum(Pool), primary_key=True),
    Column("source_key", String(255), primary_key=True),
    Column("verb", String(64), primary_key=True),
    Column("target_pool", _enum(Pool), primary_key=True),
    Column("target_key", String(255), primary_key=True),
    Column("properties", JSONDocument, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("ix_graph_edge_target", "graph", "target_pool", "target_key"),
)

graph_constraint_table = Table(
    "graph_constraint",
    mapper_registry.metadata,
    Column("graph", String(128), primary_key=True),
    Column("name", String(255), primary_key=True),
    Column("kind", _enum(ConstraintKind), nullable=False),
    Column("pool", _enum(Pool), nullable=False),
    Column("properties", JSONDocument, nullable=False),
)

graph_alias_table = Table(
    "graph_alias",
    mapper_registry.metadata,
    Column("graph", String(128), primary_key=True),
    Column("pool", _enum(Pool), primary_key=True),
    Column("merged_key", String(255), primary_key=True),
    Column("survivor_key", String(255), nullable=False),
)

graph_merge_table = Table(
    "graph_merge",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("graph", String(128), nullable=False, index=True),
    Column("pool", _enum(Pool), nullable=False),
    Column("kept_key", String(255), nullable=False),
    Column("removed_key", String(255), nullable=False),
    Column("reason", _enum(MergeReason), nullable=False),
    Column("run_id", UUIDColumnType, nullable=True),
    Column("details", JSONDocument, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Map the domain dataclasses imperatively; safe to call repeatedly."""

    mapper_registry.map_imperatively(
        PipelineRun,
        pipeline_run_table,
        version_id_col=pipeline_run_table.c.version,
    )
    mapper_registry.map_imperatively(RightsRecord, rights_record_table)
    mapper_registry.map_imperatively(SourceItem, source_item_table)
    mapper_registry.map_imperatively(PoolEntity, pool_entity_table)
    mapper_registry.map_imperatively(PoolRelation, pool_relation_table)
    mapper_registry.map_imperatively(LexiconTerm, lexicon_term_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
