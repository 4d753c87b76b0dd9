"""Initial schema: pipeline runs, extraction rows, stage jobs and the property graph.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

OPEN_JOB_PREDICATE = "status IN ('QUEUED', 'CLAIMED')"


def _enum() -> sa.String:
    # enum columns are stored as member names
    return sa.String(32)


def _timestamp() -> sa.DateTime:
    return sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "pipeline_run",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("knowledge_base", sa.String(128), nullable=False),
        sa.Column("stage", _enum(), nullable=False),
        sa.Column("status", _enum(), nullable=False),
        sa.Column("options", sa.Text(), nullable=False),
        sa.Column("stage_started_at", _timestamp(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("resume_count", sa.Integer(), nullable=False),
        sa.Column("pause_requested", sa.Boolean(), nullable=False),
        sa.Column("metrics", sa.Text(), nullable=False),
        sa.Column("error_kind", _enum(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("error_details", sa.Text(), nullable=True),
        sa.Column("acceptance", sa.Text(), nullable=True),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.Column("updated_at", _timestamp(), nullable=False),
        sa.Column("started_at", _timestamp(), nullable=True),
        sa.Column("completed_at", _timestamp(), nullable=True),
        sa.Column("last_retry_at", _timestamp(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_pipeline_run"),
    )
    op.create_index("ix_pipeline_run_status", "pipeline_run", ["status"])

    op.create_table(
        "rights_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("context_key", sa.String(255), nullable=False),
        sa.Column("license", _enum(), nullable=False),
        sa.Column("consent", _enum(), nullable=False),
        sa.Column("publishable", sa.Boolean(), nullable=False),
        sa.Column("trainable", sa.Boolean(), nullable=False),
        sa.Column("attribution_required", sa.Boolean(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("embargo_until", _timestamp(), nullable=True),
        sa.Column("custom_terms", sa.Text(), nullable=False),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_rights_record"),
        sa.UniqueConstraint("context_key", name="uq_rights_record_context_key"),
    )

    op.create_table(
        "source_item",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("uri", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", sa.Text(), nullable=False),
        sa.Column("media_type", sa.String(64), nullable=True),
        sa.Column("content_hash", sa.String(64), nullable=True),
        sa.Column("rights_id", sa.Uuid(), nullable=True),
        sa.Column("quarantined", sa.Boolean(), nullable=False),
        sa.Column("quarantine_reason", sa.Text(), nullable=True),
        sa.Column("failed", sa.Boolean(), nullable=False),
        sa.Column("extraction", sa.Text(), nullable=True),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"], ["pipeline_run.id"], name="fk_source_item_run_id_pipeline_run"
        ),
        sa.ForeignKeyConstraint(
            ["rights_id"], ["rights_record.id"], name="fk_source_item_rights_id_rights_record"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_source_item"),
    )
    op.create_index("ix_source_item_run_id", "source_item", ["run_id"])

    op.create_table(
        "pool_entity",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("local_ref", sa.String(255), nullable=False),
        sa.Column("pool", _enum(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("repr_text", sa.Text(), nullable=False),
        sa.Column("rights_id", sa.Uuid(), nullable=True),
        sa.Column("valid_time_start", _timestamp(), nullable=True),
        sa.Column("valid_time_end", _timestamp(), nullable=True),
        sa.Column("observed_at", _timestamp(), nullable=True),
        sa.Column("attributes", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"], ["pipeline_run.id"], name="fk_pool_entity_run_id_pipeline_run"
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["source_item.id"], name="fk_pool_entity_item_id_source_item"
        ),
        sa.ForeignKeyConstraint(
            ["rights_id"], ["rights_record.id"], name="fk_pool_entity_rights_id_rights_record"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pool_entity"),
    )
    op.create_index("ix_pool_entity_run_id", "pool_entity", ["run_id"])

    op.create_table(
        "pool_relation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("source_id", sa.Uuid(), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column("raw_verb", sa.String(128), nullable=False),
        sa.Column("evidence", sa.Text(), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"], ["pipeline_run.id"], name="fk_pool_relation_run_id_pipeline_run"
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["source_item.id"], name="fk_pool_relation_item_id_source_item"
        ),
        sa.ForeignKeyConstraint(
            ["source_id"], ["pool_entity.id"], name="fk_pool_relation_source_id_pool_entity"
        ),
        sa.ForeignKeyConstraint(
            ["target_id"], ["pool_entity.id"], name="fk_pool_relation_target_id_pool_entity"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_pool_relation"),
    )
    op.create_index("ix_pool_relation_run_id", "pool_relation", ["run_id"])

    op.create_table(
        "lexicon_term",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("canonical", sa.String(255), nullable=False),
        sa.Column("surface_forms", sa.Text(), nullable=False),
        sa.Column("pools", sa.Text(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"], ["pipeline_run.id"], name="fk_lexicon_term_run_id_pipeline_run"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_lexicon_term"),
        sa.UniqueConstraint("run_id", "canonical", name="uq_lexicon_term_run_id"),
    )
    op.create_index("ix_lexicon_term_run_id", "lexicon_term", ["run_id"])

    op.create_table(
        "stage_job",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("stage", _enum(), nullable=False),
        sa.Column("status", _enum(), nullable=False),
        sa.Column("enqueued_at", _timestamp(), nullable=False),
        sa.Column("available_at", _timestamp(), nullable=False),
        sa.Column("claimed_at", _timestamp(), nullable=True),
        sa.Column("claimed_by", sa.String(128), nullable=True),
        sa.Column("finished_at", _timestamp(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"], ["pipeline_run.id"], name="fk_stage_job_run_id_pipeline_run"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_stage_job"),
    )
    op.create_index("ix_stage_job_status_available_at", "stage_job", ["status", "available_at"])
    op.create_index(
        "uq_stage_job_open_run_stage",
        "stage_job",
        ["run_id", "stage"],
        unique=True,
        sqlite_where=sa.text(OPEN_JOB_PREDICATE),
        postgresql_where=sa.text(OPEN_JOB_PREDICATE),
    )

    op.create_table(
        "graph_node",
        sa.Column("graph", sa.String(128), nullable=False),
        sa.Column("pool", _enum(), nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("properties", sa.Text(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.Column("updated_at", _timestamp(), nullable=False),
        sa.PrimaryKeyConstraint("graph", "pool", "key", name="pk_graph_node"),
    )

    op.create_table(
        "graph_edge",
        sa.Column("graph", sa.String(128), nullable=False),
        sa.Column("source_pool", _enum(), nullable=False),
        sa.Column("source_key", sa.String(255), nullable=False),
        sa.Column("verb", sa.String(64), nullable=False),
        sa.Column("target_pool", _enum(), nullable=False),
        sa.Column("target_key", sa.String(255), nullable=False),
        sa.Column("properties", sa.Text(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.PrimaryKeyConstraint(
            "graph",
            "source_pool",
            "source_key",
            "verb",
            "target_pool",
            "target_key",
            name="pk_graph_edge",
        ),
    )
    op.create_index(
        "ix_graph_edge_target", "graph_edge", ["graph", "target_pool", "target_key"]
    )

    op.create_table(
        "graph_constraint",
        sa.Column("graph", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("kind", _enum(), nullable=False),
        sa.Column("pool", _enum(), nullable=False),
        sa.Column("properties", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("graph", "name", name="pk_graph_constraint"),
    )

    op.create_table(
        "graph_alias",
        sa.Column("graph", sa.String(128), nullable=False),
        sa.Column("pool", _enum(), nullable=False),
        sa.Column("merged_key", sa.String(255), nullable=False),
        sa.Column("survivor_key", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("graph", "pool", "merged_key", name="pk_graph_alias"),
    )

    op.create_table(
        "graph_merge",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("graph", sa.String(128), nullable=False),
        sa.Column("pool", _enum(), nullable=False),
        sa.Column("kept_key", sa.String(255), nullable=False),
        sa.Column("removed_key", sa.String(255), nullable=False),
        sa.Column("reason", _enum(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=True),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", _timestamp(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_graph_merge"),
    )
    op.create_index("ix_graph_merge_graph", "graph_merge", ["graph"])


def downgrade() -> None:
    op.drop_index("ix_graph_merge_graph", table_name="graph_merge")
    op.drop_table("graph_merge")
    op.drop_table("graph_alias")
    op.drop_table("graph_constraint")
    op.drop_index("ix_graph_edge_target", table_name="graph_edge")
    op.drop_table("graph_edge")
    op.drop_table("graph_node")
    op.drop_index("uq_stage_job_open_run_stage", table_name="stage_job")
    op.drop_index("ix_stage_job_status_available_at", table_name="stage_job")
    op.drop_table("stage_job")
    op.drop_index("ix_lexicon_term_run_id", table_name="lexicon_term")
    op.drop_table("lexicon_term")
    op.drop_index("ix_pool_relation_run_id", table_name="pool_relation")
    op.drop_table("pool_relation")
    op.drop_index("ix_pool_entity_run_id", table_name="pool_entity")
    op.drop_table("pool_entity")
    op.drop_index("ix_source_item_run_id", table_name="source_item")
    op.drop_table("source_item")
    op.drop_table("rights_record")
    op.drop_index("ix_pipeline_run_status", table_name="pipeline_run")
    op.drop_table("pipeline_run")
