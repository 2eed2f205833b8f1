"""create campaigns, events, campaign_metrics and spreadsheet_imports tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "campaigns",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False,
                  comment="linkedin, facebook, google, email, organic, other"),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("budget", sa.Float(), nullable=True),
        sa.Column("spend", sa.Float(), nullable=False),
        sa.Column("impressions", sa.Integer(), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False),
        sa.Column("registrations", sa.Integer(), nullable=False),
        sa.Column("attendees", sa.Integer(), nullable=False),
        sa.Column("conversion_rate", sa.Float(), nullable=True),
        sa.Column("quality_score", sa.Float(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Provenance, e.g. importing spreadsheet and originating utm_source",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_campaigns"),
        sa.UniqueConstraint("user_id", "name", "channel", name="uq_campaigns_user_name_channel"),
    )
    op.create_index("ix_campaigns_user_id", "campaigns", ["user_id"], unique=False)
    op.create_index("ix_campaigns_user_channel", "campaigns", ["user_id", "channel"], unique=False)

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_registrations", sa.Integer(), nullable=True),
        sa.Column("actual_registrations", sa.Integer(), nullable=False),
        sa.Column("attendance_count", sa.Integer(), nullable=False),
        sa.Column("engagement_score", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
        sa.UniqueConstraint("user_id", "name", name="uq_events_user_name"),
    )
    op.create_index("ix_events_user_id", "events", ["user_id"], unique=False)

    op.create_table(
        "campaign_metrics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("campaign_id", sa.Integer(), nullable=False),
        sa.Column("metric_type", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["campaign_id"],
            ["campaigns.id"],
            name="fk_campaign_metrics_campaign_id_campaigns",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_campaign_metrics"),
    )
    op.create_index("ix_campaign_metrics_campaign_id", "campaign_metrics", ["campaign_id"], unique=False)
    op.create_index(
        "ix_campaign_metrics_campaign_type_date",
        "campaign_metrics",
        ["campaign_id", "metric_type", "date"],
        unique=False,
    )

    op.create_table(
        "spreadsheet_imports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(length=512), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=True),
        sa.Column("valid_row_count", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("headers", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("column_mappings", postgresql.JSONB(astext_type=sa.Text()), nullable=True,
                  comment="Mappings confirmed by the user"),
        sa.Column("suggested_mappings", postgresql.JSONB(astext_type=sa.Text()), nullable=True,
                  comment="Mappings proposed by column detection at upload time"),
        sa.Column("preview_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("parsed_rows", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("validation_errors", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_summary", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_spreadsheet_imports"),
    )
    op.create_index("ix_spreadsheet_imports_user_id", "spreadsheet_imports", ["user_id"], unique=False)
    op.create_index("ix_spreadsheet_imports_status", "spreadsheet_imports", ["status"], unique=False)
    op.create_index(
        "ix_spreadsheet_imports_user_created",
        "spreadsheet_imports",
        ["user_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_spreadsheet_imports_user_created", table_name="spreadsheet_imports")
    op.drop_index("ix_spreadsheet_imports_status", table_name="spreadsheet_imports")
    op.drop_index("ix_spreadsheet_imports_user_id", table_name="spreadsheet_imports")
    op.drop_table("spreadsheet_imports")

    op.drop_index("ix_campaign_metrics_campaign_type_date", table_name="campaign_metrics")
    op.drop_index("ix_campaign_metrics_campaign_id", table_name="campaign_metrics")
    op.drop_table("campaign_metrics")

    op.drop_index("ix_events_user_id", table_name="events")
    op.drop_table("events")

    op.drop_index("ix_campaigns_user_channel", table_name="campaigns")
    op.drop_index("ix_campaigns_user_id", table_name="campaigns")
    op.drop_table("campaigns")
