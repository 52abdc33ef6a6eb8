"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("company", sa.String(255), nullable=False),
        sa.Column("role", sa.String(255), nullable=False),
        sa.Column("jd_snapshot", sa.Text(), nullable=True),
        sa.Column("confirmed_mapping", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_applications_owner_id", "applications", ["owner_id"])

    op.create_table(
        "evidence",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_evidence_owner_id", "evidence", ["owner_id"])

    op.create_table(
        "cover_letter_versions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column(
            "application_id",
            sa.String(36),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("slot", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_latest", sa.Boolean(), nullable=False),
        sa.Column("submission_where", sa.String(255), nullable=True),
        sa.Column("submission_notes", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cover_letter_versions_owner_id", "cover_letter_versions", ["owner_id"])
    op.create_index("ix_cover_letter_versions_application_id", "cover_letter_versions", ["application_id"])
    op.create_index(
        "uq_cover_letter_latest_per_slot",
        "cover_letter_versions",
        ["application_id", "slot"],
        unique=True,
        sqlite_where=sa.text("is_latest"),
        postgresql_where=sa.text("is_latest"),
    )

    op.create_table(
        "generation_preferences",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False, unique=True),
        sa.Column("tone", sa.String(40), nullable=True),
        sa.Column("emphasis", sa.String(200), nullable=True),
        sa.Column("keywords_include", sa.JSON(), nullable=False),
        sa.Column("keywords_avoid", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "application_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column(
            "application_id",
            sa.String(36),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", sa.String(80), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_application_events_owner_id", "application_events", ["owner_id"])
    op.create_index("ix_application_events_application_id", "application_events", ["application_id"])


def downgrade() -> None:
    op.drop_table("application_events")
    op.drop_table("generation_preferences")
    op.drop_index("uq_cover_letter_latest_per_slot", table_name="cover_letter_versions")
    op.drop_table("cover_letter_versions")
    op.drop_table("evidence")
    op.drop_table("applications")
