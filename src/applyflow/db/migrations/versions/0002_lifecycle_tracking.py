"""Lifecycle tracking columns

Revision ID: 0002_lifecycle_tracking
Revises: 0001_jobs_table
Create Date: 2026-08-21

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_lifecycle_tracking"
down_revision = "0001_jobs_table"
branch_labels = None
depends_on = None


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if table not in insp.get_table_names():
        return False
    cols = {c["name"] for c in insp.get_columns(table)}
    return column in cols


def _identity_columns() -> list[sa.Column]:
    # tables that predate 0001 may lack these
    return [
        sa.Column("platform", sa.String(length=40), nullable=False, server_default="generic"),
        sa.Column("company", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("location", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="discovered"),
        sa.Column(
            "discovered_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("'1970-01-01 00:00:00'"),
        ),
    ]


def _lifecycle_columns() -> list[sa.Column]:
    return [
        sa.Column("status_detail", sa.Text(), nullable=False, server_default=""),
        sa.Column("failure_category", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("enriched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("prepared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("'1970-01-01 00:00:00'"),
        ),
        sa.Column("resume_path", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("cover_letter_path", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("artifact_paths", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("metadata", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    expected = [*_identity_columns(), *_lifecycle_columns()]
    missing = [column for column in expected if not _has_column(insp, "jobs", column.name)]
    if missing:
        with op.batch_alter_table("jobs", schema=None) as batch_op:
            for column in missing:
                batch_op.add_column(column)

    indexes = {idx["name"] for idx in insp.get_indexes("jobs")}
    if "ix_jobs_status" not in indexes:
        op.create_index("ix_jobs_status", "jobs", ["status"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    dropped = ["failure_category", "notes", "enriched_at", "prepared_at", "updated_at", "artifact_paths", "metadata"]
    with op.batch_alter_table("jobs", schema=None) as batch_op:
        for name in dropped:
            if _has_column(insp, "jobs", name):
                batch_op.drop_column(name)
