"""Jobs table

Revision ID: 0001_jobs_table
Revises:
Create Date: 2026-08-03

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_jobs_table"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # databases created before migrations were tracked already have this table
    if "jobs" in insp.get_table_names():
        return

    op.create_table(
        "jobs",
        sa.Column("job_id", sa.String(length=120), primary_key=True),
        sa.Column("job_url", sa.String(length=2000), nullable=False),
        sa.Column("platform", sa.String(length=40), nullable=False, server_default="generic"),
        sa.Column("company", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("location", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="discovered"),
        sa.Column("status_detail", sa.Text(), nullable=False, server_default=""),
        sa.Column("discovered_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resume_path", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("cover_letter_path", sa.String(length=1000), nullable=False, server_default=""),
        sa.UniqueConstraint("job_url", name="uq_jobs_job_url"),
    )
    op.create_index("ix_jobs_status", "jobs", ["status"], unique=False)


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if "jobs" in insp.get_table_names():
        op.drop_index("ix_jobs_status", table_name="jobs")
        op.drop_table("jobs")
