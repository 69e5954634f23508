"""create revisions table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_create_revisions"
down_revision = "0002_create_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "revisions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("revision_id", sa.String(length=32), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scheduled_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="pending"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("reminders_sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_reminder_sent", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("task_id", "revision_id", name="uq_revisions_task_revision"),
    )
    op.create_index("ix_revisions_task_id", "revisions", ["task_id"], unique=False)
    op.create_index("ix_revisions_scheduled_date", "revisions", ["scheduled_date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_revisions_scheduled_date", table_name="revisions")
    op.drop_index("ix_revisions_task_id", table_name="revisions")
    op.drop_table("revisions")
