"""create executions table

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "executions",
        sa.Column("id", sa.String(length=96), primary_key=True),
        sa.Column("script_id", sa.String(length=64), nullable=False),
        sa.Column("script_name", sa.String(length=255), nullable=True),
        sa.Column("script_path", sa.Text(), nullable=True),
        sa.Column("command", sa.Text(), nullable=False),
        sa.Column("args", sa.Text(), nullable=False),
        sa.Column("env", sa.Text(), nullable=False),
        sa.Column("output", sa.Text(), nullable=True),
        sa.Column("output_truncated", sa.Boolean(), nullable=False),
        sa.Column("exit_code", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("incognito", sa.Boolean(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_executions_script_id", "executions", ["script_id"])
    op.create_index("ix_executions_started_at", "executions", ["started_at"])
    op.create_index("ix_executions_script_started", "executions", ["script_id", "started_at"])


def downgrade() -> None:
    op.drop_index("ix_executions_script_started", table_name="executions")
    op.drop_index("ix_executions_started_at", table_name="executions")
    op.drop_index("ix_executions_script_id", table_name="executions")
    op.drop_table("executions")
