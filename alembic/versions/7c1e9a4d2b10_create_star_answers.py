"""Create star_answers table.

Revision ID: 7c1e9a4d2b10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "7c1e9a4d2b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "star_answers",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("seq", sa.BigInteger(), sa.Identity(always=True), nullable=False),
    sa.Column("category", sa.Text(), nullable=False),
    sa.Column("prompt", sa.Text(), nullable=False),
    sa.Column("situation", sa.Text(), nullable=False),
    sa.Column("task", sa.Text(), nullable=False),
    sa.Column("action", sa.Text(), nullable=False),
    sa.Column("result", sa.Text(), nullable=False),
    sa.Column("full_text", sa.Text(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("seq"),
  )
  op.create_index(op.f("ix_star_answers_user_id"), "star_answers", ["user_id"], unique=False)
  op.create_index("ix_star_answers_user_order", "star_answers", ["user_id", "created_at", "seq"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_star_answers_user_order", table_name="star_answers")
  op.drop_index(op.f("ix_star_answers_user_id"), table_name="star_answers")
  op.drop_table("star_answers")
