"""create posts table

Revision ID: a7c1e2f3d4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a7c1e2f3d4b5"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("created_at <= updated_at", name="ck_posts_timestamps"),
        if_not_exists=True,
    )
    op.create_index(
        "ix_posts_updated_at",
        "posts",
        ["updated_at"],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_posts_updated_at", table_name="posts")
    op.drop_table("posts")
