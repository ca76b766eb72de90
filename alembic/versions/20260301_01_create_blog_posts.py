"""Create blog_posts table.

Revision ID: 20260301_01
Revises:
Create Date: 2026-03-01 00:00:00
"""

# pylint: disable=invalid-name,missing-module-docstring

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20260301_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create blog_posts table."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table("blog_posts"):
        return

    op.create_table(
        "blog_posts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("image_name", sa.String(length=255), nullable=True),
        sa.Column("slug", sa.String(length=300), nullable=False),
        sa.Column(
            "status",
            sa.String(length=20),
            nullable=False,
            server_default="published",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(op.f("ix_blog_posts_slug"), "blog_posts", ["slug"], unique=False)
    op.create_index(
        op.f("ix_blog_posts_status"), "blog_posts", ["status"], unique=False
    )
    op.create_index(
        op.f("ix_blog_posts_created_at"), "blog_posts", ["created_at"], unique=False
    )


def downgrade():
    """Drop blog_posts table."""
    op.drop_index(op.f("ix_blog_posts_created_at"), table_name="blog_posts")
    op.drop_index(op.f("ix_blog_posts_status"), table_name="blog_posts")
    op.drop_index(op.f("ix_blog_posts_slug"), table_name="blog_posts")
    op.drop_table("blog_posts")
