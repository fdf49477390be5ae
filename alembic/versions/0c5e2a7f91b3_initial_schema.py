"""Initial schema: profiles, moderation, community, library, vault, audit

Revision ID: 0c5e2a7f91b3
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0c5e2a7f91b3"
down_revision = None
branch_labels = None
depends_on = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False, unique=True),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("profile_photo_url", sa.Text(), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_muted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("warning_count", sa.Integer(), nullable=False, server_default="0"),
        _created_at("joined_at"),
        sa.CheckConstraint("warning_count >= 0", name="ck_profiles_warning_count"),
    )
    op.create_index("ix_profiles_joined_at", "profiles", ["joined_at"])

    op.create_table(
        "warnings",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("issued_by", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_warnings_user_time", "warnings", ["user_id", "created_at"])

    op.create_table(
        "community_posts",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="text"),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("link_url", sa.Text(), nullable=True),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_community_posts_created_at", "community_posts", ["created_at"])

    op.create_table(
        "community_replies",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "post_id", sa.Integer(),
            sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_community_replies_post", "community_replies", ["post_id"])

    op.create_table(
        "post_reactions",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "post_id", sa.Integer(),
            sa.ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("emoji", sa.String(32), nullable=False),
    )
    op.create_index("ix_post_reactions_post", "post_reactions", ["post_id"])

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_user_id", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("reported_by", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index("ix_reports_status_time", "reports", ["status", "created_at"])

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_by", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "library_items",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("link_url", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_library_items_category", "library_items", ["category"])

    op.create_table(
        "library_ratings",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "library_item_id", sa.Integer(),
            sa.ForeignKey("library_items.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.UniqueConstraint("library_item_id", "user_id", name="uq_library_ratings_item_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_library_ratings_range"),
    )

    op.create_table(
        "library_comments",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "library_item_id", sa.Integer(),
            sa.ForeignKey("library_items.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_library_comments_item", "library_comments", ["library_item_id"])

    op.create_table(
        "study_vault_items",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("link_url", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_study_vault_items_user", "study_vault_items", ["user_id", "created_at"])

    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.Text(), nullable=True),
        sa.Column("before_snapshot", postgresql.JSONB(), nullable=True),
        sa.Column("after_snapshot", postgresql.JSONB(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        _created_at("timestamp"),
    )
    op.create_index("ix_admin_log_actor_time", "admin_log", ["actor_id", "timestamp"])
    op.create_index(
        "ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"],
    )


def downgrade() -> None:
    for table in (
        "admin_log",
        "study_vault_items",
        "library_comments",
        "library_ratings",
        "library_items",
        "announcements",
        "reports",
        "post_reactions",
        "community_replies",
        "community_posts",
        "warnings",
        "profiles",
    ):
        op.drop_table(table)
