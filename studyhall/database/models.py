"""
studyhall.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- profiles            — One trust/identity row per authenticated user
- warnings            — Immutable disciplinary records (drive auto-ban)
- community_posts     — Feed posts (pinnable)
- community_replies   — Replies, cascade-deleted with their post
- post_reactions      — Emoji reactions, cascade-deleted with their post
- reports             — User-submitted flags queued for admin review
- announcements       — Admin broadcasts
- library_items       — Curated resources (admin-managed)
- library_ratings     — One 1–5 rating per (item, user)
- library_comments    — Pinnable discussion on library items
- study_vault_items   — Private per-user files/links
- admin_log           — Append-only audit trail of admin mutations

User identities are opaque strings issued by the auth provider, so every
``*_user_id`` / ``*_by`` column is unbounded ``Text`` rather than a FK.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from studyhall.constants import PostType, ReportStatus, Role


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all StudyHall ORM models."""


# ---------------------------------------------------------------------------
# Profiles — one row per authenticated user
# ---------------------------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    username: Mapped[str | None] = mapped_column(Text, default=None)
    bio: Mapped[str | None] = mapped_column(Text, default=None)
    profile_photo_url: Mapped[str | None] = mapped_column(Text, default=None)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Role.STUDENT.value,
    )
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_muted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    warning_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("warning_count >= 0", name="ck_profiles_warning_count"),
        Index("ix_profiles_joined_at", "joined_at"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def __repr__(self) -> str:
        return (
            f"<Profile user={self.user_id!r} role={self.role} "
            f"banned={self.is_banned} muted={self.is_muted} "
            f"warnings={self.warning_count}>"
        )


# ---------------------------------------------------------------------------
# Warnings — immutable audit records
# ---------------------------------------------------------------------------
class WarningRecord(Base):
    __tablename__ = "warnings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    issued_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_warnings_user_time", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<WarningRecord id={self.id} user={self.user_id!r} by={self.issued_by!r}>"


# ---------------------------------------------------------------------------
# Community — posts, replies, reactions
# ---------------------------------------------------------------------------
class CommunityPost(Base):
    __tablename__ = "community_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PostType.TEXT.value,
    )
    media_url: Mapped[str | None] = mapped_column(Text, default=None)
    link_url: Mapped[str | None] = mapped_column(Text, default=None)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    replies: Mapped[list[CommunityReply]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CommunityReply.id",
    )
    reactions: Mapped[list[PostReaction]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PostReaction.id",
    )

    __table_args__ = (
        Index("ix_community_posts_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<CommunityPost id={self.id} user={self.user_id!r} pinned={self.is_pinned}>"


class CommunityReply(Base):
    __tablename__ = "community_replies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    post: Mapped[CommunityPost] = relationship(back_populates="replies")

    __table_args__ = (
        Index("ix_community_replies_post", "post_id"),
    )

    def __repr__(self) -> str:
        return f"<CommunityReply id={self.id} post={self.post_id} user={self.user_id!r}>"


class PostReaction(Base):
    """Emoji reaction.  No uniqueness: the same user may repeat an emoji."""
    __tablename__ = "post_reactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("community_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)

    post: Mapped[CommunityPost] = relationship(back_populates="reactions")

    __table_args__ = (
        Index("ix_post_reactions_post", "post_id"),
    )

    def __repr__(self) -> str:
        return f"<PostReaction id={self.id} post={self.post_id} emoji={self.emoji!r}>"


# ---------------------------------------------------------------------------
# Reports — queued for admin review
# ---------------------------------------------------------------------------
class Report(Base):
    """A user-submitted flag.

    ``target_id`` is deliberately not a foreign key: reports outlive the
    content they point at.
    """
    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_user_id: Mapped[str | None] = mapped_column(Text, default=None)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    reported_by: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReportStatus.PENDING.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_reports_status_time", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Report id={self.id} {self.target_type}:{self.target_id} status={self.status}>"


# ---------------------------------------------------------------------------
# Announcements — admin broadcasts
# ---------------------------------------------------------------------------
class Announcement(Base):
    __tablename__ = "announcements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Announcement id={self.id} title={self.title!r}>"


# ---------------------------------------------------------------------------
# Library — curated resources with ratings and comments
# ---------------------------------------------------------------------------
class LibraryItem(Base):
    __tablename__ = "library_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    file_url: Mapped[str | None] = mapped_column(Text, default=None)
    link_url: Mapped[str | None] = mapped_column(Text, default=None)
    uploaded_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    ratings: Mapped[list[LibraryRating]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True,
    )
    comments: Mapped[list[LibraryComment]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_library_items_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<LibraryItem id={self.id} title={self.title!r} category={self.category!r}>"


class LibraryRating(Base):
    __tablename__ = "library_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    library_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("library_items.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("library_item_id", "user_id", name="uq_library_ratings_item_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_library_ratings_range"),
    )

    def __repr__(self) -> str:
        return f"<LibraryRating item={self.library_item_id} user={self.user_id!r} rating={self.rating}>"


class LibraryComment(Base):
    __tablename__ = "library_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    library_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("library_items.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_library_comments_item", "library_item_id"),
    )

    def __repr__(self) -> str:
        return f"<LibraryComment id={self.id} item={self.library_item_id} pinned={self.is_pinned}>"


# ---------------------------------------------------------------------------
# Study vault — private per-user items
# ---------------------------------------------------------------------------
class StudyVaultItem(Base):
    __tablename__ = "study_vault_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    file_url: Mapped[str | None] = mapped_column(Text, default=None)
    link_url: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_study_vault_items_user", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<StudyVaultItem id={self.id} user={self.user_id!r} title={self.title!r}>"


# ---------------------------------------------------------------------------
# AdminLog — append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_actor_time", "actor_id", "timestamp"),
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_id!r} action={self.action_type}>"
