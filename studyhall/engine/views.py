"""
studyhall.engine.views — Hydrated Read Models
==============================================

Explicit, typed shapes for the joined views the API returns: a post with
its author, replies (each with their author) and reactions; a report with
the reported user's profile; a library item with its rating summary; a
library comment with its author.  Services assemble these from ORM rows inside
the session so routes never touch lazy relationships.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from studyhall.database.models import (
    CommunityPost,
    CommunityReply,
    LibraryComment,
    LibraryItem,
    PostReaction,
    Profile,
    Report,
)

__all__ = [
    "ProfileView",
    "ReplyView",
    "ReactionView",
    "PostView",
    "ReportView",
    "LibraryItemView",
    "CommentView",
    "sort_pinned_first",
]


@dataclass(frozen=True, slots=True)
class ProfileView:
    user_id: str
    username: str | None
    bio: str | None
    profile_photo_url: str | None
    role: str
    is_banned: bool
    is_muted: bool
    warning_count: int
    joined_at: datetime | None

    @classmethod
    def from_model(cls, p: Profile) -> ProfileView:
        return cls(
            user_id=p.user_id,
            username=p.username,
            bio=p.bio,
            profile_photo_url=p.profile_photo_url,
            role=p.role,
            is_banned=p.is_banned,
            is_muted=p.is_muted,
            warning_count=p.warning_count,
            joined_at=p.joined_at,
        )


def _author(profiles: Mapping[str, Profile], user_id: str | None) -> ProfileView | None:
    if user_id is None:
        return None
    p = profiles.get(user_id)
    return ProfileView.from_model(p) if p is not None else None


@dataclass(frozen=True, slots=True)
class ReplyView:
    id: int
    post_id: int
    user_id: str
    content: str
    created_at: datetime | None
    author: ProfileView | None

    @classmethod
    def from_model(cls, r: CommunityReply, profiles: Mapping[str, Profile]) -> ReplyView:
        return cls(
            id=r.id,
            post_id=r.post_id,
            user_id=r.user_id,
            content=r.content,
            created_at=r.created_at,
            author=_author(profiles, r.user_id),
        )


@dataclass(frozen=True, slots=True)
class ReactionView:
    id: int
    post_id: int
    user_id: str
    emoji: str

    @classmethod
    def from_model(cls, r: PostReaction) -> ReactionView:
        return cls(id=r.id, post_id=r.post_id, user_id=r.user_id, emoji=r.emoji)


@dataclass(frozen=True, slots=True)
class PostView:
    id: int
    user_id: str
    content: str
    type: str
    media_url: str | None
    link_url: str | None
    is_pinned: bool
    created_at: datetime | None
    author: ProfileView | None
    replies: list[ReplyView] = field(default_factory=list)
    reactions: list[ReactionView] = field(default_factory=list)

    @classmethod
    def from_model(
        cls,
        post: CommunityPost,
        *,
        profiles: Mapping[str, Profile],
        replies: Iterable[CommunityReply] = (),
        reactions: Iterable[PostReaction] = (),
    ) -> PostView:
        return cls(
            id=post.id,
            user_id=post.user_id,
            content=post.content,
            type=post.type,
            media_url=post.media_url,
            link_url=post.link_url,
            is_pinned=post.is_pinned,
            created_at=post.created_at,
            author=_author(profiles, post.user_id),
            replies=[ReplyView.from_model(r, profiles) for r in replies],
            reactions=[ReactionView.from_model(r) for r in reactions],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ReportView:
    id: int
    target_id: int
    target_type: str
    target_user_id: str | None
    reason: str
    reported_by: str
    status: str
    created_at: datetime | None
    target_user: ProfileView | None

    @classmethod
    def from_model(cls, r: Report, profiles: Mapping[str, Profile]) -> ReportView:
        return cls(
            id=r.id,
            target_id=r.target_id,
            target_type=r.target_type,
            target_user_id=r.target_user_id,
            reason=r.reason,
            reported_by=r.reported_by,
            status=r.status,
            created_at=r.created_at,
            target_user=_author(profiles, r.target_user_id),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def sort_pinned_first(posts: Iterable[PostView]) -> list[PostView]:
    """Order pinned posts before the rest, keeping newest-first within each group.

    The store returns one newest-first collection; presenting pinned posts
    on top is left to consumers, who can use this helper.
    """
    posts = list(posts)
    return [p for p in posts if p.is_pinned] + [p for p in posts if not p.is_pinned]


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LibraryItemView:
    id: int
    title: str
    description: str | None
    category: str
    file_url: str | None
    link_url: str | None
    uploaded_by: str
    created_at: datetime | None
    average_rating: float
    rating_count: int

    @classmethod
    def from_model(
        cls, item: LibraryItem, *, average_rating: float = 0.0, rating_count: int = 0,
    ) -> LibraryItemView:
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            category=item.category,
            file_url=item.file_url,
            link_url=item.link_url,
            uploaded_by=item.uploaded_by,
            created_at=item.created_at,
            average_rating=average_rating,
            rating_count=rating_count,
        )


@dataclass(frozen=True, slots=True)
class CommentView:
    id: int
    library_item_id: int
    user_id: str
    content: str
    is_pinned: bool
    created_at: datetime | None
    author: ProfileView | None

    @classmethod
    def from_model(cls, c: LibraryComment, profiles: Mapping[str, Profile]) -> CommentView:
        return cls(
            id=c.id,
            library_item_id=c.library_item_id,
            user_id=c.user_id,
            content=c.content,
            is_pinned=c.is_pinned,
            created_at=c.created_at,
            author=_author(profiles, c.user_id),
        )
