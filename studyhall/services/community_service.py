"""
studyhall.services.community_service — Community Feed Content Store
====================================================================

Posts, replies and reactions.  Creation is gated on the author's trust
state (no bans, no mutes); deletion and pinning are admin-only.

Deleting a post removes its reactions and replies before the post itself,
inside one transaction, so no child row ever points at a missing post.
The foreign keys also declare ``ON DELETE CASCADE`` for engines that
enforce them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from studyhall.constants import MAX_EMOJI_LENGTH, PostType
from studyhall.database.engine import get_session
from studyhall.database.models import CommunityPost, CommunityReply, PostReaction, Profile
from studyhall.engine.policy import Action, ensure_allowed
from studyhall.engine.views import PostView
from studyhall.errors import NotFoundError, ValidationError
from studyhall.services.audit import AdminActionType, log_admin_action, row_to_dict
from studyhall.services.profile_service import find_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} must not be empty", field=field)
    return text


def infer_post_type(media_url: str | None, link_url: str | None) -> PostType:
    """Media wins over link; neither means a plain text post."""
    if media_url:
        return PostType.PHOTO
    if link_url:
        return PostType.LINK
    return PostType.TEXT


def _require_post(session: Session, post_id: int) -> CommunityPost:
    post = session.get(CommunityPost, post_id)
    if post is None:
        raise NotFoundError(f"Post not found: {post_id}")
    return post


def _load_profiles(session: Session, user_ids: Iterable[str | None]) -> dict[str, Profile]:
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    rows = session.scalars(select(Profile).where(Profile.user_id.in_(ids))).all()
    return {p.user_id: p for p in rows}


def _hydrate(session: Session, posts: Sequence[CommunityPost]) -> list[PostView]:
    """Assemble :class:`PostView` objects with three bulk queries."""
    if not posts:
        return []
    post_ids = [p.id for p in posts]

    replies_by_post: dict[int, list[CommunityReply]] = defaultdict(list)
    for r in session.scalars(
        select(CommunityReply)
        .where(CommunityReply.post_id.in_(post_ids))
        .order_by(CommunityReply.created_at, CommunityReply.id)
    ):
        replies_by_post[r.post_id].append(r)

    reactions_by_post: dict[int, list[PostReaction]] = defaultdict(list)
    for r in session.scalars(
        select(PostReaction)
        .where(PostReaction.post_id.in_(post_ids))
        .order_by(PostReaction.id)
    ):
        reactions_by_post[r.post_id].append(r)

    user_ids = [p.user_id for p in posts]
    user_ids += [r.user_id for rs in replies_by_post.values() for r in rs]
    profiles = _load_profiles(session, user_ids)

    return [
        PostView.from_model(
            p,
            profiles=profiles,
            replies=replies_by_post.get(p.id, ()),
            reactions=reactions_by_post.get(p.id, ()),
        )
        for p in posts
    ]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_posts(engine: Engine) -> list[PostView]:
    """All posts newest first, each with author, replies and reactions.

    Pinned posts are included in place; consumers sort by ``is_pinned``.
    """
    with get_session(engine) as session:
        posts = session.scalars(
            select(CommunityPost).order_by(
                CommunityPost.created_at.desc(), CommunityPost.id.desc()
            )
        ).all()
        return _hydrate(session, posts)


def get_post(engine: Engine, post_id: int) -> PostView:
    with get_session(engine) as session:
        return _hydrate(session, [_require_post(session, post_id)])[0]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def create_post(
    engine: Engine,
    *,
    actor_id: str,
    content: str,
    media_url: str | None = None,
    link_url: str | None = None,
) -> CommunityPost:
    with get_session(engine) as session:
        ensure_allowed(Action.CREATE_POST, find_profile(session, actor_id))
        post = CommunityPost(
            user_id=actor_id,
            content=_require_text(content, "content"),
            type=infer_post_type(media_url, link_url).value,
            media_url=media_url or None,
            link_url=link_url or None,
            is_pinned=False,
        )
        session.add(post)
        session.flush()
        session.refresh(post)
        return post


def reply(engine: Engine, *, post_id: int, actor_id: str, content: str) -> CommunityReply:
    with get_session(engine) as session:
        ensure_allowed(Action.REPLY, find_profile(session, actor_id))
        _require_post(session, post_id)
        row = CommunityReply(
            post_id=post_id,
            user_id=actor_id,
            content=_require_text(content, "content"),
        )
        session.add(row)
        session.flush()
        session.refresh(row)
        return row


def react(engine: Engine, *, post_id: int, actor_id: str, emoji: str) -> PostReaction:
    """Add a reaction.  Repeats are allowed; nothing is de-duplicated."""
    emoji = (emoji or "").strip()
    if not emoji or len(emoji) > MAX_EMOJI_LENGTH:
        raise ValidationError(
            f"emoji must be 1–{MAX_EMOJI_LENGTH} characters", field="emoji",
        )
    with get_session(engine) as session:
        ensure_allowed(Action.REACT, find_profile(session, actor_id))
        _require_post(session, post_id)
        row = PostReaction(post_id=post_id, user_id=actor_id, emoji=emoji)
        session.add(row)
        session.flush()
        return row


def delete_post(engine: Engine, *, post_id: int, actor_id: str) -> None:
    """Admin delete; reactions and replies go first, then the post."""
    with get_session(engine) as session:
        ensure_allowed(Action.DELETE_POST, find_profile(session, actor_id))
        post = _require_post(session, post_id)
        before = row_to_dict(post)

        session.execute(
            delete(PostReaction)
            .where(PostReaction.post_id == post_id)
            .execution_options(synchronize_session=False)
        )
        session.execute(
            delete(CommunityReply)
            .where(CommunityReply.post_id == post_id)
            .execution_options(synchronize_session=False)
        )
        session.expunge(post)
        session.execute(delete(CommunityPost).where(CommunityPost.id == post_id))

        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="community_posts",
            target_id=post_id,
            before=before,
            after=None,
        )
        logger.info("Post %d deleted by admin %s", post_id, actor_id)


def delete_reply(engine: Engine, *, reply_id: int, actor_id: str) -> None:
    with get_session(engine) as session:
        ensure_allowed(Action.DELETE_REPLY, find_profile(session, actor_id))
        row = session.get(CommunityReply, reply_id)
        if row is None:
            raise NotFoundError(f"Reply not found: {reply_id}")
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="community_replies",
            target_id=reply_id,
            before=row_to_dict(row),
            after=None,
        )
        session.delete(row)


def _set_pinned(engine: Engine, *, post_id: int, actor_id: str, pinned: bool) -> CommunityPost:
    action = Action.PIN_POST if pinned else Action.UNPIN_POST
    with get_session(engine) as session:
        ensure_allowed(action, find_profile(session, actor_id))
        post = _require_post(session, post_id)
        if post.is_pinned != pinned:
            before = row_to_dict(post)
            post.is_pinned = pinned
            session.flush()
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=AdminActionType.PIN if pinned else AdminActionType.UNPIN,
                target_table="community_posts",
                target_id=post_id,
                before=before,
                after=row_to_dict(post),
            )
        return post


def pin_post(engine: Engine, *, post_id: int, actor_id: str) -> CommunityPost:
    """Flag a post as pinned.  Any number of posts may be pinned at once."""
    return _set_pinned(engine, post_id=post_id, actor_id=actor_id, pinned=True)


def unpin_post(engine: Engine, *, post_id: int, actor_id: str) -> CommunityPost:
    return _set_pinned(engine, post_id=post_id, actor_id=actor_id, pinned=False)
