"""
studyhall.services.library_service — Study Library & Personal Vault
===================================================================

The shared library is curated by admins; every signed-in student can read
it, rate items (one rating per student per item, re-rating overwrites)
and discuss them in comments.  The vault is a private shelf of files and
links that only its owner sees and deletes.

Deleting a library item removes its ratings and comments first, in the
same transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studyhall.constants import MAX_RATING, MIN_RATING
from studyhall.database.engine import get_session
from studyhall.database.models import (
    LibraryComment,
    LibraryItem,
    LibraryRating,
    Profile,
    StudyVaultItem,
)
from studyhall.engine.policy import Action, ensure_allowed
from studyhall.engine.views import CommentView, LibraryItemView
from studyhall.errors import NotFoundError, ValidationError
from studyhall.services.audit import AdminActionType, log_admin_action, row_to_dict
from studyhall.services.profile_service import find_profile

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

EDITABLE_ITEM_FIELDS: frozenset[str] = frozenset({
    "title", "description", "category", "file_url", "link_url",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} must not be empty", field=field)
    return text


def _require_item(session: Session, item_id: int) -> LibraryItem:
    item = session.get(LibraryItem, item_id)
    if item is None:
        raise NotFoundError(f"Library item not found: {item_id}")
    return item


def _require_comment(session: Session, item_id: int, comment_id: int) -> LibraryComment:
    comment = session.get(LibraryComment, comment_id)
    if comment is None or comment.library_item_id != item_id:
        raise NotFoundError(f"Comment not found: {comment_id}")
    return comment


def find_rating(session: Session, item_id: int, user_id: str) -> LibraryRating | None:
    return session.scalar(
        select(LibraryRating).where(
            LibraryRating.library_item_id == item_id,
            LibraryRating.user_id == user_id,
        )
    )


def _rating_stats(session: Session, item_ids: Iterable[int]) -> dict[int, tuple[float, int]]:
    ids = list(item_ids)
    if not ids:
        return {}
    rows = session.execute(
        select(
            LibraryRating.library_item_id,
            func.avg(LibraryRating.rating),
            func.count(LibraryRating.id),
        )
        .where(LibraryRating.library_item_id.in_(ids))
        .group_by(LibraryRating.library_item_id)
    ).all()
    return {item_id: (round(float(avg), 2), int(count)) for item_id, avg, count in rows}


def _item_view(session: Session, item: LibraryItem) -> LibraryItemView:
    avg, count = _rating_stats(session, [item.id]).get(item.id, (0.0, 0))
    return LibraryItemView.from_model(item, average_rating=avg, rating_count=count)


# ---------------------------------------------------------------------------
# Library items
# ---------------------------------------------------------------------------
def list_items(engine: Engine, category: str | None = None) -> list[LibraryItemView]:
    """Newest first, each with its average rating and number of ratings."""
    with get_session(engine) as session:
        stmt = select(LibraryItem).order_by(LibraryItem.created_at.desc(), LibraryItem.id.desc())
        if category:
            stmt = stmt.where(LibraryItem.category == category)
        items = session.scalars(stmt).all()
        stats = _rating_stats(session, (i.id for i in items))
        return [
            LibraryItemView.from_model(
                i,
                average_rating=stats.get(i.id, (0.0, 0))[0],
                rating_count=stats.get(i.id, (0.0, 0))[1],
            )
            for i in items
        ]


def get_item(engine: Engine, item_id: int) -> LibraryItemView:
    with get_session(engine) as session:
        return _item_view(session, _require_item(session, item_id))


def create_item(
    engine: Engine,
    *,
    actor_id: str,
    title: str,
    category: str,
    description: str | None = None,
    file_url: str | None = None,
    link_url: str | None = None,
) -> LibraryItemView:
    title = _require_text(title, "title")
    category = _require_text(category, "category")

    with get_session(engine) as session:
        ensure_allowed(Action.CREATE_LIBRARY_ITEM, find_profile(session, actor_id))
        item = LibraryItem(
            title=title,
            category=category,
            description=description or None,
            file_url=file_url or None,
            link_url=link_url or None,
            uploaded_by=actor_id,
        )
        session.add(item)
        session.flush()
        session.refresh(item)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table="library_items",
            target_id=item.id,
            before=None,
            after=row_to_dict(item),
        )
        logger.info("Library item %d (%s) added by %s", item.id, category, actor_id)
        return LibraryItemView.from_model(item)


def update_item(
    engine: Engine, *, item_id: int, actor_id: str, updates: Mapping[str, Any],
) -> LibraryItemView:
    unknown = set(updates) - EDITABLE_ITEM_FIELDS
    if unknown:
        raise ValidationError(f"Fields not editable: {sorted(unknown)}")
    for key in ("title", "category"):
        if key in updates:
            _require_text(updates[key], key)

    with get_session(engine) as session:
        ensure_allowed(Action.UPDATE_LIBRARY_ITEM, find_profile(session, actor_id))
        item = _require_item(session, item_id)
        before = row_to_dict(item)
        for key, value in updates.items():
            if key in ("title", "category"):
                setattr(item, key, value.strip())
            else:
                setattr(item, key, value or None)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table="library_items",
            target_id=item_id,
            before=before,
            after=row_to_dict(item),
        )
        return _item_view(session, item)


def delete_item(engine: Engine, *, item_id: int, actor_id: str) -> None:
    with get_session(engine) as session:
        ensure_allowed(Action.DELETE_LIBRARY_ITEM, find_profile(session, actor_id))
        item = _require_item(session, item_id)
        before = row_to_dict(item)

        session.execute(
            delete(LibraryRating)
            .where(LibraryRating.library_item_id == item_id)
            .execution_options(synchronize_session=False)
        )
        session.execute(
            delete(LibraryComment)
            .where(LibraryComment.library_item_id == item_id)
            .execution_options(synchronize_session=False)
        )
        session.expunge(item)
        session.execute(delete(LibraryItem).where(LibraryItem.id == item_id))

        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="library_items",
            target_id=item_id,
            before=before,
            after=None,
        )
        logger.info("Library item %d deleted by admin %s", item_id, actor_id)


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------
def rate_item(engine: Engine, *, item_id: int, actor_id: str, rating: int) -> LibraryItemView:
    """Record or overwrite the actor's 1–5 rating and return the refreshed item.

    A concurrent first rating by the same user trips the unique
    (item, user) index; the SAVEPOINT is rolled back and the winner's row
    is updated instead.
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not (
        MIN_RATING <= rating <= MAX_RATING
    ):
        raise ValidationError(
            f"rating must be an integer between {MIN_RATING} and {MAX_RATING}", field="rating",
        )

    with get_session(engine) as session:
        ensure_allowed(Action.RATE_LIBRARY_ITEM, find_profile(session, actor_id))
        item = _require_item(session, item_id)

        row = find_rating(session, item_id, actor_id)
        if row is None:
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(LibraryRating(
                        library_item_id=item_id, user_id=actor_id, rating=rating,
                    ))
            except IntegrityError:
                row = find_rating(session, item_id, actor_id)
                if row is None:
                    raise
                row.rating = rating
        else:
            row.rating = rating
        session.flush()
        return _item_view(session, item)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
def list_comments(engine: Engine, item_id: int) -> list[CommentView]:
    """Pinned comments first, newest first within each group."""
    with get_session(engine) as session:
        _require_item(session, item_id)
        comments = session.scalars(
            select(LibraryComment)
            .where(LibraryComment.library_item_id == item_id)
            .order_by(
                LibraryComment.is_pinned.desc(),
                LibraryComment.created_at.desc(),
                LibraryComment.id.desc(),
            )
        ).all()
        user_ids = {c.user_id for c in comments}
        profiles: dict[str, Profile] = {}
        if user_ids:
            profiles = {
                p.user_id: p
                for p in session.scalars(select(Profile).where(Profile.user_id.in_(user_ids)))
            }
        return [CommentView.from_model(c, profiles) for c in comments]


def add_comment(engine: Engine, *, item_id: int, actor_id: str, content: str) -> LibraryComment:
    with get_session(engine) as session:
        ensure_allowed(Action.COMMENT_LIBRARY_ITEM, find_profile(session, actor_id))
        _require_item(session, item_id)
        row = LibraryComment(
            library_item_id=item_id,
            user_id=actor_id,
            content=_require_text(content, "content"),
            is_pinned=False,
        )
        session.add(row)
        session.flush()
        session.refresh(row)
        return row


def delete_comment(engine: Engine, *, item_id: int, comment_id: int, actor_id: str) -> None:
    with get_session(engine) as session:
        ensure_allowed(Action.DELETE_LIBRARY_COMMENT, find_profile(session, actor_id))
        row = _require_comment(session, item_id, comment_id)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="library_comments",
            target_id=comment_id,
            before=row_to_dict(row),
            after=None,
        )
        session.delete(row)


def _set_comment_pinned(
    engine: Engine, *, item_id: int, comment_id: int, actor_id: str, pinned: bool,
) -> LibraryComment:
    action = Action.PIN_LIBRARY_COMMENT if pinned else Action.UNPIN_LIBRARY_COMMENT
    with get_session(engine) as session:
        ensure_allowed(action, find_profile(session, actor_id))
        row = _require_comment(session, item_id, comment_id)
        if row.is_pinned != pinned:
            before = row_to_dict(row)
            row.is_pinned = pinned
            session.flush()
            log_admin_action(
                session,
                actor_id=actor_id,
                action_type=AdminActionType.PIN if pinned else AdminActionType.UNPIN,
                target_table="library_comments",
                target_id=comment_id,
                before=before,
                after=row_to_dict(row),
            )
        return row


def pin_comment(engine: Engine, *, item_id: int, comment_id: int, actor_id: str) -> LibraryComment:
    return _set_comment_pinned(
        engine, item_id=item_id, comment_id=comment_id, actor_id=actor_id, pinned=True,
    )


def unpin_comment(engine: Engine, *, item_id: int, comment_id: int, actor_id: str) -> LibraryComment:
    return _set_comment_pinned(
        engine, item_id=item_id, comment_id=comment_id, actor_id=actor_id, pinned=False,
    )


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------
def list_vault_items(engine: Engine, user_id: str) -> list[StudyVaultItem]:
    """The owner's vault, newest first.  Nobody else's items are visible."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(StudyVaultItem)
            .where(StudyVaultItem.user_id == user_id)
            .order_by(StudyVaultItem.created_at.desc(), StudyVaultItem.id.desc())
        ).all())


def create_vault_item(
    engine: Engine,
    *,
    actor_id: str,
    title: str,
    file_url: str | None = None,
    link_url: str | None = None,
) -> StudyVaultItem:
    title = _require_text(title, "title")
    if not file_url and not link_url:
        raise ValidationError("Either file_url or link_url is required", field="file_url")

    with get_session(engine) as session:
        ensure_allowed(Action.CREATE_VAULT_ITEM, find_profile(session, actor_id))
        row = StudyVaultItem(
            user_id=actor_id,
            title=title,
            file_url=file_url or None,
            link_url=link_url or None,
        )
        session.add(row)
        session.flush()
        session.refresh(row)
        return row


def delete_vault_item(engine: Engine, *, item_id: int, actor_id: str) -> None:
    with get_session(engine) as session:
        row = session.get(StudyVaultItem, item_id)
        if row is None:
            raise NotFoundError(f"Vault item not found: {item_id}")
        ensure_allowed(
            Action.DELETE_VAULT_ITEM, find_profile(session, actor_id), owner_id=row.user_id,
        )
        session.delete(row)
        logger.info("Vault item %d deleted by owner %s", item_id, actor_id)
