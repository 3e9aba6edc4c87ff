"""Post body storage, kept apart from reader_posts so scans stay cheap."""

from __future__ import annotations

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from .. import models
from ..schemas import Post


def put_content(db: Session, post: Post) -> None:
    """
    Write the post's body, replacing what's stored for the same post.

    A row for the same (post_id, blog_id) stored under another key is replaced
    too. Does not commit: callers write content inside their own transaction.
    """
    if not post.has_content:
        return

    db.query(models.ReaderPostContent).filter(
        models.ReaderPostContent.post_id == post.post_id,
        models.ReaderPostContent.blog_id == post.blog_id,
        models.ReaderPostContent.post_key != post.post_key,
    ).delete(synchronize_session=False)

    db.merge(
        models.ReaderPostContent(
            post_key=post.post_key,
            post_id=post.post_id,
            blog_id=post.blog_id,
            content=post.content,
        )
    )
    db.flush()


def get_content(db: Session, post_key: str | None) -> str | None:
    if not post_key:
        return None
    return (
        db.query(models.ReaderPostContent.content)
        .filter(models.ReaderPostContent.post_key == post_key)
        .scalar()
    )


def get_content_for_post(db: Session, blog_id: int, post_id: int) -> str | None:
    if not blog_id or not post_id:
        return None
    return (
        db.query(models.ReaderPostContent.content)
        .filter(
            and_(
                models.ReaderPostContent.blog_id == blog_id,
                models.ReaderPostContent.post_id == post_id,
            )
        )
        .scalar()
    )


def delete_orphaned_content(db: Session) -> int:
    """Delete content whose post no longer exists in any stream. Does not commit."""
    live_keys = select(models.ReaderPost.post_key).distinct()
    return db.query(models.ReaderPostContent).filter(
        models.ReaderPostContent.post_key.notin_(live_keys)
    ).delete(synchronize_session=False)
