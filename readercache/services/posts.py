"""
Reader post storage.

reader_posts holds one row per (post, stream): the same post may be stored in
followed sites, liked posts and any number of tag or search streams, each row
an independent copy. Posts shown in a single blog or feed are stored with an
empty stream name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..registry import BlogRegistry
from ..schemas import (
    FOLLOWED_SITES_STREAM_NAME,
    BlogPostId,
    Post,
    PostKind,
    Stream,
    UpdateResult,
)
from ..streams import classify_stream, inclusion_filters, sort_column, stream_filters
from .post_content import get_content, put_content

logger = logging.getLogger(__name__)

BLOG_STREAM_NAME = ""


# ============================================================================
# WRITES
# ============================================================================


def upsert_posts(db: Session, stream: Stream | None, posts: Sequence[Post]) -> None:
    """
    Insert or replace every post in the batch, tagged with ``stream``.

    Passing no stream stores the posts as blog/feed rows. Bodies are written to
    the content table. The whole batch is committed at once; on failure
    nothing is written and the error is re-raised.
    """
    if not posts:
        return

    stream_name = stream.name if stream is not None else BLOG_STREAM_NAME
    stream_type = int(stream.type) if stream is not None else 0

    try:
        for post in posts:
            # Any gap marker for the stream is removed by the caller before it
            # stores a fresh page, so replaced rows never carry one
            db.merge(
                models.ReaderPost(
                    **post.model_dump(exclude={"content"}),
                    stream_name=stream_name,
                    stream_type=stream_type,
                    has_gap_marker=False,
                )
            )
            # Later copies of the same post in this batch must see this one
            db.flush()
            put_content(db, post)
        db.commit()
    except SQLAlchemyError as e:
        logger.error("Failed to store %d posts in stream '%s': %s", len(posts), stream_name, e)
        db.rollback()
        raise


def add_or_update_post(db: Session, post: Post | None) -> None:
    if post is None:
        return
    upsert_posts(db, None, [post])


def set_likes_for_post(db: Session, post: Post | None, num_likes: int, is_liked: bool) -> int:
    """Update the like count and liked state of every stored copy of the post."""
    if post is None:
        return 0

    try:
        count = db.query(models.ReaderPost).filter(
            models.ReaderPost.blog_id == post.blog_id,
            models.ReaderPost.post_id == post.post_id,
        ).update(
            {
                models.ReaderPost.num_likes: num_likes,
                models.ReaderPost.is_liked: is_liked,
            },
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return count


def set_follow_status_for_blog(db: Session, blog_id: int, is_followed: bool) -> None:
    _set_follow_status(db, blog_id=blog_id, feed_id=0, is_followed=is_followed)


def set_follow_status_for_feed(db: Session, feed_id: int, is_followed: bool) -> None:
    _set_follow_status(db, blog_id=0, feed_id=feed_id, is_followed=is_followed)


def _set_follow_status(db: Session, blog_id: int, feed_id: int, is_followed: bool) -> None:
    if not blog_id and not feed_id:
        return

    owner = models.ReaderPost.blog_id == blog_id if blog_id else models.ReaderPost.feed_id == feed_id

    try:
        db.query(models.ReaderPost).filter(owner).update(
            {models.ReaderPost.is_followed: is_followed},
            synchronize_session=False,
        )

        # An unfollowed blog/feed no longer belongs in "Followed Sites"
        if not is_followed:
            db.query(models.ReaderPost).filter(
                owner,
                models.ReaderPost.stream_name == FOLLOWED_SITES_STREAM_NAME,
            ).delete(synchronize_session=False)

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def reconcile_followed_status(db: Session, blog_registry: BlogRegistry) -> int:
    """Clear the followed flag on posts in blogs that are no longer followed."""
    followed_ids = blog_registry.followed_blog_ids()

    try:
        count = db.query(models.ReaderPost).filter(
            models.ReaderPost.is_followed.is_(True),
            models.ReaderPost.blog_id.notin_(sorted(followed_ids)),
        ).update(
            {models.ReaderPost.is_followed: False},
            synchronize_session=False,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if count > 0:
        logger.info("Marked %d reader posts unfollowed", count)
    return count


def delete_posts_with_stream(db: Session, stream: Stream | None) -> int:
    if stream is None:
        return 0

    try:
        count = db.query(models.ReaderPost).filter(*stream_filters(stream)).delete(
            synchronize_session=False
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return count


def delete_posts_in_blog(db: Session, blog_id: int) -> int:
    if not blog_id:
        return 0

    try:
        count = db.query(models.ReaderPost).filter(
            models.ReaderPost.blog_id == blog_id
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return count


# ============================================================================
# LOOKUPS
# ============================================================================


def find_post(
    db: Session,
    kind: PostKind,
    owner_id: int,
    local_id: int,
    include_content: bool = False,
) -> Post | None:
    """
    Look up a post by (blog_id, post_id) or (feed_id, feed_item_id).

    Returns None when either id is zero or no row matches. Any stream's copy
    of the post may be returned.
    """
    if not owner_id or not local_id:
        return None

    if kind == PostKind.FEED:
        owner_col, local_col = models.ReaderPost.feed_id, models.ReaderPost.feed_item_id
    else:
        owner_col, local_col = models.ReaderPost.blog_id, models.ReaderPost.post_id

    row = db.query(models.ReaderPost).filter(owner_col == owner_id, local_col == local_id).first()
    if row is None:
        return None

    post = Post.model_validate(row)
    if include_content:
        post.content = get_content(db, post.post_key)
    return post


def get_blog_post(db: Session, blog_id: int, post_id: int, include_content: bool = False) -> Post | None:
    return find_post(db, PostKind.BLOG, blog_id, post_id, include_content)


def get_feed_post(db: Session, feed_id: int, feed_item_id: int, include_content: bool = False) -> Post | None:
    return find_post(db, PostKind.FEED, feed_id, feed_item_id, include_content)


def post_exists(db: Session, blog_id: int, post_id: int) -> bool:
    if not blog_id or not post_id:
        return False
    return (
        db.query(models.ReaderPost.post_key)
        .filter(models.ReaderPost.blog_id == blog_id, models.ReaderPost.post_id == post_id)
        .first()
        is not None
    )


def compare_posts(db: Session, posts: Iterable[Post]) -> UpdateResult:
    """
    Compare a freshly fetched batch with the stored posts.

    Returns HAS_NEW as soon as one post isn't stored yet, even if an earlier
    post was found changed. Otherwise CHANGED if any stored copy differs,
    else UNCHANGED (also for an empty batch).
    """
    has_changes = False
    for post in posts:
        existing = get_blog_post(db, post.blog_id, post.post_id)
        if existing is None:
            return UpdateResult.HAS_NEW
        if not has_changes and not post.is_same_post(existing):
            has_changes = True

    return UpdateResult.CHANGED if has_changes else UpdateResult.UNCHANGED


def has_overlap(db: Session, posts: Iterable[Post]) -> bool:
    """True if any of the passed posts is already stored."""
    return any(post_exists(db, post.blog_id, post.post_id) for post in posts)


def _column_for_post(db: Session, column, blog_id: int, post_id: int):
    return (
        db.query(column)
        .filter(models.ReaderPost.blog_id == blog_id, models.ReaderPost.post_id == post_id)
        .limit(1)
        .scalar()
    )


def get_post_title(db: Session, blog_id: int, post_id: int) -> str | None:
    return _column_for_post(db, models.ReaderPost.title, blog_id, post_id)


def get_num_replies(db: Session, post: Post | None) -> int:
    """Number of comments the server says the post has (not the number stored locally)."""
    if post is None:
        return 0
    return _column_for_post(db, models.ReaderPost.num_replies, post.blog_id, post.post_id) or 0


def get_num_likes(db: Session, blog_id: int, post_id: int) -> int:
    return _column_for_post(db, models.ReaderPost.num_likes, blog_id, post_id) or 0


def is_post_liked(db: Session, blog_id: int, post_id: int) -> bool:
    return bool(_column_for_post(db, models.ReaderPost.is_liked, blog_id, post_id))


def is_post_followed(db: Session, post: Post | None) -> bool:
    if post is None:
        return False
    return bool(_column_for_post(db, models.ReaderPost.is_followed, post.blog_id, post.post_id))


# ============================================================================
# COUNTS & DATES
# ============================================================================


def count_posts_in_blog(db: Session, blog_id: int) -> int:
    if not blog_id:
        return 0
    return db.query(models.ReaderPost).filter(
        models.ReaderPost.blog_id == blog_id,
        models.ReaderPost.stream_name == BLOG_STREAM_NAME,
    ).count()


def count_posts_in_feed(db: Session, feed_id: int) -> int:
    if not feed_id:
        return 0
    return db.query(models.ReaderPost).filter(
        models.ReaderPost.feed_id == feed_id,
        models.ReaderPost.stream_name == BLOG_STREAM_NAME,
    ).count()


def count_posts_with_stream(db: Session, stream: Stream | None) -> int:
    if stream is None:
        return 0
    return db.query(models.ReaderPost).filter(*stream_filters(stream)).count()


def get_oldest_date_with_stream(db: Session, stream: Stream | None):
    """Sort value of the oldest post in the stream, used to request older posts."""
    if stream is None:
        return None
    column = sort_column(classify_stream(stream))
    return (
        db.query(column)
        .filter(*stream_filters(stream))
        .order_by(column.asc())
        .limit(1)
        .scalar()
    )


def get_oldest_pub_date_in_blog(db: Session, blog_id: int) -> datetime | None:
    return (
        db.query(models.ReaderPost.date_published)
        .filter(
            models.ReaderPost.blog_id == blog_id,
            models.ReaderPost.stream_name == BLOG_STREAM_NAME,
        )
        .order_by(models.ReaderPost.date_published.asc())
        .limit(1)
        .scalar()
    )


def get_oldest_pub_date_in_feed(db: Session, feed_id: int) -> datetime | None:
    return (
        db.query(models.ReaderPost.date_published)
        .filter(
            models.ReaderPost.feed_id == feed_id,
            models.ReaderPost.stream_name == BLOG_STREAM_NAME,
        )
        .order_by(models.ReaderPost.date_published.asc())
        .limit(1)
        .scalar()
    )


# ============================================================================
# ORDERED READS
# ============================================================================


def _stream_query(db: Session, entities, stream: Stream, max_posts: int):
    ordering = classify_stream(stream)
    query = (
        db.query(*entities)
        .filter(*stream_filters(stream), *inclusion_filters(ordering))
        .order_by(sort_column(ordering).desc().nulls_last())
    )
    if max_posts > 0:
        query = query.limit(max_posts)
    return query


def _owner_query(db: Session, entities, owner_col, owner_id: int, max_posts: int):
    query = (
        db.query(*entities)
        .filter(owner_col == owner_id, models.ReaderPost.stream_name == BLOG_STREAM_NAME)
        .order_by(models.ReaderPost.date_published.desc())
    )
    if max_posts > 0:
        query = query.limit(max_posts)
    return query


def get_posts_with_stream(db: Session, stream: Stream | None, max_posts: int = 0) -> list[Post]:
    """
    Posts in the stream, newest first by the stream's sort order.

    Liked posts that were since unliked (and followed-sites posts whose blog
    was unfollowed) are skipped.
    """
    if stream is None:
        return []
    return _posts_from_rows(_stream_query(db, [models.ReaderPost], stream, max_posts).all())


def get_posts_in_blog(db: Session, blog_id: int, max_posts: int = 0) -> list[Post]:
    rows = _owner_query(db, [models.ReaderPost], models.ReaderPost.blog_id, blog_id, max_posts).all()
    return _posts_from_rows(rows)


def get_posts_in_feed(db: Session, feed_id: int, max_posts: int = 0) -> list[Post]:
    rows = _owner_query(db, [models.ReaderPost], models.ReaderPost.feed_id, feed_id, max_posts).all()
    return _posts_from_rows(rows)


def get_post_ids_with_stream(db: Session, stream: Stream | None, max_posts: int = 0) -> list[BlogPostId]:
    """Same as get_posts_with_stream() but only returns the ids."""
    if stream is None:
        return []
    entities = [models.ReaderPost.blog_id, models.ReaderPost.post_id]
    rows = _stream_query(db, entities, stream, max_posts).all()
    return [BlogPostId(blog_id=blog_id, post_id=post_id) for blog_id, post_id in rows]


def get_post_ids_in_blog(db: Session, blog_id: int, max_posts: int = 0) -> list[BlogPostId]:
    """Same as get_posts_in_blog() but only returns the ids."""
    entities = [models.ReaderPost.post_id]
    rows = _owner_query(db, entities, models.ReaderPost.blog_id, blog_id, max_posts).all()
    return [BlogPostId(blog_id=blog_id, post_id=row[0]) for row in rows]


def _posts_from_rows(rows: Iterable[models.ReaderPost]) -> list[Post]:
    """Decode rows, keeping whatever was decoded before a malformed row."""
    posts: list[Post] = []
    try:
        for row in rows:
            posts.append(Post.model_validate(row))
    except (ValidationError, AttributeError, KeyError):
        logger.exception("Failed to decode reader post; returning %d decoded posts", len(posts))
    return posts
