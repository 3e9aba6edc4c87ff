"""
Gap marker bookkeeping.

A gap marker flags the one post in a stream after which the locally cached
history is known to be discontinuous ("load more" boundary).
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..schemas import BlogPostId, Stream
from ..streams import classify_stream, sort_column, stream_filters

logger = logging.getLogger(__name__)


def _clear(db: Session, stream: Stream) -> int:
    return db.query(models.ReaderPost).filter(
        *stream_filters(stream),
        models.ReaderPost.has_gap_marker.is_(True),
    ).update({models.ReaderPost.has_gap_marker: False}, synchronize_session=False)


def clear_gap_marker(db: Session, stream: Stream | None) -> None:
    if stream is None:
        return
    try:
        _clear(db, stream)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def set_gap_marker(db: Session, blog_id: int, post_id: int, stream: Stream | None) -> bool:
    """
    Put the stream's gap marker on the given post.

    Any marker already in the stream is removed in the same transaction, so a
    stream never has more than one. Returns False if the post isn't in the stream.
    """
    if stream is None:
        return False
    try:
        _clear(db, stream)
        count = db.query(models.ReaderPost).filter(
            *stream_filters(stream),
            models.ReaderPost.blog_id == blog_id,
            models.ReaderPost.post_id == post_id,
        ).update({models.ReaderPost.has_gap_marker: True}, synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return count > 0


def get_gap_marker_location(db: Session, stream: Stream | None) -> BlogPostId | None:
    """Ids of the post carrying the stream's gap marker, or None."""
    if stream is None:
        return None
    row = (
        db.query(models.ReaderPost.blog_id, models.ReaderPost.post_id)
        .filter(*stream_filters(stream), models.ReaderPost.has_gap_marker.is_(True))
        .first()
    )
    if row is None:
        return None
    return BlogPostId(blog_id=row[0], post_id=row[1])


def get_gap_marker_sort_value(db: Session, stream: Stream | None):
    """The marked post's value of the stream's sort column (a date or a score)."""
    if stream is None:
        return None
    column = sort_column(classify_stream(stream))
    return (
        db.query(column)
        .filter(*stream_filters(stream), models.ReaderPost.has_gap_marker.is_(True))
        .limit(1)
        .scalar()
    )


def delete_before_gap_marker(db: Session, stream: Stream | None) -> int:
    """
    Delete the stream's posts that sort before the one with the gap marker.

    Only rows in this stream are removed. Copies of the same posts in other
    streams stay until the next purge.
    """
    marker_value = get_gap_marker_sort_value(db, stream)
    if marker_value is None:
        return 0

    column = sort_column(classify_stream(stream))
    try:
        count = db.query(models.ReaderPost).filter(
            *stream_filters(stream),
            column < marker_value,
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if count > 0:
        logger.info("Removed %d posts older than gap marker in %s", count, stream.log_name())
    return count
