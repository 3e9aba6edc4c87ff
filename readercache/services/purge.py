"""
Retention/purge pass for the reader post cache.

Run periodically (see tasks.py), never per write. Keeps every stream bounded
to the newest N posts by the stream's own sort order, drops posts whose stream
is gone, forgets search results and reclaims content nothing references.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..registry import StreamRegistry
from ..schemas import Stream, StreamType
from ..settings import READER_MAX_POSTS_PER_STREAM
from ..streams import classify_stream, sort_column, stream_filters
from .post_content import delete_orphaned_content

logger = logging.getLogger(__name__)


def purge_posts(
    db: Session,
    stream_registry: StreamRegistry,
    max_posts_per_stream: int = READER_MAX_POSTS_PER_STREAM,
) -> int:
    """
    Purge orphaned and excess posts in one transaction.

    Returns the number of post rows deleted. On a storage error the whole pass
    is rolled back and the error re-raised.
    """
    streams = stream_registry.all_streams()
    known_names = sorted({stream.name for stream in streams})

    try:
        # Posts attached to streams that no longer exist
        num_deleted = db.query(models.ReaderPost).filter(
            models.ReaderPost.stream_name.notin_(known_names)
        ).delete(synchronize_session=False)
        if num_deleted > 0:
            logger.info("Purged %d posts in unknown streams", num_deleted)

        for stream in streams:
            num_deleted += _purge_posts_for_stream(db, stream, max_posts_per_stream)

        num_deleted += _purge_search_results(db)

        if num_deleted > 0:
            num_content = delete_orphaned_content(db)
            logger.info("Purged %d orphaned post bodies", num_content)

        db.commit()
    except SQLAlchemyError as e:
        logger.error("Reader post purge failed, rolling back: %s", e)
        db.rollback()
        raise

    logger.info("Reader post purge removed %d posts", num_deleted)
    return num_deleted


def _purge_posts_for_stream(db: Session, stream: Stream, max_posts: int) -> int:
    """Keep only the newest ``max_posts`` posts in the stream."""
    num_posts = db.query(models.ReaderPost).filter(*stream_filters(stream)).count()
    if num_posts <= max_posts:
        return 0

    column = sort_column(classify_stream(stream))
    keep = (
        select(models.ReaderPost.post_key)
        .where(*stream_filters(stream))
        .order_by(column.desc().nulls_last(), models.ReaderPost.post_key)
        .limit(max_posts)
        .correlate(None)
    )
    num_deleted = db.query(models.ReaderPost).filter(
        *stream_filters(stream),
        models.ReaderPost.post_key.notin_(keep),
    ).delete(synchronize_session=False)

    logger.info("Purged %d posts in stream %s", num_deleted, stream.log_name())
    return num_deleted


def _purge_search_results(db: Session) -> int:
    """Search results are never kept from one purge to the next."""
    num_deleted = db.query(models.ReaderPost).filter(
        models.ReaderPost.stream_type == int(StreamType.SEARCH)
    ).delete(synchronize_session=False)
    if num_deleted > 0:
        logger.info("Purged %d search results", num_deleted)
    return num_deleted
