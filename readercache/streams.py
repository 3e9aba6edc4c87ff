"""
Stream classifier.

Decides how the posts of a stream are ordered and which stored rows are
visible in it. The same ordering is used for reads, retention purges and gap
marker bookkeeping so "oldest" always means the same thing for a stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.sql.elements import ColumnElement

from . import models

if TYPE_CHECKING:
    from .schemas import Stream


@dataclass(frozen=True)
class StreamOrdering:
    """Sort field and inclusion policy for a stream."""

    sort_field: str
    liked_only: bool = False
    followed_only: bool = False


def classify_stream(stream: "Stream | None") -> StreamOrdering:
    """
    Map a stream to its ordering.

    The column posts are sorted by depends on the kind of stream:

        liked posts      date the post was liked (liked rows only)
        followed sites   date the post was published (followed rows only)
        search results   relevance score
        tag topics       date the post was tagged
        anything else    date the post was published

    Rows that were unliked or unfollowed after being stored stay in the table
    and are only hidden here; the purge engine reclaims them eventually.
    """
    if stream is None:
        return StreamOrdering("date_published")
    if stream.is_liked_stream:
        return StreamOrdering("date_liked", liked_only=True)
    if stream.is_followed_stream:
        return StreamOrdering("date_published", followed_only=True)
    if stream.is_search_stream:
        return StreamOrdering("score")
    if stream.is_topic_stream:
        return StreamOrdering("date_tagged")
    return StreamOrdering("date_published")


def sort_column(ordering: StreamOrdering):
    """ORM column for the ordering's sort field."""
    return getattr(models.ReaderPost, ordering.sort_field)


def inclusion_filters(ordering: StreamOrdering) -> list[ColumnElement[bool]]:
    """Extra predicates a read of the stream must apply."""
    filters: list[ColumnElement[bool]] = []
    if ordering.liked_only:
        filters.append(models.ReaderPost.is_liked.is_(True))
    if ordering.followed_only:
        filters.append(models.ReaderPost.is_followed.is_(True))
    return filters


def stream_filters(stream: "Stream") -> list[ColumnElement[bool]]:
    """Predicates selecting every stored row of ``stream``."""
    return [
        models.ReaderPost.stream_name == stream.name,
        models.ReaderPost.stream_type == int(stream.type),
    ]
