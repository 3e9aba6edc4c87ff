"""
Collaborator registries consulted by maintenance passes.

The purge engine needs the authoritative list of streams and the follow-status
sweep needs the set of followed blogs. Both are expressed as protocols so a
host application can plug in its own sources; the ``Db*`` classes read the
registry tables that ship with this package.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.orm import Session

from . import models
from .schemas import Stream, StreamType


class StreamRegistry(Protocol):
    def all_streams(self) -> list[Stream]:
        ...


class BlogRegistry(Protocol):
    def followed_blog_ids(self) -> set[int]:
        ...


class DbStreamRegistry:
    """Stream registry backed by the ``reader_streams`` table."""

    def __init__(self, db: Session):
        self.db = db

    def all_streams(self) -> list[Stream]:
        rows = self.db.query(models.ReaderStream).order_by(
            models.ReaderStream.stream_type, models.ReaderStream.stream_name
        ).all()
        return [
            Stream(
                name=row.stream_name,
                type=StreamType(row.stream_type),
                title=row.title,
                endpoint=row.endpoint,
            )
            for row in rows
        ]


class DbBlogRegistry:
    """Blog registry backed by the ``reader_blogs`` table."""

    def __init__(self, db: Session):
        self.db = db

    def followed_blog_ids(self) -> set[int]:
        rows = (
            self.db.query(models.ReaderBlog.blog_id)
            .filter(models.ReaderBlog.is_followed.is_(True))
            .all()
        )
        return {row[0] for row in rows}


def register_stream(db: Session, stream: Stream) -> None:
    """Add (or refresh) a stream in the registry table."""
    db.merge(
        models.ReaderStream(
            stream_name=stream.name,
            stream_type=int(stream.type),
            title=stream.title,
            endpoint=stream.endpoint,
        )
    )
    db.commit()


def unregister_stream(db: Session, stream: Stream) -> bool:
    """Remove a stream from the registry. Its posts become orphans for the next purge."""
    count = db.query(models.ReaderStream).filter(
        models.ReaderStream.stream_name == stream.name,
        models.ReaderStream.stream_type == int(stream.type),
    ).delete(synchronize_session=False)
    db.commit()
    return count > 0


def upsert_blog(
    db: Session,
    blog_id: int,
    is_followed: bool,
    feed_id: int = 0,
    name: str | None = None,
    url: str | None = None,
) -> None:
    """Store what the server reported about a blog."""
    db.merge(
        models.ReaderBlog(
            blog_id=blog_id,
            feed_id=feed_id,
            name=name,
            url=url,
            is_followed=is_followed,
        )
    )
    db.commit()
