from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .db import Base


# ============================================================================
# POSTS
# ============================================================================


class ReaderPost(Base):
    """One post as it appears in one stream.

    The same post is stored once per stream it shows up in (followed sites,
    liked posts, a tag, a search...). Posts shown in a specific blog or feed
    are stored with an empty stream name.
    """

    __tablename__ = "reader_posts"

    # Identity
    post_key = Column(String(255), primary_key=True)  # stable even for feed-only items
    stream_name = Column(String(255), primary_key=True, default="")  # lowercased
    stream_type = Column(Integer, primary_key=True, default=0)

    # Owner ids
    post_id = Column(BigInteger, nullable=False, default=0)
    blog_id = Column(BigInteger, nullable=False, default=0)
    feed_id = Column(BigInteger, nullable=False, default=0)
    feed_item_id = Column(BigInteger, nullable=False, default=0)

    # Author
    author_name = Column(Text, nullable=True)
    author_first_name = Column(Text, nullable=True)
    author_id = Column(BigInteger, nullable=False, default=0)

    # Content attributes
    title = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=True)
    format = Column(String(50), nullable=True)
    url = Column(Text, nullable=True)
    short_url = Column(Text, nullable=True)
    blog_url = Column(Text, nullable=True)
    blog_name = Column(Text, nullable=True)
    featured_image = Column(Text, nullable=True)
    featured_video = Column(Text, nullable=True)
    post_avatar = Column(Text, nullable=True)
    primary_tag = Column(Text, nullable=True)
    secondary_tag = Column(Text, nullable=True)
    attachments_json = Column(Text, nullable=True)
    discover_json = Column(Text, nullable=True)
    railcar_json = Column(Text, nullable=True)  # analytics payload, opaque to us
    xpost_post_id = Column(BigInteger, nullable=False, default=0)
    xpost_blog_id = Column(BigInteger, nullable=False, default=0)

    # Counts & ranking
    score = Column(Float, nullable=False, default=0.0)  # search results only
    num_replies = Column(Integer, nullable=False, default=0)
    num_likes = Column(Integer, nullable=False, default=0)

    # Dates (only the ones relevant to the stream's sort order are set)
    date_published = Column(DateTime(timezone=True), nullable=True)
    date_liked = Column(DateTime(timezone=True), nullable=True)
    date_tagged = Column(DateTime(timezone=True), nullable=True)

    # State flags
    is_liked = Column(Boolean, nullable=False, default=False)
    is_followed = Column(Boolean, nullable=False, default=False)
    is_comments_open = Column(Boolean, nullable=False, default=False)
    is_external = Column(Boolean, nullable=False, default=False)
    is_private = Column(Boolean, nullable=False, default=False)
    is_videopress = Column(Boolean, nullable=False, default=False)
    is_jetpack = Column(Boolean, nullable=False, default=False)
    has_gap_marker = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_reader_posts_post_id_blog_id", post_id, blog_id),
        Index("ix_reader_posts_date_published", date_published),
        Index("ix_reader_posts_date_tagged", date_tagged),
        Index("ix_reader_posts_stream_name", stream_name),
    )


class ReaderPostContent(Base):
    """Body text of a post, stored once no matter how many streams reference it."""

    __tablename__ = "reader_post_content"

    post_key = Column(String(255), primary_key=True)
    post_id = Column(BigInteger, nullable=False, default=0)
    blog_id = Column(BigInteger, nullable=False, default=0)
    content = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("post_id", "blog_id", name="uq_reader_post_content_ids"),
    )


# ============================================================================
# REGISTRIES
# ============================================================================


class ReaderStream(Base):
    """A stream the reader knows about. Posts in any other stream are orphans."""

    __tablename__ = "reader_streams"

    stream_name = Column(String(255), primary_key=True)  # lowercased
    stream_type = Column(Integer, primary_key=True, default=0)
    title = Column(Text, nullable=True)
    endpoint = Column(Text, nullable=True)


class ReaderBlog(Base):
    """Blog info as reported by the server, including whether it's followed."""

    __tablename__ = "reader_blogs"

    blog_id = Column(BigInteger, primary_key=True, autoincrement=False)
    feed_id = Column(BigInteger, nullable=False, default=0)
    name = Column(Text, nullable=True)
    url = Column(Text, nullable=True)
    is_followed = Column(Boolean, nullable=False, default=False, index=True)
