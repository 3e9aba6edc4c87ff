from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# ENUMS
# ============================================================================


class StreamType(IntEnum):
    """Kind of stream, stored as an integer in ``stream_type``."""
    FOLLOWED = 0  # a tag the user follows
    DEFAULT = 1  # built-in streams (followed sites, liked posts, discover...)
    RECOMMENDED = 2  # a tag recommended to the user
    CUSTOM_LIST = 3
    SEARCH = 4


class UpdateResult(str, Enum):
    """Outcome of comparing a freshly fetched batch with what's stored."""
    HAS_NEW = "has_new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


class PostKind(str, Enum):
    """Which owner pair identifies a post: (blog_id, post_id) or (feed_id, feed_item_id)."""
    BLOG = "blog"
    FEED = "feed"


LIKED_POSTS_STREAM_NAME = "posts i like"
FOLLOWED_SITES_STREAM_NAME = "followed sites"

TOPIC_STREAM_TYPES = frozenset({StreamType.FOLLOWED, StreamType.RECOMMENDED})


# ============================================================================
# STREAMS
# ============================================================================


class Stream(BaseModel):
    """Descriptor of a logical stream of posts."""

    name: str
    type: StreamType = StreamType.DEFAULT
    title: str | None = None
    endpoint: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, value: str | None) -> str:
        # Stream names are matched case-insensitively
        return (value or "").strip().lower()

    @classmethod
    def liked_posts(cls) -> "Stream":
        return cls(name=LIKED_POSTS_STREAM_NAME, type=StreamType.DEFAULT, title="Posts I Like")

    @classmethod
    def followed_sites(cls) -> "Stream":
        return cls(name=FOLLOWED_SITES_STREAM_NAME, type=StreamType.DEFAULT, title="Followed Sites")

    @property
    def is_liked_stream(self) -> bool:
        return self.type == StreamType.DEFAULT and self.name == LIKED_POSTS_STREAM_NAME

    @property
    def is_followed_stream(self) -> bool:
        return self.type == StreamType.DEFAULT and self.name == FOLLOWED_SITES_STREAM_NAME

    @property
    def is_search_stream(self) -> bool:
        return self.type == StreamType.SEARCH

    @property
    def is_topic_stream(self) -> bool:
        return self.type in TOPIC_STREAM_TYPES

    def log_name(self) -> str:
        return f"{self.name} ({self.type.name.lower()})"


# ============================================================================
# POSTS
# ============================================================================


_TEXT_FIELDS = (
    "author_name",
    "author_first_name",
    "title",
    "excerpt",
    "format",
    "url",
    "short_url",
    "blog_url",
    "blog_name",
    "featured_image",
    "featured_video",
    "post_avatar",
    "primary_tag",
    "secondary_tag",
    "attachments_json",
    "discover_json",
    "railcar_json",
)


class Post(BaseModel):
    """A parsed reader post, independent of the stream it was fetched for."""

    post_key: str = Field(min_length=1)
    post_id: int = 0
    blog_id: int = 0
    feed_id: int = 0
    feed_item_id: int = 0

    author_name: str = ""
    author_first_name: str = ""
    author_id: int = 0

    title: str = ""
    excerpt: str = ""
    format: str = ""
    url: str = ""
    short_url: str = ""
    blog_url: str = ""
    blog_name: str = ""
    featured_image: str = ""
    featured_video: str = ""
    post_avatar: str = ""
    primary_tag: str = ""
    secondary_tag: str = ""
    attachments_json: str = ""
    discover_json: str = ""
    railcar_json: str = ""
    xpost_post_id: int = 0
    xpost_blog_id: int = 0

    score: float = 0.0
    num_replies: int = 0
    num_likes: int = 0

    date_published: datetime | None = None
    date_liked: datetime | None = None
    date_tagged: datetime | None = None

    is_liked: bool = False
    is_followed: bool = False
    is_comments_open: bool = False
    is_external: bool = False
    is_private: bool = False
    is_videopress: bool = False
    is_jetpack: bool = False

    # Body text lives in its own table; only loaded on request
    content: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _not_null_str(cls, value: str | None) -> str:
        return "" if value is None else value

    @field_validator("date_published", "date_liked", "date_tagged")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite keeps no offset, so every stored date must be on the same clock
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc)

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    def is_same_post(self, other: "Post | None") -> bool:
        """Whether ``other`` is this post with nothing the reader displays changed.

        Content is not compared since stored posts are usually loaded without it.
        """
        return (
            other is not None
            and other.blog_id == self.blog_id
            and other.post_id == self.post_id
            and other.feed_id == self.feed_id
            and other.feed_item_id == self.feed_item_id
            and other.num_likes == self.num_likes
            and other.num_replies == self.num_replies
            and other.is_liked == self.is_liked
            and other.is_followed == self.is_followed
            and other.is_comments_open == self.is_comments_open
            and other.title == self.title
            and other.excerpt == self.excerpt
        )


class BlogPostId(BaseModel):
    """A (blog_id, post_id) pair."""

    blog_id: int
    post_id: int

    model_config = ConfigDict(frozen=True)
