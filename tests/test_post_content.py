"""Test post body storage."""

from __future__ import annotations

from sqlalchemy.orm import Session

from readercache import models
from readercache.schemas import Post
from readercache.services import post_content


def test_put_and_get_content(db: Session):
    post_content.put_content(db, Post(post_key="a", blog_id=1, post_id=2, content="<p>Hi</p>"))
    db.commit()

    assert post_content.get_content(db, "a") == "<p>Hi</p>"
    assert post_content.get_content_for_post(db, 1, 2) == "<p>Hi</p>"
    assert post_content.get_content(db, "missing") is None
    assert post_content.get_content(db, None) is None
    assert post_content.get_content_for_post(db, 0, 2) is None


def test_put_content_without_body_is_noop(db: Session):
    post_content.put_content(db, Post(post_key="a", blog_id=1, post_id=2))
    db.commit()

    assert db.query(models.ReaderPostContent).count() == 0


def test_put_content_replaces_same_ids_under_new_key(db: Session):
    """Test that a post re-keyed by the server doesn't leave two bodies behind."""
    post_content.put_content(db, Post(post_key="old", blog_id=1, post_id=2, content="old"))
    post_content.put_content(db, Post(post_key="new", blog_id=1, post_id=2, content="new"))
    db.commit()

    assert db.query(models.ReaderPostContent).count() == 1
    assert post_content.get_content(db, "old") is None
    assert post_content.get_content_for_post(db, 1, 2) == "new"


def test_delete_orphaned_content(db: Session):
    db.add(models.ReaderPost(post_key="live", blog_id=1, post_id=1, stream_name="", stream_type=0))
    db.add(models.ReaderPostContent(post_key="live", blog_id=1, post_id=1, content="live"))
    db.add(models.ReaderPostContent(post_key="orphan", blog_id=1, post_id=2, content="orphan"))
    db.commit()

    assert post_content.delete_orphaned_content(db) == 1
    db.commit()

    assert post_content.get_content(db, "live") == "live"
    assert post_content.get_content(db, "orphan") is None
