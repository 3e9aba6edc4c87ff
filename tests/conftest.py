from __future__ import annotations

from datetime import datetime
from typing import Callable, Generator

import pytest
from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from readercache.db import build_engine, init_db
from readercache.schemas import Post

load_dotenv()


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    """In-memory store shared by every session of a test."""
    test_engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def make_post() -> Callable[..., Post]:
    """Build a post record; ``day`` sets date_published to that day of Jan 2024."""

    def _make_post(key: str, blog_id: int = 1, post_id: int = 1, day: int = 1, **fields) -> Post:
        fields.setdefault("title", f"Post {key}")
        fields.setdefault("date_published", datetime(2024, 1, day))
        return Post(post_key=key, blog_id=blog_id, post_id=post_id, **fields)

    return _make_post
