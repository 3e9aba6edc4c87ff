from __future__ import annotations

import os
from urllib.parse import quote_plus

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .settings import DEFAULT_DATABASE_URL


def get_database_url() -> str:
    """Get the database URL for the reader cache."""
    explicit = os.getenv("READER_DATABASE_URL")
    if explicit:
        return explicit

    # Construct from components when a shared PostgreSQL store is configured
    db_user = os.getenv("DB_USER")
    db_pass = os.getenv("DB_PASSWORD")
    db_name = os.getenv("DB_DATABASE")
    db_host = os.getenv("DB_HOST", "db")
    db_port = os.getenv("DB_PORT", "5432")

    if db_user and db_pass and db_name:
        # URL-encode the password in case it contains special characters
        encoded_pass = quote_plus(db_pass)
        return f"postgresql+psycopg://{db_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    return DEFAULT_DATABASE_URL


DATABASE_URL = get_database_url()


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine for the given URL with the options every caller needs."""
    if url.startswith("sqlite"):
        # Sessions are handed between the UI thread and background sync workers
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(
        url,
        future=True,
        echo=os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG",
        pool_pre_ping=True,
        **kwargs,
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind: Engine | None = None) -> None:
    """Create the reader cache tables if they don't exist yet."""
    from . import models  # noqa: F401  (registers the tables on Base.metadata)

    Base.metadata.create_all(bind=bind or engine)
