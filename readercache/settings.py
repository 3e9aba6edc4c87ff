"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no package imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Maximum number of posts kept per stream after a purge pass. Matches the
# number of posts the reader will display for a single stream.
# Configured via .env: READER_MAX_POSTS_PER_STREAM=200
READER_MAX_POSTS_PER_STREAM: int = _int_env("READER_MAX_POSTS_PER_STREAM", 200)

# Celery beat intervals (seconds)
READER_PURGE_INTERVAL_S: int = _int_env("READER_PURGE_INTERVAL_S", 3600)
READER_FOLLOW_SYNC_INTERVAL_S: int = _int_env("READER_FOLLOW_SYNC_INTERVAL_S", 6 * 3600)

DEFAULT_DATABASE_URL = "sqlite:///reader_cache.db"
