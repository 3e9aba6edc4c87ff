from __future__ import annotations

import logging
import os
from typing import Any

from celery import Celery
from dotenv import load_dotenv

from . import settings
from .db import SessionLocal
from .registry import DbBlogRegistry, DbStreamRegistry
from .services.posts import reconcile_followed_status
from .services.purge import purge_posts

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

DEFAULT_REDIS = "redis://cache:6379/0"

celery_app = Celery(
    "readercache",
    broker=os.getenv("CELERY_BROKER_URL", DEFAULT_REDIS),
    backend=os.getenv("CELERY_RESULT_BACKEND", DEFAULT_REDIS),
)

celery_app.conf.update(
    task_default_queue="default",
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=3600,
    worker_max_tasks_per_child=100,
    beat_schedule={
        "purge-reader-cache": {
            "task": "readercache.tasks.purge_reader_cache",
            "schedule": float(settings.READER_PURGE_INTERVAL_S),
        },
        "reconcile-followed-posts": {
            "task": "readercache.tasks.reconcile_followed_posts",
            "schedule": float(settings.READER_FOLLOW_SYNC_INTERVAL_S),
        },
    },
    timezone="UTC",
)


@celery_app.task(name="readercache.tasks.purge_reader_cache", bind=True)
def purge_reader_cache(self) -> dict[str, Any]:
    """
    Periodic task bounding the reader post cache.

    Runs hourly by default (READER_PURGE_INTERVAL_S). A failed pass leaves the
    store untouched; the next scheduled run tries again.
    """
    db = SessionLocal()
    try:
        deleted = purge_posts(db, DbStreamRegistry(db))
        return {"status": "success", "deleted": deleted}
    except Exception as e:
        logger.error("Error in reader cache purge: %s", str(e))
        return {"status": "error", "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="readercache.tasks.reconcile_followed_posts", bind=True)
def reconcile_followed_posts(self) -> dict[str, Any]:
    """Periodic task clearing the followed flag on posts in blogs no longer followed."""
    db = SessionLocal()
    try:
        updated = reconcile_followed_status(db, DbBlogRegistry(db))
        return {"status": "success", "updated": updated}
    except Exception as e:
        logger.error("Error reconciling followed posts: %s", str(e))
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
