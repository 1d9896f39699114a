"""Celery tasks for trash retention."""

import asyncio
import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401

from app.celery_app import celery_app
from app.database import DB_URL
from app.domains.item.service import ItemService
from app.services.storage_service import get_storage

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.trash_tasks.purge_expired_trash_task", bind=True)
def purge_expired_trash_task(self, retention_days: Optional[int] = None) -> dict[str, Any]:
    """Permanently delete items that have sat in the trash past the retention period.

    Runs daily via Celery Beat.
    """
    logger.info("Starting trash purge (task id: %s)", self.request.id)

    try:
        purged = asyncio.run(purge_expired_trash(retention_days))
    except SQLAlchemyError as e:
        logger.error("Trash purge failed: %s", e)
        raise self.retry(exc=e, countdown=60 * 5, max_retries=3)

    logger.info("Trash purge completed: %d item(s) removed", purged)
    return {"purged": purged}


async def purge_expired_trash(retention_days: Optional[int] = None) -> int:
    """Run the purge against a dedicated engine and return the number of items removed."""
    engine = create_async_engine(DB_URL, pool_pre_ping=True)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with session_maker() as session:
            service = ItemService(session, get_storage())
            return await service.cleanup_expired_trash(retention_days)
    finally:
        await engine.dispose()
