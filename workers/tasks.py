# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Background maintenance for the location image store.
#
# Tasks:
# - sweep_orphaned_images: Reclaim blobs no location references (beat-scheduled)
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.config import settings
from core.services.reconciliation_service import OrphanSweeper
from lib.object_store import BucketType, ObjectStore

logger = logging.getLogger(__name__)


def build_sweeper() -> OrphanSweeper:
    """Sweeper wired from settings; the worker process has no FastAPI app."""
    store = ObjectStore(settings.object_store_config())
    return OrphanSweeper(store, min_age_seconds=settings.ORPHAN_MIN_AGE_SECONDS)


@shared_task(bind=True, name="workers.tasks.sweep_orphaned_images")
def sweep_orphaned_images(self, bucket: str = BucketType.LOCATIONS.value) -> dict[str, Any]:
    """
    Delete images in `bucket` that are older than the minimum age and not
    referenced by any location record.

    Returns:
        Dict with success flag and the sweep report (scanned, referenced,
        deleted keys, failed keys)
    """
    logger.info(f"Orphan sweep requested for bucket type {bucket}")

    try:
        report = build_sweeper().sweep(BucketType(bucket))
        return {"success": True, **report.to_dict()}

    except Exception as e:
        logger.exception(f"Orphan sweep failed: {e}")
        return {"success": False, "error": str(e)}
