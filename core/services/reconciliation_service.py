# =============================================================================
# core/services/reconciliation_service.py - Orphaned Image Sweep
# =============================================================================
# Compensating deletes in LocationCoordinator are best effort and never
# retried, so blobs can be left behind (crash between commit and cleanup,
# store briefly down during a rollback). This sweep finds blobs that no
# location references and reclaims them.
#
# Blobs younger than `min_age_seconds` are never touched: their upload may
# belong to a create/update whose record has not been committed yet.
#
# Run periodically by Celery beat (workers.tasks.sweep_orphaned_images).
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from lib.object_store import BucketType, ObjectStore
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class ImageKeySource(Protocol):
    def fetch_image_keys(self, bucket: str) -> set[str]: ...


@dataclass
class SweepReport:
    """Outcome of one sweep over one bucket."""
    bucket: str
    scanned: int = 0
    referenced: int = 0
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class OrphanSweeper:
    """Deletes blobs that no location references."""

    def __init__(
        self,
        object_store: ObjectStore,
        repository: ImageKeySource = SupabaseClient,
        min_age_seconds: int = 3600,
    ):
        self.object_store = object_store
        self.repository = repository
        self.min_age = timedelta(seconds=min_age_seconds)

    def sweep(self, bucket: BucketType = BucketType.LOCATIONS, now: datetime | None = None) -> SweepReport:
        """
        Reclaim unreferenced blobs older than the minimum age.

        Keys are listed before references are loaded, so a record committed
        while the sweep runs is always seen as a reference.
        """
        policy = self.object_store.policy_for(bucket)
        cutoff = (now or datetime.now(timezone.utc)) - self.min_age
        report = SweepReport(bucket=policy.name)

        candidates = [key for key, _ in self.object_store.list_keys(bucket, older_than=cutoff)]
        report.scanned = len(candidates)
        if not candidates:
            logger.info(f"Sweep of {policy.name}: nothing older than {cutoff.isoformat()}")
            return report

        referenced = self.repository.fetch_image_keys(policy.name)

        for key in candidates:
            if key in referenced:
                report.referenced += 1
                continue
            try:
                self.object_store.delete(bucket, key)
                report.deleted.append(key)
            except Exception as e:
                logger.error(f"Sweep could not delete {policy.name}/{key}: {e}")
                report.failed.append(key)

        logger.info(
            f"Sweep of {policy.name}: scanned={report.scanned} referenced={report.referenced} "
            f"deleted={len(report.deleted)} failed={len(report.failed)}"
        )
        return report
