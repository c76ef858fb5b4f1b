# =============================================================================
# tests/test_reconciliation.py - Orphaned Image Sweep Tests
# =============================================================================
# Run with: pytest tests/test_reconciliation.py -v
# =============================================================================

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.exceptions import StorageUnavailableError
from core.services.reconciliation_service import OrphanSweeper
from lib.object_store import BucketType
from tests.conftest import client_error

HOUR = timedelta(hours=1)


@pytest.fixture
def sweeper(object_store, repository):
    return OrphanSweeper(object_store, repository=repository, min_age_seconds=3600)


def upload(store, name="a.png") -> str:
    return store.upload(BucketType.LOCATIONS, b"data", "image/png", 4, name)


class TestOrphanSweeper:
    """Only unreferenced blobs older than the minimum age are reclaimed."""

    def test_deletes_old_unreferenced_blob(self, sweeper, object_store, s3_client):
        orphan = upload(object_store)
        s3_client.age("locations", orphan, datetime.now(timezone.utc) - 2 * HOUR)

        report = sweeper.sweep()

        assert report.deleted == [orphan]
        assert report.scanned == 1
        assert s3_client.keys() == set()

    def test_keeps_referenced_blob(self, sweeper, object_store, repository, s3_client):
        key = upload(object_store)
        s3_client.age("locations", key, datetime.now(timezone.utc) - 2 * HOUR)
        repository.add(image_bucket="locations", image_key=key, image=f"http://localhost:9000/locations/{key}")

        report = sweeper.sweep()

        assert report.referenced == 1
        assert report.deleted == []
        assert s3_client.keys() == {key}

    def test_keeps_young_blob(self, sweeper, object_store, s3_client):
        key = upload(object_store)

        report = sweeper.sweep()

        assert report.scanned == 0
        assert s3_client.keys() == {key}

    def test_references_not_loaded_when_nothing_to_sweep(self, object_store):
        repository = MagicMock()
        sweeper = OrphanSweeper(object_store, repository=repository)

        sweeper.sweep()

        repository.fetch_image_keys.assert_not_called()

    def test_now_is_injectable(self, sweeper, object_store):
        key = upload(object_store)

        report = sweeper.sweep(now=datetime.now(timezone.utc) + 2 * HOUR)

        assert report.deleted == [key]

    def test_mixed_bucket(self, sweeper, object_store, repository, s3_client):
        old = datetime.now(timezone.utc) - 3 * HOUR
        referenced = upload(object_store, "ref.png")
        orphans = {upload(object_store, f"o{i}.png") for i in range(3)}
        young = upload(object_store, "young.png")
        for key in orphans | {referenced}:
            s3_client.age("locations", key, old)
        repository.add(image_bucket="locations", image_key=referenced)

        report = sweeper.sweep()

        assert set(report.deleted) == orphans
        assert s3_client.keys() == {referenced, young}
        assert report.to_dict()["bucket"] == "locations"

    def test_delete_failures_are_counted(self, sweeper, object_store, s3_client):
        key = upload(object_store)
        s3_client.age("locations", key, datetime.now(timezone.utc) - 2 * HOUR)
        s3_client.failures["delete_object"] = client_error("InternalError", "DeleteObject")

        report = sweeper.sweep()

        assert report.failed == [key]
        assert report.deleted == []

    def test_listing_failure_propagates(self, sweeper, s3_client):
        s3_client.failures["list_objects_v2"] = client_error("InternalError", "ListObjectsV2")

        with pytest.raises(StorageUnavailableError):
            sweeper.sweep()


class TestSweepTask:
    """Celery task wrapper reports instead of raising."""

    def test_task_returns_report(self):
        from core.services.reconciliation_service import SweepReport
        from workers.tasks import sweep_orphaned_images

        sweeper = MagicMock()
        sweeper.sweep.return_value = SweepReport(bucket="locations", scanned=2, deleted=["a.png"])

        with patch("workers.tasks.build_sweeper", return_value=sweeper):
            result = sweep_orphaned_images.run()

        assert result["success"] is True
        assert result["deleted"] == ["a.png"]
        sweeper.sweep.assert_called_once_with(BucketType.LOCATIONS)

    def test_task_reports_failure(self):
        from workers.tasks import sweep_orphaned_images

        sweeper = MagicMock()
        sweeper.sweep.side_effect = StorageUnavailableError("listing", "connection refused")

        with patch("workers.tasks.build_sweeper", return_value=sweeper):
            result = sweep_orphaned_images.run()

        assert result["success"] is False
        assert "connection refused" in result["error"]
