# =============================================================================
# core/services/location_service.py - Location Lifecycle Coordinator
# =============================================================================
# Keeps three independently-failing resources consistent:
#   - the geocoder (pure query, nothing to undo)
#   - the object store (uploaded blobs must be cleaned up)
#   - the location table (source of truth)
#
# Ordering:
#   create / update:  geocode -> upload -> persist  (rollback: delete new blob)
#   update / delete:  persist -> delete old blob    (best effort, after commit)
#
# The database never references a blob that does not exist. A crash between
# commit and cleanup leaves an orphaned blob, which the reconciliation sweep
# reclaims later (see reconciliation_service.py).
#
# Compensating deletes are logged and swallowed; the caller always sees the
# original failure.
# =============================================================================

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID

from app.exceptions import (
    DatabaseUnavailableError,
    InvalidInputError,
    LocationNotFoundError,
    PersistFailedError,
)
from core.models.location import (
    Location,
    LocationCreate,
    LocationPage,
    LocationUpdate,
    PaginationMeta,
)
from lib.geocoding import GeocodingClient
from lib.object_store import BlobReference, BucketType, ObjectStore, UploadPayload
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class LocationRepository(Protocol):
    """Persistence interface the coordinator relies on."""

    def fetch_location(self, location_id: str | UUID) -> dict[str, Any] | None: ...

    def fetch_locations_page(self, offset: int, limit: int) -> list[dict[str, Any]]: ...

    def count_locations(self) -> int: ...

    def insert_location(self, data: dict[str, Any]) -> dict[str, Any]: ...

    def update_location(self, location_id: str | UUID, data: dict[str, Any]) -> dict[str, Any]: ...

    def delete_location(self, location_id: str | UUID) -> None: ...


class LocationCoordinator:
    """
    Orchestrates create/update/delete of locations across geocoder,
    object store and repository, applying compensating deletes on failure.
    """

    def __init__(
        self,
        geocoder: GeocodingClient,
        object_store: ObjectStore,
        repository: LocationRepository = SupabaseClient,
        bucket: BucketType = BucketType.LOCATIONS,
    ):
        self.geocoder = geocoder
        self.object_store = object_store
        self.repository = repository
        self.bucket = bucket

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_location(self, location_id: str | UUID) -> Location:
        """
        Load a location.

        Raises:
            LocationNotFoundError: If no record has this ID
            DatabaseUnavailableError: If the lookup itself failed
        """
        try:
            row = self.repository.fetch_location(str(location_id))
        except Exception as e:
            raise DatabaseUnavailableError("lookup", str(e)) from e

        if not row:
            raise LocationNotFoundError(str(location_id))
        return Location.from_row(row)

    def list_locations(self, page: int = 1, limit: int = 10) -> LocationPage:
        """
        List locations, newest first.

        The page query and the count query are independent reads and run
        concurrently.
        """
        if page < 1:
            raise InvalidInputError("page must be >= 1", field="page")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")

        offset = (page - 1) * limit
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                rows_future = pool.submit(self.repository.fetch_locations_page, offset, limit)
                count_future = pool.submit(self.repository.count_locations)
                rows = rows_future.result()
                total = count_future.result()
        except Exception as e:
            raise DatabaseUnavailableError("listing", str(e)) from e

        return LocationPage(
            data=[Location.from_row(row) for row in rows],
            meta=PaginationMeta(
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit),
            ),
        )

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_location(
        self,
        data: LocationCreate,
        owner_id: str | UUID,
        image_file: UploadPayload | None = None,
    ) -> Location:
        """
        Create a location.

        Steps:
            1. Geocode the address (fail fast, nothing to undo)
            2. Upload the image file, if any
            3. Persist; on failure delete the blob from step 2

        Raises:
            GeocodeFailedError: Address empty, not found, or geocoder down
            ObjectStoreError: Image rejected or upload failed
            PersistFailedError: Insert failed (after compensation)
        """
        coords = self.geocoder.geocode(data.address)
        if not image_file:
            self._ensure_external(data.image)

        uploaded = self._upload(image_file) if image_file else None

        now = datetime.now(timezone.utc).isoformat()
        record: dict[str, Any] = {
            "name": data.name,
            "description": data.description,
            "address": data.address.strip(),
            "latitude": coords.latitude,
            "longitude": coords.longitude,
            "owner_id": str(owner_id),
            "created_at": now,
            "updated_at": now,
            **self._image_fields(uploaded, data.image),
        }

        try:
            row = self.repository.insert_location(record)
        except Exception as e:
            logger.error(f"Failed to persist new location '{data.name}': {e}")
            if uploaded:
                self._discard_blob(uploaded, "rollback of failed create")
            raise PersistFailedError("create", str(e)) from e

        location = Location.from_row(row)
        logger.info(f"Created location {location.id} for owner {owner_id}")
        return location

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_location(
        self,
        location_id: str | UUID,
        data: LocationUpdate,
        image_file: UploadPayload | None = None,
    ) -> Location:
        """
        Partially update a location.

        Image precedence:
            a. new file        -> upload, replace, old stored blob deleted after commit
            b. keep_image=False -> clear, old stored blob deleted after commit
            c. external `image` -> replace, old stored blob deleted after commit
            d. otherwise       -> untouched

        Raises:
            LocationNotFoundError: If no record has this ID
            GeocodeFailedError: New address could not be geocoded
            ObjectStoreError: Image rejected or upload failed
            PersistFailedError: Update failed (after compensation)
        """
        existing = self.get_location(location_id)
        changes: dict[str, Any] = {}

        if data.name is not None:
            changes["name"] = data.name
        if data.description is not None:
            changes["description"] = data.description
        if data.address is not None:
            coords = self.geocoder.geocode(data.address)
            changes.update(
                address=data.address.strip(),
                latitude=coords.latitude,
                longitude=coords.longitude,
            )

        if not image_file:
            self._ensure_external(data.image)

        previous = existing.stored_image
        uploaded: BlobReference | None = None
        stale: BlobReference | None = None

        if image_file:
            uploaded = self._upload(image_file)
            changes.update(self._image_fields(uploaded, None))
            stale = previous
        elif data.keep_image is False:
            if existing.image or existing.image_ref:
                changes.update(self._image_fields(None, None))
                stale = previous
        elif data.image is not None:
            changes.update(self._image_fields(None, data.image))
            stale = previous

        if not changes:
            return existing

        try:
            row = self.repository.update_location(str(existing.id), changes)
        except Exception as e:
            logger.error(f"Failed to persist update of location {existing.id}: {e}")
            if uploaded:
                self._discard_blob(uploaded, "rollback of failed update")
            raise PersistFailedError("update", str(e)) from e

        if stale:
            self._discard_blob(stale, "replaced image")

        logger.info(f"Updated location {existing.id} ({', '.join(sorted(changes))})")
        return Location.from_row(row)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def delete_location(self, location_id: str | UUID) -> None:
        """
        Delete a location, then its stored image (best effort).

        Succeeds once the record delete commits, whatever happens to the blob.

        Raises:
            LocationNotFoundError: If no record has this ID
            PersistFailedError: Record delete failed (blob untouched)
        """
        existing = self.get_location(location_id)

        try:
            self.repository.delete_location(str(existing.id))
        except Exception as e:
            logger.error(f"Failed to delete location {existing.id}: {e}")
            raise PersistFailedError("delete", str(e)) from e

        if existing.stored_image:
            self._discard_blob(existing.stored_image, "location deleted")

        logger.info(f"Deleted location {existing.id}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _upload(self, image_file: UploadPayload) -> BlobReference:
        key = self.object_store.upload(
            self.bucket,
            image_file.content,
            image_file.content_type,
            image_file.size_bytes,
            image_file.filename,
        )
        policy = self.object_store.policy_for(self.bucket)
        return BlobReference(bucket=policy.name, key=key)

    def _image_fields(self, uploaded: BlobReference | None, external_url: str | None) -> dict[str, Any]:
        if uploaded:
            return {
                "image": self.object_store.build_url(uploaded.bucket, uploaded.key),
                "image_bucket": uploaded.bucket,
                "image_key": uploaded.key,
            }
        return {"image": external_url, "image_bucket": None, "image_key": None}

    def _ensure_external(self, url: str | None) -> None:
        # A caller-supplied URL pointing into our buckets would let two
        # locations share one blob; such images must be uploaded instead.
        if url and self.object_store.parse_url(url) is not None:
            raise InvalidInputError(
                "image URL points into managed storage; upload the file instead",
                field="image",
            )

    def _discard_blob(self, blob: BlobReference, reason: str) -> None:
        """Best-effort delete. Failures are logged, never raised."""
        try:
            self.object_store.delete(blob.bucket, blob.key)
        except Exception as e:
            logger.error(f"Failed to delete blob {blob.path} ({reason}): {e}")
