# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - In-memory doubles for the three external resources:
#     FakeS3Client      - boto3 "s3" client surface, raises ClientError
#     FakeGeocoder      - records calls, returns fixed coordinates
#     InMemoryRepository - dict-backed locations table
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("MAPBOX_ACCESS_TOKEN", "pk.test-token")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import copy
import uuid
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from app.exceptions import EmptyAddressError
from core.services.location_service import LocationCoordinator
from lib.geocoding import Coordinates
from lib.object_store import ObjectStore, ObjectStoreConfig


# =============================================================================
# Object Store Double
# =============================================================================

def client_error(code: str, operation: str) -> ClientError:
    """Build the ClientError botocore raises for an S3 error code."""
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class _FakePaginator:
    def __init__(self, s3: "FakeS3Client", page_size: int):
        self.s3 = s3
        self.page_size = page_size

    def paginate(self, Bucket: str):
        self.s3._maybe_fail("list_objects_v2")
        if Bucket not in self.s3.buckets:
            raise client_error("NoSuchBucket", "ListObjectsV2")
        items = [
            {"Key": key, "LastModified": obj["LastModified"]}
            for key, obj in sorted(self.s3.buckets[Bucket].items())
        ]
        for start in range(0, max(len(items), 1), self.page_size):
            page = items[start:start + self.page_size]
            yield {"Contents": page} if page else {}


class FakeS3Client:
    """
    The subset of the boto3 S3 client used by ObjectStore.

    Set `failures[operation] = ClientError(...)` to make an operation fail.
    """

    def __init__(self, page_size: int = 2):
        self.buckets: dict[str, dict[str, dict]] = {}
        self.policies: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, dict]] = []
        self.page_size = page_size

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    def _record(self, operation: str, **kwargs) -> None:
        self.calls.append((operation, kwargs))
        self._maybe_fail(operation)

    def calls_to(self, operation: str) -> list[dict]:
        return [kwargs for op, kwargs in self.calls if op == operation]

    # Buckets

    def head_bucket(self, Bucket):
        self._record("head_bucket", Bucket=Bucket)
        if Bucket not in self.buckets:
            raise client_error("404", "HeadBucket")
        return {}

    def create_bucket(self, Bucket, **kwargs):
        self._record("create_bucket", Bucket=Bucket, **kwargs)
        self.buckets.setdefault(Bucket, {})
        return {}

    def put_bucket_policy(self, Bucket, Policy):
        self._record("put_bucket_policy", Bucket=Bucket, Policy=Policy)
        self.policies[Bucket] = Policy
        return {}

    # Objects

    def put_object(self, Bucket, Key, Body, ContentLength, ContentType, Metadata):
        self._record("put_object", Bucket=Bucket, Key=Key, ContentType=ContentType)
        if Bucket not in self.buckets:
            raise client_error("NoSuchBucket", "PutObject")
        content = Body if isinstance(Body, bytes) else Body.read()
        self.buckets[Bucket][Key] = {
            "Body": content,
            "ContentType": ContentType,
            "Metadata": Metadata,
            "LastModified": datetime.now(timezone.utc),
        }
        return {}

    def head_object(self, Bucket, Key):
        self._record("head_object", Bucket=Bucket, Key=Key)
        if Key not in self.buckets.get(Bucket, {}):
            raise client_error("404", "HeadObject")
        return {"ContentType": self.buckets[Bucket][Key]["ContentType"]}

    def delete_object(self, Bucket, Key):
        self._record("delete_object", Bucket=Bucket, Key=Key)
        self.buckets.get(Bucket, {}).pop(Key, None)
        return {}

    def get_paginator(self, operation_name):
        assert operation_name == "list_objects_v2"
        return _FakePaginator(self, self.page_size)

    # Test helpers

    def keys(self, bucket: str = "locations") -> set[str]:
        return set(self.buckets.get(bucket, {}))

    def age(self, bucket: str, key: str, last_modified: datetime) -> None:
        self.buckets[bucket][key]["LastModified"] = last_modified


# =============================================================================
# Geocoder Double
# =============================================================================

class FakeGeocoder:
    """Returns fixed coordinates; set `error` to make every call fail."""

    def __init__(self, latitude: float = 48.8584, longitude: float = 2.2945):
        self.latitude = latitude
        self.longitude = longitude
        self.error: Exception | None = None
        self.calls: list[str] = []

    def geocode(self, address):
        self.calls.append(address)
        if self.error is not None:
            raise self.error
        if not address or not address.strip():
            raise EmptyAddressError()
        return Coordinates(latitude=self.latitude, longitude=self.longitude, formatted_address=address)

    def close(self):
        pass


# =============================================================================
# Repository Double
# =============================================================================

class InMemoryRepository:
    """
    Dict-backed `locations` table with the LocationRepository interface.

    Set `fail_insert` / `fail_update` / `fail_delete` / `fail_reads` to an
    exception to make those operations raise it.
    """

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.fail_insert: Exception | None = None
        self.fail_update: Exception | None = None
        self.fail_delete: Exception | None = None
        self.fail_reads: Exception | None = None
        self.inserts: list[dict] = []
        self.updates: list[tuple[str, dict]] = []

    def add(self, **fields) -> dict:
        """Seed a row directly, bypassing the coordinator."""
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "id": str(uuid.uuid4()),
            "name": "Seeded",
            "description": None,
            "address": "1 Seed Street",
            "latitude": 1.0,
            "longitude": 2.0,
            "image": None,
            "image_bucket": None,
            "image_key": None,
            "owner_id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        self.rows[row["id"]] = row
        return copy.deepcopy(row)

    def fetch_location(self, location_id):
        if self.fail_reads:
            raise self.fail_reads
        row = self.rows.get(str(location_id))
        return copy.deepcopy(row) if row else None

    def fetch_locations_page(self, offset, limit):
        if self.fail_reads:
            raise self.fail_reads
        ordered = sorted(self.rows.values(), key=lambda r: r["created_at"], reverse=True)
        return copy.deepcopy(ordered[offset:offset + limit])

    def count_locations(self):
        if self.fail_reads:
            raise self.fail_reads
        return len(self.rows)

    def fetch_image_keys(self, bucket):
        return {
            row["image_key"] for row in self.rows.values()
            if row.get("image_bucket") == bucket and row.get("image_key")
        }

    def insert_location(self, data):
        self.inserts.append(copy.deepcopy(data))
        if self.fail_insert:
            raise self.fail_insert
        row = {"id": str(uuid.uuid4()), **data}
        self.rows[row["id"]] = row
        return copy.deepcopy(row)

    def update_location(self, location_id, data):
        self.updates.append((str(location_id), copy.deepcopy(data)))
        if self.fail_update:
            raise self.fail_update
        row = self.rows[str(location_id)]
        row.update(data)
        row["updated_at"] = datetime.now(timezone.utc).isoformat()
        return copy.deepcopy(row)

    def delete_location(self, location_id):
        if self.fail_delete:
            raise self.fail_delete
        self.rows.pop(str(location_id), None)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def s3_client():
    """Empty in-memory S3."""
    return FakeS3Client()


@pytest.fixture
def store_config():
    """Default store config: http://localhost:9000, one `locations` bucket."""
    return ObjectStoreConfig()


@pytest.fixture
def object_store(store_config, s3_client):
    """ObjectStore over the in-memory S3, buckets provisioned."""
    store = ObjectStore(store_config, client=s3_client)
    store.initialize()
    s3_client.calls.clear()
    return store


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def coordinator(geocoder, object_store, repository):
    """Coordinator wired to the three doubles."""
    return LocationCoordinator(
        geocoder=geocoder,
        object_store=object_store,
        repository=repository,
    )


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def png_bytes():
    """A tiny payload; content is never inspected, only its declared type."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
