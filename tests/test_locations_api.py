# =============================================================================
# tests/test_locations_api.py - HTTP Layer Tests
# =============================================================================
# Drives the FastAPI app through TestClient. Every external resource is
# swapped for an in-memory double via app.dependency_overrides, so the
# lifespan (bucket provisioning) is never run.
#
# Run with: pytest tests/test_locations_api.py -v
# =============================================================================

import time
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.auth import AuthUser, get_current_user
from app.config import settings
from app.dependencies import (
    get_location_coordinator,
    get_object_store,
    get_supabase_client,
)
from app.exceptions import AddressNotFoundError
from app.main import app


@pytest.fixture
def user():
    return AuthUser(id=uuid4(), email="owner@example.com", role="authenticated")


@pytest.fixture
def overrides(coordinator, repository, object_store):
    """Wire the app to the in-memory doubles; auth is left real."""
    app.dependency_overrides[get_location_coordinator] = lambda: coordinator
    app.dependency_overrides[get_supabase_client] = lambda: repository
    app.dependency_overrides[get_object_store] = lambda: object_store
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides, user):
    """Client with an authenticated user."""
    overrides[get_current_user] = lambda: user
    return TestClient(app)


@pytest.fixture
def anonymous_client(overrides):
    """Client that goes through real bearer-token verification."""
    return TestClient(app)


def png_file(name="tower.png", content=b"\x89PNG" + b"\x00" * 32):
    return {"image": (name, content, "image/png")}


def create(client, files=None, **fields):
    data = {"name": "Eiffel Tower", "address": "Champ de Mars, Paris", **fields}
    return client.post("/api/v1/locations", data=data, files=files)


# =============================================================================
# Create
# =============================================================================

class TestCreateEndpoint:
    """POST /api/v1/locations"""

    def test_create_with_file(self, client, user, s3_client):
        response = create(client, files=png_file(), description="Landmark")

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Eiffel Tower"
        assert body["latitude"] == 48.8584
        assert body["owner_id"] == str(user.id)
        assert body["image_ref"]["kind"] == "stored"
        assert body["image_ref"]["key"] in s3_client.keys()
        assert body["image"].startswith("http://localhost:9000/locations/")

    def test_create_with_image_url(self, client):
        response = create(client, image_url="https://images.example.com/tower.jpg")

        assert response.status_code == 201
        assert response.json()["image_ref"] == {
            "kind": "external",
            "url": "https://images.example.com/tower.jpg",
        }

    def test_create_without_image(self, client):
        response = create(client)

        assert response.status_code == 201
        assert response.json()["image"] is None

    def test_unsupported_type(self, client, repository):
        response = create(client, files={"image": ("doc.pdf", b"%PDF-1.7", "application/pdf")})

        assert response.status_code == 415
        assert response.json()["kind"] == "unsupported_type"
        assert repository.inserts == []

    def test_oversized_file_rejected_before_upload(self, client, object_store, geocoder, repository):
        big = b"x" * (12 * 1024 * 1024 + 1)

        with patch.object(object_store, "upload", wraps=object_store.upload) as upload:
            response = create(client, files=png_file(content=big))

        assert response.status_code == 413
        assert response.json()["code"] == "FILE_TOO_LARGE"
        upload.assert_not_called()
        assert geocoder.calls == []
        assert repository.inserts == []

    def test_file_at_ceiling_accepted(self, client, s3_client):
        response = create(client, files=png_file(content=b"x" * (12 * 1024 * 1024)))

        assert response.status_code == 201
        assert response.json()["image_ref"]["key"] in s3_client.keys()

    def test_address_not_found(self, client, geocoder):
        geocoder.error = AddressNotFoundError("Atlantis")

        response = create(client, address="Atlantis")

        assert response.status_code == 422
        assert response.json()["code"] == "ADDRESS_NOT_FOUND"
        assert response.json()["kind"] == "not_found"

    def test_blank_address(self, client):
        response = create(client, address="   ")

        assert response.status_code == 400
        assert response.json()["code"] == "EMPTY_ADDRESS"

    def test_blank_name(self, client):
        response = create(client, name="   ")

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_managed_url_rejected(self, client):
        response = create(client, image_url="http://localhost:9000/locations/abc.png")

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_input"

    def test_persist_failure(self, client, repository, s3_client):
        repository.fail_insert = RuntimeError("insert exploded")

        response = create(client, files=png_file())

        assert response.status_code == 500
        assert response.json()["code"] == "PERSIST_FAILED"
        assert "insert exploded" in response.json()["detail"]
        assert s3_client.keys() == set()


# =============================================================================
# Reads
# =============================================================================

class TestReadEndpoints:
    """GET /api/v1/locations and GET /api/v1/locations/{id}"""

    def test_list(self, client, repository):
        for day in range(1, 4):
            repository.add(name=f"Place {day}", created_at=f"2024-02-0{day}T00:00:00+00:00")

        response = client.get("/api/v1/locations", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert [item["name"] for item in body["data"]] == ["Place 3", "Place 2"]
        assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "total_pages": 2}

    def test_list_limit_capped(self, client):
        response = client.get("/api/v1/locations", params={"limit": 101})

        assert response.status_code == 422

    def test_get(self, client, repository):
        row = repository.add(name="Big Ben")

        response = client.get(f"/api/v1/locations/{row['id']}")

        assert response.status_code == 200
        assert response.json()["name"] == "Big Ben"

    def test_get_missing(self, client):
        response = client.get(f"/api/v1/locations/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["code"] == "LOCATION_NOT_FOUND"

    def test_get_malformed_id(self, client):
        response = client.get("/api/v1/locations/not-a-uuid")

        assert response.status_code == 422

    def test_database_down(self, client, repository):
        repository.fail_reads = RuntimeError("connection refused")

        response = client.get("/api/v1/locations")

        assert response.status_code == 503
        assert response.json()["kind"] == "upstream_unavailable"

    def test_reads_are_public(self, anonymous_client):
        response = anonymous_client.get("/api/v1/locations")

        assert response.status_code == 200


# =============================================================================
# Update / Delete
# =============================================================================

class TestWriteEndpoints:
    """PATCH and DELETE /api/v1/locations/{id}"""

    def test_patch_name(self, client):
        location_id = create(client, files=png_file()).json()["id"]

        response = client.patch(f"/api/v1/locations/{location_id}", data={"name": "Tour Eiffel"})

        assert response.status_code == 200
        assert response.json()["name"] == "Tour Eiffel"
        assert response.json()["image_ref"]["kind"] == "stored"

    def test_patch_keep_image_false(self, client, s3_client):
        location_id = create(client, files=png_file()).json()["id"]

        response = client.patch(f"/api/v1/locations/{location_id}", data={"keep_image": "false"})

        assert response.status_code == 200
        assert response.json()["image"] is None
        assert s3_client.keys() == set()

    def test_patch_replace_file(self, client, s3_client):
        created = create(client, files=png_file()).json()

        response = client.patch(
            f"/api/v1/locations/{created['id']}",
            files=png_file(name="new.png"),
        )

        new_key = response.json()["image_ref"]["key"]
        assert response.status_code == 200
        assert new_key != created["image_ref"]["key"]
        assert s3_client.keys() == {new_key}

    def test_patch_missing(self, client):
        response = client.patch(f"/api/v1/locations/{uuid4()}", data={"name": "x"})

        assert response.status_code == 404

    def test_delete(self, client, s3_client):
        location_id = create(client, files=png_file()).json()["id"]

        response = client.delete(f"/api/v1/locations/{location_id}")

        assert response.status_code == 200
        assert response.json() == {"message": "Location deleted successfully"}
        assert client.get(f"/api/v1/locations/{location_id}").status_code == 404
        assert s3_client.keys() == set()


# =============================================================================
# Authentication
# =============================================================================

def make_token(sub: str, audience: str = "authenticated", expires_in: int = 3600) -> str:
    claims = {
        "sub": sub,
        "aud": audience,
        "email": "owner@example.com",
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


class TestAuthentication:
    """Writes require a valid Supabase access token."""

    def test_missing_token(self, anonymous_client):
        response = create(anonymous_client)

        assert response.status_code in (401, 403)

    def test_valid_token(self, anonymous_client):
        owner = uuid4()
        headers = {"Authorization": f"Bearer {make_token(str(owner))}"}

        response = anonymous_client.post(
            "/api/v1/locations",
            data={"name": "Eiffel Tower", "address": "Paris"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["owner_id"] == str(owner)

    @pytest.mark.parametrize("token", [
        "not-a-jwt",
        make_token(str(uuid4()), audience="anon"),
        make_token(str(uuid4()), expires_in=-60),
        make_token("not-a-uuid"),
    ])
    def test_invalid_tokens(self, anonymous_client, token):
        response = anonymous_client.delete(
            f"/api/v1/locations/{uuid4()}",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401


# =============================================================================
# Health
# =============================================================================

class TestHealth:
    """Health endpoints."""

    def test_root(self, client):
        assert client.get("/").json()["name"] == "LocationHub API"

    def test_health(self, client):
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_live(self, client):
        assert client.get("/api/v1/health/live").json()["status"] == "alive"

    def test_ready(self, client):
        body = client.get("/api/v1/health/ready").json()

        assert body["status"] == "ready"
        assert body["checks"] == {"database": "healthy", "storage": "healthy", "missing_buckets": []}

    def test_degraded_when_bucket_missing(self, client, object_store):
        object_store.provisioned_buckets.clear()

        body = client.get("/api/v1/health/ready").json()

        assert body["status"] == "degraded"
        assert body["checks"]["missing_buckets"] == ["locations"]
