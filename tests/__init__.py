# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the LocationHub API:
# - test_models.py: Pydantic model validation and row mapping
# - test_geocoding.py: Mapbox client against httpx.MockTransport
# - test_object_store.py: ObjectStore against an in-memory S3
# - test_location_service.py: Ordering and compensation in the coordinator
# - test_reconciliation.py: Orphaned image sweep and its Celery task
# - test_locations_api.py: HTTP endpoints through TestClient
#
# Run tests with: pytest
# =============================================================================
