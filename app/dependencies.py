# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends().
#
# Each component is built once per process from explicit configs produced by
# app.config.settings. Tests override these with app.dependency_overrides.
# =============================================================================

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from app.config import settings
from core.services.location_service import LocationCoordinator
from lib.geocoding import GeocodingClient
from lib.object_store import ObjectStore
from lib.supabase_client import SupabaseClient


@lru_cache
def get_geocoding_client() -> GeocodingClient:
    """Process-wide geocoder."""
    return GeocodingClient(settings.geocoding_config())


@lru_cache
def get_object_store() -> ObjectStore:
    """Process-wide object store (buckets are provisioned in app lifespan)."""
    return ObjectStore(settings.object_store_config())


def get_supabase_client() -> type[SupabaseClient]:
    """Returns the singleton client wrapper."""
    return SupabaseClient


@lru_cache
def get_location_coordinator() -> LocationCoordinator:
    """Coordinator wired to the process-wide clients."""
    return LocationCoordinator(
        geocoder=get_geocoding_client(),
        object_store=get_object_store(),
        repository=get_supabase_client(),
    )


# Type aliases for dependency injection
SupabaseDep = Annotated[type[SupabaseClient], Depends(get_supabase_client)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
CoordinatorDep = Annotated[LocationCoordinator, Depends(get_location_coordinator)]
