# =============================================================================
# lib/ - Standalone Client Modules
# =============================================================================
# This package contains the clients for the three external resources:
# - geocoding.py: Mapbox forward geocoding (address -> coordinates)
# - object_store.py: S3-compatible blob storage with bucket policies
# - supabase_client.py: Typed Supabase wrapper for the locations table
#
# supabase_client is not re-exported here: it reads app.config at import
# time, and app.config itself imports the config models below.
# =============================================================================

from lib.geocoding import Coordinates, GeocodingClient, GeocodingConfig
from lib.object_store import (
    BlobReference,
    BucketPolicy,
    BucketType,
    ObjectStore,
    ObjectStoreConfig,
    UploadPayload,
)

__all__ = [
    # Geocoding
    "Coordinates",
    "GeocodingClient",
    "GeocodingConfig",
    # Object store
    "BlobReference",
    "BucketPolicy",
    "BucketType",
    "ObjectStore",
    "ObjectStoreConfig",
    "UploadPayload",
]
