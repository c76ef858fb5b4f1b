# =============================================================================
# core/models/ - Pydantic Schemas
# =============================================================================

from .location import (
    ExternalImage,
    ImageRef,
    Location,
    LocationCreate,
    LocationPage,
    LocationUpdate,
    PaginationMeta,
    StoredImage,
)

__all__ = [
    "ExternalImage",
    "ImageRef",
    "Location",
    "LocationCreate",
    "LocationPage",
    "LocationUpdate",
    "PaginationMeta",
    "StoredImage",
]
