# =============================================================================
# core/models/location.py - Location Schemas
# =============================================================================
# These models define the contract for location operations:
# - LocationCreate / LocationUpdate: Input for the coordinator
# - Location: A persisted location as returned to clients
# - ExternalImage / StoredImage: Where a location's image lives
# - LocationPage: Paginated listing
#
# The image is stored twice: as a public URL (`image`) for clients, and as a
# structured reference (`image_bucket`, `image_key`) that decides whether the
# blob is owned by our object store. Ownership is never inferred from the URL.
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from lib.object_store import BlobReference


# =============================================================================
# Image References
# =============================================================================

class ExternalImage(BaseModel):
    """An image hosted elsewhere and merely linked by URL."""
    kind: Literal["external"] = "external"
    url: str


class StoredImage(BaseModel):
    """An image whose blob lives in, and is owned by, our object store."""
    kind: Literal["stored"] = "stored"
    bucket: str
    key: str

    @property
    def blob(self) -> BlobReference:
        return BlobReference(bucket=self.bucket, key=self.key)


ImageRef = Annotated[ExternalImage | StoredImage, Field(discriminator="kind")]


def _validate_image_url(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError("image must be an absolute http(s) URL")
    return value


# =============================================================================
# Inputs
# =============================================================================

class LocationCreate(BaseModel):
    """
    Schema for creating a location.

    Example:
        {
            "name": "Eiffel Tower",
            "description": "Famous landmark in Paris",
            "address": "Champ de Mars, 5 Avenue Anatole France, 75007 Paris, France",
            "image": "https://example.com/image.jpg"
        }
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name of the location"
    )

    description: str | None = Field(
        default=None,
        max_length=5000,
        description="Optional free-text description"
    )

    # Emptiness is checked by the geocoder, which owns that error
    address: str = Field(
        ...,
        description="Postal address, geocoded to latitude/longitude"
    )

    image: str | None = Field(
        default=None,
        description="External image URL; ignored when an image file is uploaded"
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name cannot be blank")
        return value.strip()

    @field_validator("image")
    @classmethod
    def _image_is_url(cls, value: str | None) -> str | None:
        return _validate_image_url(value)


class LocationUpdate(BaseModel):
    """
    Schema for a partial update. Omitted fields are left untouched.

    keep_image:
        - a new image file always wins and replaces the current image
        - False without a file clears the image
        - True / omitted leaves the image alone unless `image` is given
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    address: str | None = None
    image: str | None = None
    keep_image: bool | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("name cannot be blank")
        return value.strip() if value is not None else None

    @field_validator("image")
    @classmethod
    def _image_is_url(cls, value: str | None) -> str | None:
        return _validate_image_url(value)


# =============================================================================
# Outputs
# =============================================================================

class Location(BaseModel):
    """A persisted location."""

    id: UUID
    name: str
    description: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    image: str | None = None
    image_ref: ImageRef | None = None
    owner_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _coordinates_paired(self) -> "Location":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must both be set or both be empty")
        return self

    @property
    def stored_image(self) -> BlobReference | None:
        """The blob this location owns, if any."""
        if isinstance(self.image_ref, StoredImage):
            return self.image_ref.blob
        return None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Location":
        """Build from a `locations` table row."""
        image = row.get("image") or None
        image_ref: ExternalImage | StoredImage | None = None
        if row.get("image_bucket") and row.get("image_key"):
            image_ref = StoredImage(bucket=row["image_bucket"], key=row["image_key"])
        elif image:
            image_ref = ExternalImage(url=image)

        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            address=row.get("address"),
            latitude=row.get("latitude"),
            longitude=row.get("longitude"),
            image=image,
            image_ref=image_ref,
            owner_id=row.get("owner_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class PaginationMeta(BaseModel):
    """Paging information for LocationPage."""
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)


class LocationPage(BaseModel):
    """One page of locations, newest first."""
    data: list[Location] = Field(default_factory=list)
    meta: PaginationMeta
