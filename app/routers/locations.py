# =============================================================================
# app/routers/locations.py - Location CRUD Endpoints
# =============================================================================
# Thin HTTP layer over core.services.location_service.LocationCoordinator.
#
# Create and update take multipart/form-data so an image file can travel with
# the fields. Handlers are plain `def`: the coordinator does blocking I/O and
# FastAPI runs sync handlers in its threadpool.
#
# Reads are public; writes require an authenticated user.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile

from app.auth import get_current_user, AuthUser
from app.dependencies import CoordinatorDep
from app.exceptions import FileTooLargeError
from core.models.location import Location, LocationCreate, LocationPage, LocationUpdate
from core.services.location_service import MAX_PAGE_SIZE, LocationCoordinator
from lib.object_store import UploadPayload

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def _to_payload(image: UploadFile | None, coordinator: LocationCoordinator) -> UploadPayload | None:
    """
    Turn a multipart file into an UploadPayload; empty file fields mean "no file".

    The bucket ceiling is checked against the declared size before the body
    is read into memory. The store checks again on upload.
    """
    if image is None or not image.filename:
        return None

    max_bytes = coordinator.object_store.policy_for(coordinator.bucket).max_size_bytes
    if image.size is not None and image.size > max_bytes:
        raise FileTooLargeError(image.size, max_bytes)

    content = image.file.read()
    logger.debug(f"Received image {image.filename} ({len(content)} bytes, {image.content_type})")
    return UploadPayload(
        content=content,
        content_type=image.content_type or "application/octet-stream",
        size_bytes=len(content),
        filename=image.filename,
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=Location, status_code=201)
def create_location(
    coordinator: CoordinatorDep,
    name: Annotated[str, Form(description="Display name", examples=["Eiffel Tower"])],
    address: Annotated[str, Form(description="Postal address to geocode")],
    description: Annotated[str | None, Form(description="Optional description")] = None,
    image_url: Annotated[str | None, Form(description="External image URL")] = None,
    image: Annotated[UploadFile | None, File(description="Image file (jpeg, png, gif, webp, svg)")] = None,
    user: AuthUser = Depends(get_current_user),
):
    """
    Create a location.

    The address is geocoded first, then the image (if any) is uploaded, then
    the record is written. If the write fails, the uploaded image is removed.
    """
    data = LocationCreate(name=name, description=description, address=address, image=image_url)
    return coordinator.create_location(data, owner_id=user.id, image_file=_to_payload(image, coordinator))


@router.get("", response_model=LocationPage)
def list_locations(
    coordinator: CoordinatorDep,
    page: Annotated[int, Query(ge=1, description="Page number, starting at 1")] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Items per page")] = 10,
):
    """List locations, newest first."""
    return coordinator.list_locations(page=page, limit=limit)


@router.get("/{location_id}", response_model=Location)
def get_location(
    coordinator: CoordinatorDep,
    location_id: Annotated[UUID, Path(description="Location UUID")],
):
    """Get a location by ID."""
    return coordinator.get_location(location_id)


@router.patch("/{location_id}", response_model=Location)
def update_location(
    coordinator: CoordinatorDep,
    location_id: Annotated[UUID, Path(description="Location UUID")],
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    address: Annotated[str | None, Form(description="New address; re-geocoded when given")] = None,
    image_url: Annotated[str | None, Form(description="External image URL")] = None,
    keep_image: Annotated[
        bool | None,
        Form(description="False removes the current image; ignored when a file is sent"),
    ] = None,
    image: Annotated[UploadFile | None, File(description="Replacement image file")] = None,
    user: AuthUser = Depends(get_current_user),
):
    """
    Partially update a location.

    A new image replaces the old one; the old stored image is deleted only
    after the record update commits.
    """
    data = LocationUpdate(
        name=name,
        description=description,
        address=address,
        image=image_url,
        keep_image=keep_image,
    )
    logger.info(f"User {user.id} updating location {location_id}")
    return coordinator.update_location(location_id, data, image_file=_to_payload(image, coordinator))


@router.delete("/{location_id}")
def delete_location(
    coordinator: CoordinatorDep,
    location_id: Annotated[UUID, Path(description="Location UUID")],
    user: AuthUser = Depends(get_current_user),
):
    """Delete a location and, best effort, its stored image."""
    logger.info(f"User {user.id} deleting location {location_id}")
    coordinator.delete_location(location_id)
    return {"message": "Location deleted successfully"}
