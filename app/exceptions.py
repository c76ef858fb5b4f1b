# =============================================================================
# app/exceptions.py - Custom Exceptions and Handlers
# =============================================================================
# Centralized error taxonomy for LocationHub.
#
# Every I/O step either returns cleanly or raises one of these tagged errors.
# The tag (ErrorKind) is what callers branch on; the HTTP layer maps it to a
# status code. Errors should tell HOW to fix, not just WHAT failed.
# =============================================================================

from enum import Enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class ErrorKind(str, Enum):
    """Outward-facing error tags."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    EMPTY = "empty"
    TOO_LARGE = "too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    INVALID_PATH = "invalid_path"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPLOAD_FAILED = "upload_failed"
    PERSIST_FAILED = "persist_failed"


# Default transport mapping; individual errors may override it.
STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.EMPTY: 400,
    ErrorKind.TOO_LARGE: 413,
    ErrorKind.UNSUPPORTED_TYPE: 415,
    ErrorKind.INVALID_PATH: 400,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
    ErrorKind.UPLOAD_FAILED: 502,
    ErrorKind.PERSIST_FAILED: 500,
}


class LocationHubException(Exception):
    """
    Base exception for LocationHub.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        code: str | None = None,
        status_code: int | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code or kind.name
        self.status_code = status_code or STATUS_BY_KIND[kind]
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
            "kind": self.kind.value,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(LocationHubException):
    """Raised when a request carries a value that can never succeed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            kind=ErrorKind.INVALID_INPUT,
            suggestion="Correct the input and try again",
            details={"field": field} if field else None,
        )


# =============================================================================
# Geocoding Exceptions
# =============================================================================

class GeocodeFailedError(LocationHubException):
    """Base class for every failure of the geocoding step."""


class EmptyAddressError(GeocodeFailedError):
    """Raised when the address is empty or whitespace-only."""

    def __init__(self):
        super().__init__(
            message="Address cannot be empty",
            kind=ErrorKind.INVALID_INPUT,
            code="EMPTY_ADDRESS",
            suggestion="Provide a postal address such as '5 Avenue Anatole France, Paris'",
            details={"field": "address"},
        )


class AddressNotFoundError(GeocodeFailedError):
    """Raised when the geocoder returns zero matches."""

    def __init__(self, address: str):
        super().__init__(
            message=f"Address not found: {address}",
            kind=ErrorKind.NOT_FOUND,
            code="ADDRESS_NOT_FOUND",
            status_code=422,
            suggestion="Check the spelling or add the city and country to the address",
            details={"address": address},
        )


class GeocodingUnavailableError(GeocodeFailedError):
    """Raised on any transport or upstream failure of the geocoder."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Geocoding service failed: {error}",
            kind=ErrorKind.UPSTREAM_UNAVAILABLE,
            code="GEOCODING_UNAVAILABLE",
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error},
        )


# =============================================================================
# Object Store Exceptions
# =============================================================================

class ObjectStoreError(LocationHubException):
    """Base class for object store failures."""


class EmptyFileError(ObjectStoreError):
    """Raised when an uploaded file has zero bytes."""

    def __init__(self, filename: str | None = None):
        super().__init__(
            message="File is empty",
            kind=ErrorKind.EMPTY,
            code="EMPTY_FILE",
            suggestion="Upload a non-empty image file",
            details={"filename": filename} if filename else None,
        )


class FileTooLargeError(ObjectStoreError):
    """Raised when an uploaded file exceeds the bucket ceiling."""

    def __init__(self, size_bytes: int, max_bytes: int):
        size_mb = size_bytes / (1024 * 1024)
        max_mb = max_bytes / (1024 * 1024)
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb:g}MB)",
            kind=ErrorKind.TOO_LARGE,
            code="FILE_TOO_LARGE",
            suggestion=f"Upload a file no larger than {max_mb:g}MB",
            details={"size_bytes": size_bytes, "max_bytes": max_bytes},
        )


class UnsupportedFileTypeError(ObjectStoreError):
    """Raised when the content type is not in the bucket allow-list."""

    def __init__(self, content_type: str, allowed: list[str]):
        super().__init__(
            message=f"File type not allowed: {content_type}",
            kind=ErrorKind.UNSUPPORTED_TYPE,
            code="UNSUPPORTED_FILE_TYPE",
            suggestion=f"Only these file types are supported: {', '.join(allowed)}",
            details={"content_type": content_type, "allowed_types": allowed},
        )


class InvalidPathError(ObjectStoreError):
    """Raised when a bucket is not one of the known buckets."""

    def __init__(self, bucket: str):
        super().__init__(
            message=f"Unknown bucket: {bucket}",
            kind=ErrorKind.INVALID_PATH,
            code="INVALID_PATH",
            suggestion="Use one of the buckets provisioned at startup",
            details={"bucket": bucket},
        )


class UploadFailedError(ObjectStoreError):
    """Raised when the object store rejects or fails an upload."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Failed to upload file to storage: {error}",
            kind=ErrorKind.UPLOAD_FAILED,
            code="STORAGE_UPLOAD_ERROR",
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error},
        )


class StorageUnavailableError(ObjectStoreError):
    """Raised when a non-upload store call fails."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=f"Object store {operation} failed: {error}",
            kind=ErrorKind.UPSTREAM_UNAVAILABLE,
            code="STORAGE_UNAVAILABLE",
            suggestion="Check that the object store is reachable",
            details={"operation": operation, "error": error},
        )


# =============================================================================
# Location Exceptions
# =============================================================================

class LocationNotFoundError(LocationHubException):
    """Raised when a location ID doesn't exist."""

    def __init__(self, location_id: str):
        super().__init__(
            message=f"Location not found: {location_id}",
            kind=ErrorKind.NOT_FOUND,
            code="LOCATION_NOT_FOUND",
            suggestion="Check that the location_id is correct",
            details={"location_id": location_id},
        )


class DatabaseUnavailableError(LocationHubException):
    """Raised when reading location records fails."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=f"Database {operation} failed: {error}",
            kind=ErrorKind.UPSTREAM_UNAVAILABLE,
            code="DATABASE_UNAVAILABLE",
            status_code=503,
            suggestion="Try again later or contact support if the issue persists",
            details={"operation": operation, "error": error},
        )


class PersistFailedError(LocationHubException):
    """Raised when writing a location record fails."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=f"Failed to {operation} location: {error}",
            kind=ErrorKind.PERSIST_FAILED,
            code="PERSIST_FAILED",
            suggestion="Try again later or contact support if the issue persists",
            details={"operation": operation, "error": error},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def locationhub_exception_handler(
    request: Request,
    exc: LocationHubException
) -> JSONResponse:
    """
    Convert LocationHubException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - kind: Outward error tag
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle request validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "kind": ErrorKind.INVALID_INPUT.value,
            "errors": str(exc)
        }
    )
