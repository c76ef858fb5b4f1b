# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations on the
# `locations` table. It implements the singleton pattern to reuse a single
# client connection.
#
# Table layout (public.locations):
#   id uuid pk, name text, description text, address text,
#   latitude float8, longitude float8,
#   image text, image_bucket text, image_key text,
#   owner_id uuid, created_at timestamptz, updated_at timestamptz
#
# The class itself satisfies core.services.location_service.LocationRepository,
# so it can be passed around without instantiation.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   row = SupabaseClient.fetch_location(location_id)
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

logger = logging.getLogger(__name__)

LOCATIONS_TABLE = "locations"

# PostgREST truncates every response at the server's db-max-rows (1000 by
# default) without signalling it, so bulk reads must page.
IMAGE_KEYS_PAGE_SIZE = 1000


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClient:
    """
    Typed wrapper for Supabase location operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        This is appropriate for server-side operations.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_location(cls, location_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a location row by ID.

        Returns:
            Row dict, or None if not found

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()
        location_id_str = cls._normalize_uuid(location_id)

        try:
            response = (
                client.table(LOCATIONS_TABLE)
                .select("*")
                .eq("id", location_id_str)
                .limit(1)
                .execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch location: {e}",
                code="FETCH_LOCATION_FAILED",
                details={"location_id": location_id_str}
            )

    @classmethod
    def fetch_locations_page(cls, offset: int, limit: int) -> list[dict[str, Any]]:
        """
        Fetch one page of locations, newest first.

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()

        try:
            response = (
                client.table(LOCATIONS_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
            rows = response.data or []
            logger.debug(f"Fetched {len(rows)} locations at offset {offset}")
            return rows

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch locations: {e}",
                code="FETCH_LOCATIONS_FAILED",
                details={"offset": offset, "limit": limit}
            )

    @classmethod
    def count_locations(cls) -> int:
        """
        Count all locations.

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()

        try:
            response = (
                client.table(LOCATIONS_TABLE)
                .select("id", count="exact")
                .limit(1)
                .execute()
            )
            return response.count or 0

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to count locations: {e}",
                code="COUNT_LOCATIONS_FAILED",
            )

    @classmethod
    def fetch_image_keys(cls, bucket: str) -> set[str]:
        """
        Get every object key in `bucket` that a location still references.

        Pages by id until an empty page comes back. A short page is not
        treated as the end, since the server may cap below the page size.

        Raises:
            SupabaseClientError: If query fails
        """
        client = cls.get_client()
        keys: set[str] = set()
        offset = 0

        try:
            while True:
                response = (
                    client.table(LOCATIONS_TABLE)
                    .select("id, image_key")
                    .eq("image_bucket", bucket)
                    .order("id")
                    .range(offset, offset + IMAGE_KEYS_PAGE_SIZE - 1)
                    .execute()
                )
                rows = response.data or []
                if not rows:
                    break
                keys.update(row["image_key"] for row in rows if row.get("image_key"))
                offset += len(rows)

            logger.debug(f"Found {len(keys)} referenced image keys in {bucket}")
            return keys

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch referenced image keys: {e}",
                code="FETCH_IMAGE_KEYS_FAILED",
                details={"bucket": bucket}
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @classmethod
    def insert_location(cls, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a location row.

        Returns:
            The inserted row (with id and timestamps)

        Raises:
            SupabaseClientError: If insert fails
        """
        client = cls.get_client()

        try:
            response = client.table(LOCATIONS_TABLE).insert(data).execute()
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to insert location: {e}",
                code="INSERT_LOCATION_FAILED",
                suggestion="Check that the locations table exists and owner_id is valid",
            )

        if not response.data:
            raise SupabaseClientError(
                message="Insert returned no data",
                code="INSERT_LOCATION_FAILED",
            )

        row = response.data[0]
        logger.info(f"Inserted location: {row.get('id')}")
        return row

    @classmethod
    def update_location(cls, location_id: str | UUID, data: dict[str, Any]) -> dict[str, Any]:
        """
        Update a location row. `updated_at` is always refreshed.

        Returns:
            The updated row

        Raises:
            SupabaseClientError: If update fails or the row no longer exists
        """
        client = cls.get_client()
        location_id_str = cls._normalize_uuid(location_id)
        payload = {**data, "updated_at": datetime.now(timezone.utc).isoformat()}

        try:
            response = (
                client.table(LOCATIONS_TABLE)
                .update(payload)
                .eq("id", location_id_str)
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to update location: {e}",
                code="UPDATE_LOCATION_FAILED",
                details={"location_id": location_id_str}
            )

        if not response.data:
            raise SupabaseClientError(
                message=f"Location disappeared during update: {location_id_str}",
                code="UPDATE_LOCATION_FAILED",
                details={"location_id": location_id_str}
            )

        logger.info(f"Updated location: {location_id_str}")
        return response.data[0]

    @classmethod
    def delete_location(cls, location_id: str | UUID) -> None:
        """
        Delete a location row.

        Raises:
            SupabaseClientError: If delete fails
        """
        client = cls.get_client()
        location_id_str = cls._normalize_uuid(location_id)

        try:
            client.table(LOCATIONS_TABLE).delete().eq("id", location_id_str).execute()
            logger.info(f"Deleted location: {location_id_str}")

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to delete location: {e}",
                code="DELETE_LOCATION_FAILED",
                details={"location_id": location_id_str}
            )
