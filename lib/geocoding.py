# =============================================================================
# lib/geocoding.py - Forward Geocoding Client
# =============================================================================
# Resolves a free-text postal address to latitude/longitude using the Mapbox
# forward geocoding API.
#
# Contract:
#   - empty / whitespace-only address  -> EmptyAddressError (no request made)
#   - zero matches                     -> AddressNotFoundError
#   - any other upstream/network error -> GeocodingUnavailableError
#   - success                          -> first (best) match
#
# There is no retry policy here: a single failed attempt is surfaced to the
# caller immediately. Geocoding is a pure query with no cleanup obligation.
#
# Usage:
#   client = GeocodingClient(GeocodingConfig(access_token="pk...."))
#   coords = client.geocode("Champ de Mars, 5 Avenue Anatole France, Paris")
#   print(coords.latitude, coords.longitude)
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field

from app.exceptions import (
    AddressNotFoundError,
    EmptyAddressError,
    GeocodingUnavailableError,
)

logger = logging.getLogger(__name__)

GEOCODING_PATH = "/geocoding/v5/mapbox.places/{query}.json"


class GeocodingConfig(BaseModel):
    """Every option understood by GeocodingClient, with its default."""

    access_token: str = Field(..., min_length=1)
    base_url: str = "https://api.mapbox.com"
    timeout_seconds: float = Field(default=10.0, gt=0)
    country: str | None = None
    language: str | None = None

    model_config = {"frozen": True}


@dataclass(frozen=True)
class Coordinates:
    """Result of a successful lookup."""
    latitude: float
    longitude: float
    formatted_address: str | None = None


class GeocodingClient:
    """
    Thin synchronous client over the Mapbox geocoding endpoint.

    Owns an httpx.Client unless one is injected (tests pass a client built on
    httpx.MockTransport).
    """

    def __init__(self, config: GeocodingConfig, http_client: httpx.Client | None = None):
        self.config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
        )

    def geocode(self, address: str | None) -> Coordinates:
        """
        Geocode an address.

        Args:
            address: Free-text postal address

        Returns:
            Coordinates of the highest-confidence match

        Raises:
            EmptyAddressError: If the address is empty
            AddressNotFoundError: If the upstream has no match
            GeocodingUnavailableError: On any other upstream failure
        """
        if not address or not address.strip():
            raise EmptyAddressError()

        query = address.strip()
        params = {"access_token": self.config.access_token, "limit": 1}
        if self.config.country:
            params["country"] = self.config.country
        if self.config.language:
            params["language"] = self.config.language

        try:
            response = self._http.get(
                GEOCODING_PATH.format(query=quote(query, safe="")),
                params=params,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            logger.warning(f"Geocoder timeout for: {query}")
            raise GeocodingUnavailableError("request timed out")
        except httpx.HTTPStatusError as e:
            logger.error(f"Geocoder returned {e.response.status_code} for '{query}'")
            raise GeocodingUnavailableError(f"upstream returned HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Geocoder error for '{query}': {e}")
            raise GeocodingUnavailableError(str(e))

        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            logger.info(f"Geocoder: no results for '{query}'")
            raise AddressNotFoundError(query)

        return self._parse_feature(features[0], query)

    @staticmethod
    def _parse_feature(feature: dict, query: str) -> Coordinates:
        # Mapbox returns center as [longitude, latitude]
        center = feature.get("center") if isinstance(feature, dict) else None
        try:
            longitude, latitude = float(center[0]), float(center[1])
        except (TypeError, ValueError, IndexError):
            logger.error(f"Geocoder: malformed feature for '{query}': {feature!r}")
            raise GeocodingUnavailableError("upstream returned a malformed match")

        logger.debug(f"Geocoded '{query}' -> ({latitude}, {longitude})")
        return Coordinates(
            latitude=latitude,
            longitude=longitude,
            formatted_address=feature.get("place_name"),
        )

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        if self._owns_client:
            self._http.close()
