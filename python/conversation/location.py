"""Session geolocation: providers plus the write-once ``SessionLocation``.

A provider yields zero or one coordinate and never raises: any failure is
"no location".  The first resolution settles the session location for good;
later callbacks (another provider, a second browser callback) are ignored.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from placefinder.config import Settings
from placefinder.places.client import PlaceSearchClient
from placefinder.places.models import Coordinate

logger = logging.getLogger(__name__)


class GeolocationProvider(ABC):
    @abstractmethod
    async def locate(self) -> Optional[Coordinate]:
        """Return the current coordinate, or None if it cannot be determined."""
        ...


class FixedLocationProvider(GeolocationProvider):
    """Always yields the same (possibly absent) coordinate."""

    def __init__(self, coordinate: Optional[Coordinate]) -> None:
        self.coordinate = coordinate

    async def locate(self) -> Optional[Coordinate]:
        return self.coordinate


class GeocodedLocationProvider(GeolocationProvider):
    """Resolves a configured address through the places proxy's geocoder."""

    def __init__(self, client: PlaceSearchClient, address: str) -> None:
        self._client = client
        self.address = address

    async def locate(self) -> Optional[Coordinate]:
        try:
            return await self._client.geocode(self.address)
        except Exception as exc:
            logger.warning("Geocoding %r failed: %s", self.address, exc)
            return None


def provider_from_settings(
    settings: Settings, client: PlaceSearchClient
) -> Optional[GeolocationProvider]:
    """Pick a provider from DEFAULT_LAT/DEFAULT_LNG, else DEFAULT_ADDRESS.

    Returns None when neither is configured; the location is then left for
    the client's own geolocation callback.
    """
    if settings.default_lat is not None and settings.default_lng is not None:
        return FixedLocationProvider(
            Coordinate(lat=settings.default_lat, lng=settings.default_lng)
        )
    if settings.default_address:
        return GeocodedLocationProvider(client, settings.default_address)
    return None


class SessionLocation:
    """Write-once holder for the session's coordinate."""

    def __init__(self) -> None:
        self._coordinate: Optional[Coordinate] = None
        self._settled = False

    @property
    def coordinate(self) -> Optional[Coordinate]:
        return self._coordinate

    @property
    def is_settled(self) -> bool:
        return self._settled

    def offer(self, coordinate: Optional[Coordinate]) -> bool:
        """Settle the location with *coordinate* (None = lookup failed).

        Returns True only for the call that settled it.
        """
        if self._settled:
            logger.debug("Location already settled; ignoring %s", coordinate)
            return False
        self._coordinate = coordinate
        self._settled = True
        return True

    async def resolve(self, provider: GeolocationProvider) -> bool:
        """Ask *provider* once and offer its answer."""
        if self._settled:
            return False
        coordinate = await provider.locate()
        return self.offer(coordinate)
