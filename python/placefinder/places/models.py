"""Pydantic v2 models for the places proxy (Google Places Text Search shape).

All upstream models use model_config extra="ignore" to tolerate the many
undocumented fields Google returns (photos, opening_hours, plus_code, ...).

Hierarchy:
  Coordinate               -- WGS84 lat/lng pair, shared by every layer
  Place                    -- frozen domain record shown on cards and markers

  Upstream payloads
    LatLng / Geometry      -- nested ``geometry.location`` object
    PlaceRecord            -- one item of ``results`` from /api/places/search
    PlacesSearchResponse   -- ``{status, results}`` envelope
    GeocodeRecord          -- one item of ``results`` from /api/geocode
    GeocodeResponse        -- ``{status, results}`` envelope
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator

STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"

GOOGLE_MAPS_SEARCH_URL = "https://www.google.com/maps/search/"
GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/"


# ---------------------------------------------------------------------------
# Domain models
# ---------------------------------------------------------------------------


class Coordinate(BaseModel):
    """A WGS84 point."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)

    def as_query_param(self) -> str:
        """Render as the ``"lat,lng"`` string the places proxy expects."""
        return f"{self.lat},{self.lng}"


class Place(BaseModel):
    """A single search hit. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinate: Coordinate
    formatted_address: Optional[str] = None
    rating: Optional[float] = None

    @property
    def maps_url(self) -> str:
        """Link behind the card's "View on Maps" action."""
        return (
            f"{GOOGLE_MAPS_SEARCH_URL}?api=1&query={quote(self.name)}"
            f"&query_place_id={quote(self.id)}"
        )

    @property
    def directions_url(self) -> str:
        """Link behind the card's "Directions" action."""
        return (
            f"{GOOGLE_MAPS_DIRECTIONS_URL}?api=1"
            f"&destination={self.coordinate.lat},{self.coordinate.lng}"
            f"&destination_place_id={quote(self.id)}"
        )

    def to_card(self) -> dict:
        """Serialisable card payload for the view layer."""
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.coordinate.lat,
            "lng": self.coordinate.lng,
            "address": self.formatted_address or "Address not available",
            "rating": self.rating,
            "maps_url": self.maps_url,
            "directions_url": self.directions_url,
        }


# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------


class LatLng(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lat: float
    lng: float


class Geometry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: LatLng


class PlaceRecord(BaseModel):
    """One raw result from the text-search endpoint.

    ``place_id`` and ``geometry`` are optional here so a single malformed
    record can be skipped instead of failing the whole response.
    """

    model_config = ConfigDict(extra="ignore")

    place_id: Optional[str] = None
    name: Optional[str] = None
    geometry: Optional[Geometry] = None
    formatted_address: Optional[str] = None
    vicinity: Optional[str] = None
    rating: Optional[float] = None

    @field_validator("rating", mode="before")
    @classmethod
    def drop_out_of_range_rating(cls, v: object) -> object:
        """Ratings outside 1–5 (Google sends 0 for unrated places) become None."""
        if v is None:
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            return None
        if value < 1.0 or value > 5.0:
            return None
        return value

    def is_usable(self) -> bool:
        return bool(self.place_id) and self.geometry is not None

    def to_place(self) -> Place:
        """Convert to a domain ``Place``. Caller must check :meth:`is_usable`."""
        location = self.geometry.location
        return Place(
            id=self.place_id,
            name=self.name or "Unnamed place",
            coordinate=Coordinate(lat=location.lat, lng=location.lng),
            formatted_address=self.formatted_address or self.vicinity,
            rating=self.rating,
        )


class PlacesSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    results: List[PlaceRecord] = Field(default_factory=list)
    error_message: Optional[str] = None


class GeocodeRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    formatted_address: Optional[str] = None
    geometry: Geometry


class GeocodeResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    results: List[GeocodeRecord] = Field(default_factory=list)
    error_message: Optional[str] = None


# ---------------------------------------------------------------------------
# Result sets
# ---------------------------------------------------------------------------


def to_result_set(places: "list[Place] | tuple[Place, ...]", limit: int) -> tuple[Place, ...]:
    """Deduplicate *places* by id (first occurrence wins) and cap at *limit*.

    Upstream order is relevance order and is preserved.
    """
    seen: set[str] = set()
    out: list[Place] = []
    for place in places:
        if place.id in seen:
            continue
        seen.add(place.id)
        out.append(place)
        if len(out) >= limit:
            break
    return tuple(out)
