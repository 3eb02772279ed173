"""Map widget interface and its headless, serialisable implementation.

The real map is rendered client-side; this service only keeps the state the
widget must show (markers, center, zoom, open info window) and turns marker
clicks into selection changes through a registered callback.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from placefinder.places.models import Coordinate

logger = logging.getLogger(__name__)

# Fallback view (Jakarta) until the first search.
DEFAULT_CENTER = Coordinate(lat=-6.2088, lng=106.8456)
DEFAULT_ZOOM = 13

MarkerClickCallback = Callable[[str], object]


@dataclass(frozen=True)
class Marker:
    place_id: str
    coordinate: Coordinate
    label: str
    title: str = ""


class MapWidget(ABC):
    """What the selection layer needs from a map."""

    @abstractmethod
    def show_markers(self, markers: Sequence[Marker]) -> None:
        """Replace every marker on the map with *markers* (may be empty)."""
        ...

    @abstractmethod
    def recenter(self, coordinate: Coordinate, zoom: int) -> None:
        """Pan to *coordinate* and set *zoom*."""
        ...

    @abstractmethod
    def set_active_marker(self, place_id: Optional[str]) -> None:
        """Highlight one marker (open its info window), or none."""
        ...

    @abstractmethod
    def on_marker_click(self, callback: MarkerClickCallback) -> None:
        """Register the callback invoked with a place id on marker click."""
        ...


class MapState(MapWidget):
    """In-memory map model; ``to_dict()`` is what the frontend renders."""

    def __init__(
        self,
        center: Coordinate = DEFAULT_CENTER,
        zoom: int = DEFAULT_ZOOM,
    ) -> None:
        self.center = center
        self.zoom = zoom
        self.markers: tuple[Marker, ...] = ()
        self.active_marker_id: Optional[str] = None
        self.recenter_count = 0
        self._click_callback: Optional[MarkerClickCallback] = None

    def show_markers(self, markers: Sequence[Marker]) -> None:
        self.markers = tuple(markers)
        if self.active_marker_id not in {m.place_id for m in self.markers}:
            self.active_marker_id = None

    def recenter(self, coordinate: Coordinate, zoom: int) -> None:
        self.center = coordinate
        self.zoom = zoom
        self.recenter_count += 1

    def set_active_marker(self, place_id: Optional[str]) -> None:
        self.active_marker_id = place_id

    def on_marker_click(self, callback: MarkerClickCallback) -> None:
        self._click_callback = callback

    def click(self, place_id: str) -> bool:
        """Simulate a user clicking the marker for *place_id*."""
        if place_id not in {m.place_id for m in self.markers}:
            logger.debug("Click on unknown marker %s ignored", place_id)
            return False
        if self._click_callback is None:
            return False
        self._click_callback(place_id)
        return True

    def to_dict(self) -> dict:
        return {
            "center": {"lat": self.center.lat, "lng": self.center.lng},
            "zoom": self.zoom,
            "active_marker_id": self.active_marker_id,
            "markers": [
                {
                    "place_id": m.place_id,
                    "label": m.label,
                    "title": m.title,
                    "lat": m.coordinate.lat,
                    "lng": m.coordinate.lng,
                    "active": m.place_id == self.active_marker_id,
                }
                for m in self.markers
            ],
        }
