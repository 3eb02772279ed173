"""Selection sync: one selected place shared by transcript cards and map markers.

Holds the current result set and the single ``selected_place_id``.  Cards and
markers never store their own highlight; both derive it from
:meth:`SelectionSync.is_highlighted`, so exactly one (or zero) place is
highlighted at any time.

Writers:
- :meth:`publish_results` after every search (auto-selects the first place)
- :meth:`select` from card clicks and, via the map's click callback, marker
  clicks
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from placefinder.places.models import Place, to_result_set

from .map_view import MapWidget, Marker
from .observable import Observable

logger = logging.getLogger(__name__)

MAP_LIMIT = 10
CARD_LIMIT = 3
SELECTED_ZOOM = 15


class SelectionSync(Observable):
    def __init__(self, map_widget: MapWidget) -> None:
        super().__init__()
        self._map = map_widget
        self._places: tuple[Place, ...] = ()
        self._selected_id: Optional[str] = None
        map_widget.on_marker_click(self.select)

    @property
    def places(self) -> tuple[Place, ...]:
        return self._places

    @property
    def selected_place_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_place(self) -> Optional[Place]:
        return self._find(self._selected_id)

    def is_highlighted(self, place_id: str) -> bool:
        return place_id is not None and place_id == self._selected_id

    def highlighted_ids(self) -> set[str]:
        return {self._selected_id} if self._selected_id is not None else set()

    def publish_results(self, places: Sequence[Place]) -> None:
        """Replace the result set and select its first place (or clear)."""
        self._places = to_result_set(places, MAP_LIMIT)
        self._map.show_markers(
            [
                Marker(
                    place_id=place.id,
                    coordinate=place.coordinate,
                    label=str(index),
                    title=place.name,
                )
                for index, place in enumerate(self._places, start=1)
            ]
        )
        if self._places:
            self._apply(self._places[0])
        else:
            self._selected_id = None
            self._map.set_active_marker(None)
        logger.info(
            "Published %d places, selected=%s", len(self._places), self._selected_id
        )
        self._notify()

    def select(self, place_id: str) -> bool:
        """Select *place_id* if it is in the current result set.

        Returns False (no side effects) for unknown ids.  Re-selecting the
        already selected place returns True without re-centering the map.
        """
        place = self._find(place_id)
        if place is None:
            logger.debug("Ignoring selection of unknown place %s", place_id)
            return False
        if place.id == self._selected_id:
            return True
        self._apply(place)
        self._notify()
        return True

    def _apply(self, place: Place) -> None:
        self._selected_id = place.id
        self._map.recenter(place.coordinate, SELECTED_ZOOM)
        self._map.set_active_marker(place.id)

    def _find(self, place_id: Optional[str]) -> Optional[Place]:
        if place_id is None:
            return None
        for place in self._places:
            if place.id == place_id:
                return place
        return None
