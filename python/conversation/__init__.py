"""Conversation layer: transcript, selection sync and the per-turn state machine."""

from .location import (
    FixedLocationProvider,
    GeocodedLocationProvider,
    GeolocationProvider,
    SessionLocation,
    provider_from_settings,
)
from .map_view import MapState, MapWidget, Marker
from .selection import CARD_LIMIT, MAP_LIMIT, SELECTED_ZOOM, SelectionSync
from .session import ConversationSession, TurnOutcome, TurnState
from .transcript import ChatMessage, MessageKind, Transcript

__all__ = [
    "CARD_LIMIT",
    "ChatMessage",
    "ConversationSession",
    "FixedLocationProvider",
    "GeocodedLocationProvider",
    "GeolocationProvider",
    "MAP_LIMIT",
    "MapState",
    "MapWidget",
    "Marker",
    "MessageKind",
    "SELECTED_ZOOM",
    "SelectionSync",
    "SessionLocation",
    "Transcript",
    "TurnOutcome",
    "TurnState",
    "provider_from_settings",
]
