"""Router for /api/sessions: chat turns, selection clicks and location callbacks."""

import logging
import uuid
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from conversation.location import provider_from_settings
from conversation.session import ConversationSession
from placefinder.config import settings
from placefinder.llm.client import OllamaClient
from placefinder.places.client import PlaceSearchClient
from placefinder.places.models import Coordinate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sessions"])

# Initialised at startup, torn down at shutdown.
_llm_client: OllamaClient | None = None
_places_client: PlaceSearchClient | None = None

# In-memory only; sessions are lost on restart. Insertion order is recency
# order, so the first key is the least recently used session.
_sessions: dict[str, ConversationSession] = {}


async def startup() -> None:
    """Open the Ollama and places HTTP clients.  Called from main.py lifespan."""
    global _llm_client, _places_client
    _llm_client = OllamaClient(settings)
    _places_client = PlaceSearchClient(settings)
    logger.info(
        "Clients ready (ollama=%s model=%s, places=%s)",
        settings.ollama_base_url,
        settings.ollama_model,
        settings.places_base_url,
    )


async def shutdown() -> None:
    """Close both HTTP clients and forget every session."""
    global _llm_client, _places_client
    if _llm_client is not None:
        await _llm_client.aclose()
        _llm_client = None
    if _places_client is not None:
        await _places_client.aclose()
        _places_client = None
    _sessions.clear()


def _get_session(session_id: str) -> ConversationSession:
    session = _sessions.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    _sessions[session_id] = session
    return session


def _store_session(session_id: str, session: ConversationSession) -> None:
    """Add *session*, evicting the least recently used ones past the cap."""
    _sessions[session_id] = session
    while len(_sessions) > max(1, settings.max_sessions):
        evicted = next(iter(_sessions))
        del _sessions[evicted]
        logger.info("Session %s evicted (cap %d)", evicted, settings.max_sessions)


class MessageRequest(BaseModel):
    text: str


class LocationRequest(BaseModel):
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0)
    lng: Optional[float] = Field(None, ge=-180.0, le=180.0)
    error: Optional[str] = None


class SelectionRequest(BaseModel):
    place_id: str
    source: Literal["card", "marker"] = "card"


@router.get("/health")
async def health() -> dict[str, Any]:
    """Service health plus the upstream places proxy's health."""
    upstream = {"status": "error"}
    if _places_client is not None:
        upstream = await _places_client.health()
    return {"status": "ok", "places_proxy": upstream}


@router.post("/sessions")
async def create_session() -> dict[str, Any]:
    if _llm_client is None or _places_client is None:
        raise HTTPException(status_code=503, detail="Clients not ready")

    session_id = uuid.uuid4().hex
    session = ConversationSession(
        _llm_client,
        _places_client,
        model_name=settings.ollama_model,
        llm_timeout=settings.llm_timeout_s,
    )
    _store_session(session_id, session)

    provider = provider_from_settings(settings, _places_client)
    if provider is not None:
        await session.resolve_location(provider)

    logger.info("Session %s created", session_id)
    return {"session_id": session_id, "session": session.snapshot()}


@router.get("/sessions/{session_id}")
async def get_session(session_id: str) -> dict[str, Any]:
    return {"session_id": session_id, "session": _get_session(session_id).snapshot()}


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str) -> None:
    if _sessions.pop(session_id, None) is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    logger.info("Session %s deleted", session_id)


@router.post("/sessions/{session_id}/messages")
async def post_message(session_id: str, body: MessageRequest) -> dict[str, Any]:
    session = _get_session(session_id)
    outcome = await session.submit(body.text)
    return {"outcome": outcome.value, "session": session.snapshot()}


@router.post("/sessions/{session_id}/location")
async def post_location(session_id: str, body: LocationRequest) -> dict[str, Any]:
    session = _get_session(session_id)
    coordinate: Optional[Coordinate] = None
    if body.error is None and body.lat is not None and body.lng is not None:
        coordinate = Coordinate(lat=body.lat, lng=body.lng)
    elif body.error is None:
        raise HTTPException(status_code=422, detail="lat and lng are required unless error is set")
    accepted = session.offer_location(coordinate)
    return {"accepted": accepted, "session": session.snapshot()}


@router.post("/sessions/{session_id}/selection")
async def post_selection(session_id: str, body: SelectionRequest) -> dict[str, Any]:
    session = _get_session(session_id)
    if body.source == "marker":
        selected = session.click_marker(body.place_id)
    else:
        selected = session.select_card(body.place_id)
    return {"selected": selected, "session": session.snapshot()}
