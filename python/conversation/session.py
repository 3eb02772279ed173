"""ConversationSession: the per-turn state machine.

One turn: user text → intent extraction → place search → transcript +
selection fan-out.  States::

    IDLE ──submit──▶ AWAITING_INTENT ──intent──▶ AWAITING_SEARCH ──▶ IDLE
                          │                                          ▲
                          └──── failure / unparseable ───────────────┘

Every failure is caught here and turned into a transcript message; the
session always returns to IDLE and accepts the next turn.  A submission
while a turn is in flight returns ``TurnOutcome.BUSY`` and changes nothing.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Protocol

from intent_parser.llm_parser import DEFAULT_TIMEOUT_S, TextGenerator, extract_intent
from placefinder.errors import InputRejected, LLMUnavailable
from placefinder.places.models import Coordinate, Place, to_result_set

from .location import GeolocationProvider, SessionLocation
from .map_view import MapState
from .selection import CARD_LIMIT, MAP_LIMIT, SelectionSync
from .transcript import ChatMessage, MessageKind, Transcript

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# User-facing copy
# ---------------------------------------------------------------------------

GREETING_TEXT = "AI Assistant ready! Ask me to find places to visit, eat, or explore."
LOCATION_FOUND_TEXT = "Location detected! Ready to find places near you."
LOCATION_MISSING_TEXT = "Using default location. Enable location access for better results."
THINKING_TEXT = "Thinking..."
SEARCHING_TEXT = "Searching for: {query}..."
FOUND_TEXT = "Found {count} places! Click markers on the map for details."
NO_RESULTS_TEXT = "No places found. Try a different search term or location."
CLARIFY_TEXT = (
    "I understand you want to find a place. Could you be more specific? "
    'For example: "Find sushi restaurants" or "Coffee shops near me"'
)
LLM_UNREACHABLE_TEXT = (
    "Error: Could not connect to Ollama. Make sure Ollama is running "
    "(ollama serve) and {model} is installed (ollama pull {model})"
)
GENERIC_FAILURE_TEXT = "An error occurred. Please try again."


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_INTENT = "awaiting_intent"
    AWAITING_SEARCH = "awaiting_search"


class TurnOutcome(str, Enum):
    REJECTED = "rejected"
    BUSY = "busy"
    CLARIFY = "clarify"
    RESULTS = "results"
    NO_RESULTS = "no_results"
    LLM_UNAVAILABLE = "llm_unavailable"
    FAILED = "failed"


class PlaceSearcher(Protocol):
    async def search(
        self, query: str, origin: Optional[Coordinate] = None
    ) -> tuple[Place, ...]: ...


class ConversationSession:
    """Owns the transcript, the selection and the session location."""

    def __init__(
        self,
        llm: TextGenerator,
        searcher: PlaceSearcher,
        *,
        model_name: str = "llama3.2",
        llm_timeout: float = DEFAULT_TIMEOUT_S,
        map_state: Optional[MapState] = None,
        location: Optional[SessionLocation] = None,
    ) -> None:
        self._llm = llm
        self._searcher = searcher
        self._model_name = model_name
        self._llm_timeout = llm_timeout

        self.state = TurnState.IDLE
        self.transcript = Transcript()
        self.map = map_state or MapState()
        self.selection = SelectionSync(self.map)
        self.location = location or SessionLocation()
        self._deferred: list[ChatMessage] = []

        self.transcript.append(ChatMessage(MessageKind.SYSTEM, GREETING_TEXT))

    @property
    def is_processing(self) -> bool:
        return self.state is not TurnState.IDLE

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def submit(self, text: str) -> TurnOutcome:
        """Run one full turn for *text* and return how it ended."""
        if self.is_processing:
            logger.debug("Submission while %s rejected", self.state.value)
            return TurnOutcome.BUSY
        try:
            user_text = self._validate(text)
        except InputRejected:
            return TurnOutcome.REJECTED

        self.transcript.append(ChatMessage(MessageKind.USER, user_text))
        self.state = TurnState.AWAITING_INTENT
        try:
            outcome = await self._run_turn(user_text)
        finally:
            if self.transcript.discard_transient():
                logger.warning("Turn interrupted; dropped pending status message")
            self.state = TurnState.IDLE
            self._flush_deferred()
        logger.info("Turn for %r finished: %s", user_text, outcome.value)
        return outcome

    @staticmethod
    def _validate(text: Optional[str]) -> str:
        if text is None or not text.strip():
            raise InputRejected("blank submission")
        return text.strip()

    async def _run_turn(self, user_text: str) -> TurnOutcome:
        self.transcript.append_transient(
            ChatMessage(MessageKind.ASSISTANT, THINKING_TEXT, transient=True)
        )
        try:
            intent = await extract_intent(user_text, self._llm, timeout=self._llm_timeout)
        except LLMUnavailable as exc:
            logger.warning("Language model unreachable: %s", exc)
            self._finish(
                MessageKind.SYSTEM,
                LLM_UNREACHABLE_TEXT.format(model=self._model_name),
            )
            return TurnOutcome.LLM_UNAVAILABLE
        except Exception as exc:
            logger.error("Intent extraction failed: %s", exc, exc_info=True)
            self._finish(MessageKind.SYSTEM, GENERIC_FAILURE_TEXT)
            return TurnOutcome.FAILED

        if intent is None:
            self._finish(MessageKind.ASSISTANT, CLARIFY_TEXT)
            return TurnOutcome.CLARIFY

        self.transcript.replace_transient(
            ChatMessage(
                MessageKind.ASSISTANT,
                SEARCHING_TEXT.format(query=intent.search_query),
                transient=True,
            )
        )
        self.state = TurnState.AWAITING_SEARCH
        try:
            places = await self._searcher.search(
                intent.search_query, self.location.coordinate
            )
        except Exception as exc:
            logger.warning("Place search for %r failed: %s", intent.search_query, exc)
            self._finish(MessageKind.SYSTEM, GENERIC_FAILURE_TEXT)
            return TurnOutcome.FAILED

        result_set = to_result_set(places, MAP_LIMIT)
        if not result_set:
            self._finish(MessageKind.ASSISTANT, NO_RESULTS_TEXT)
            self.selection.publish_results(())
            return TurnOutcome.NO_RESULTS

        self._finish(
            MessageKind.ASSISTANT,
            FOUND_TEXT.format(count=len(result_set)),
            attached_places=result_set[:CARD_LIMIT],
        )
        self.selection.publish_results(result_set)
        return TurnOutcome.RESULTS

    def _finish(
        self,
        kind: MessageKind,
        text: str,
        attached_places: tuple[Place, ...] = (),
    ) -> None:
        """Swap the pending status message for the turn's final message."""
        self.transcript.replace_transient(
            ChatMessage(kind, text, attached_places=attached_places)
        )

    # ------------------------------------------------------------------
    # Selection entry points
    # ------------------------------------------------------------------

    def select_card(self, place_id: str) -> bool:
        """A click on an inline card in the transcript."""
        return self.selection.select(place_id)

    def click_marker(self, place_id: str) -> bool:
        """A click on a map marker."""
        return self.map.click(place_id)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def resolve_location(self, provider: GeolocationProvider) -> bool:
        """Settle the session location from *provider* (first answer wins)."""
        settled = await self.location.resolve(provider)
        if settled:
            self._announce_location()
        return settled

    def offer_location(self, coordinate: Optional[Coordinate]) -> bool:
        """Client-side geolocation callback; None means the lookup failed."""
        settled = self.location.offer(coordinate)
        if settled:
            self._announce_location()
        return settled

    def _announce_location(self) -> None:
        text = LOCATION_FOUND_TEXT if self.location.coordinate else LOCATION_MISSING_TEXT
        message = ChatMessage(MessageKind.SYSTEM, text)
        if self.is_processing:
            # Never interleave with a turn's status placeholder.
            self._deferred.append(message)
        else:
            self.transcript.append(message)

    def _flush_deferred(self) -> None:
        while self._deferred:
            self.transcript.append(self._deferred.pop(0))

    # ------------------------------------------------------------------
    # View payload
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        coordinate = self.location.coordinate
        return {
            "state": self.state.value,
            "processing": self.is_processing,
            "location": (
                {"lat": coordinate.lat, "lng": coordinate.lng} if coordinate else None
            ),
            "location_settled": self.location.is_settled,
            "selected_place_id": self.selection.selected_place_id,
            "transcript": [
                message.to_dict(self.selection.is_highlighted)
                for message in self.transcript.messages
            ],
            "map": self.map.to_dict(),
        }
