"""End-to-end tests for the per-turn state machine with in-memory fakes."""
from __future__ import annotations

import asyncio

import pytest

from conversation.session import (
    CLARIFY_TEXT,
    GENERIC_FAILURE_TEXT,
    GREETING_TEXT,
    LOCATION_FOUND_TEXT,
    LOCATION_MISSING_TEXT,
    NO_RESULTS_TEXT,
    ConversationSession,
    TurnOutcome,
    TurnState,
)
from conversation.transcript import MessageKind
from placefinder.errors import IntentExtractionError, LLMTimeout, LLMUnavailable, SearchServiceError, SearchUnavailable
from placefinder.places.models import Coordinate


def _texts(session: ConversationSession) -> list[str]:
    return [m.text for m in session.transcript.messages]


def _assert_no_transient_left(session: ConversationSession) -> None:
    assert not any(m.transient for m in session.transcript.messages)


# ---------------------------------------------------------------------------
# Scenario A: happy path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_results_turn_shows_cards_markers_and_selection(session, searcher):
    outcome = await session.submit("Find Italian restaurants")

    assert outcome is TurnOutcome.RESULTS
    assert session.state is TurnState.IDLE

    messages = session.transcript.messages
    assert [m.kind for m in messages] == [MessageKind.SYSTEM, MessageKind.USER, MessageKind.ASSISTANT]
    summary = messages[-1]
    assert summary.text == "Found 10 places! Click markers on the map for details."
    assert len(summary.attached_places) == 3

    marker_ids = [m.place_id for m in session.map.markers]
    raw_ids = [p.id for p in searcher.places]
    card_ids = [p.id for p in summary.attached_places]
    assert len(marker_ids) == 10
    assert marker_ids == raw_ids[:10]
    assert card_ids == marker_ids[:3]

    assert session.selection.selected_place_id == raw_ids[0]
    assert searcher.calls == [("Italian restaurants", None)]
    _assert_no_transient_left(session)


@pytest.mark.asyncio
async def test_search_uses_resolved_location(session, searcher):
    home = Coordinate(lat=51.5, lng=-0.12)
    session.offer_location(home)

    await session.submit("sushi near me")

    assert searcher.calls[0][1] == home


# ---------------------------------------------------------------------------
# Scenario B: unparseable model reply
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unparseable_reply_asks_for_clarification(session, llm, searcher):
    llm.reply = "Hmm, I am not sure."

    outcome = await session.submit("asdf")

    assert outcome is TurnOutcome.CLARIFY
    assert _texts(session)[-1] == CLARIFY_TEXT
    assert searcher.calls == []
    assert session.state is TurnState.IDLE


# ---------------------------------------------------------------------------
# Scenario C: model unreachable
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [LLMUnavailable("refused"), LLMTimeout("slow")])
async def test_unreachable_model_shows_remediation_hint(session, llm, searcher, error):
    llm.error = error

    outcome = await session.submit("Find Italian restaurants")

    assert outcome is TurnOutcome.LLM_UNAVAILABLE
    last = session.transcript.messages[-1]
    assert last.kind is MessageKind.SYSTEM
    assert "Could not connect to Ollama" in last.text
    assert "ollama serve" in last.text
    assert "ollama pull llama3.2" in last.text
    assert searcher.calls == []
    assert session.state is TurnState.IDLE


@pytest.mark.asyncio
async def test_other_model_failure_is_generic(session, llm, searcher):
    llm.error = IntentExtractionError("HTTP 500")

    outcome = await session.submit("Find Italian restaurants")

    assert outcome is TurnOutcome.FAILED
    assert _texts(session)[-1] == GENERIC_FAILURE_TEXT
    assert searcher.calls == []


# ---------------------------------------------------------------------------
# Scenario D: zero results
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_zero_results_clears_map_and_selection(session, searcher):
    await session.submit("Find Italian restaurants")
    assert session.selection.selected_place_id is not None

    searcher.places = ()
    outcome = await session.submit("unicorn stables")

    assert outcome is TurnOutcome.NO_RESULTS
    assert _texts(session)[-1] == NO_RESULTS_TEXT
    assert session.map.markers == ()
    assert session.selection.selected_place_id is None


# ---------------------------------------------------------------------------
# Scenario E: marker click while card #1 is selected
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_marker_click_moves_selection_off_first_card(session):
    await session.submit("Find Italian restaurants")
    first, second = session.map.markers[0], session.map.markers[1]
    assert session.selection.is_highlighted(first.place_id)

    assert session.click_marker(second.place_id) is True

    assert session.selection.selected_place_id == second.place_id
    assert not session.selection.is_highlighted(first.place_id)
    assert session.map.center == second.coordinate

    cards = session.snapshot()["transcript"][-1]["places"]
    assert [c["highlighted"] for c in cards] == [False, True, False]


@pytest.mark.asyncio
async def test_card_click_from_stale_result_set_is_ignored(session, searcher, places_factory):
    await session.submit("Find Italian restaurants")
    stale_card = session.transcript.messages[-1].attached_places[1]

    searcher.places = tuple(
        p.model_copy(update={"id": f"new-{p.id}"}) for p in places_factory(2)
    )
    await session.submit("coffee")

    assert session.select_card(stale_card.id) is False
    assert session.selection.selected_place_id == "new-place-1"


# ---------------------------------------------------------------------------
# Search failures
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [SearchServiceError("OVER_QUERY_LIMIT"), SearchUnavailable("down"), RuntimeError("bug")],
)
async def test_search_failure_shows_generic_message(session, searcher, error):
    searcher.error = error

    outcome = await session.submit("Find Italian restaurants")

    assert outcome is TurnOutcome.FAILED
    last = session.transcript.messages[-1]
    assert last.kind is MessageKind.SYSTEM
    assert last.text == GENERIC_FAILURE_TEXT
    _assert_no_transient_left(session)
    assert session.state is TurnState.IDLE


# ---------------------------------------------------------------------------
# Input handling and turn invariants
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_blank_input_is_silently_rejected(session, llm, text):
    outcome = await session.submit(text)

    assert outcome is TurnOutcome.REJECTED
    assert _texts(session) == [GREETING_TEXT]
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_every_turn_appends_exactly_one_user_message(session, llm, searcher):
    scripted = [
        ('{"search_query": "pizza"}', None, None),
        ("no json here", None, None),
        ("", LLMUnavailable("down"), None),
        ('{"search_query": "bars"}', None, SearchUnavailable("down")),
    ]
    for reply, llm_error, search_error in scripted:
        llm.reply, llm.error, searcher.error = reply, llm_error, search_error
        before = sum(1 for m in session.transcript.messages if m.kind is MessageKind.USER)

        await session.submit("  find something  ")

        after = [m for m in session.transcript.messages if m.kind is MessageKind.USER]
        assert len(after) == before + 1
        assert after[-1].text == "find something"
        assert session.state is TurnState.IDLE


@pytest.mark.asyncio
async def test_transcript_never_holds_two_transients(session):
    observed = []
    session.transcript.subscribe(
        lambda: observed.append(sum(1 for m in session.transcript.messages if m.transient))
    )

    await session.submit("Find Italian restaurants")

    assert max(observed) == 1
    assert observed[-1] == 0
    # Thinking → Searching → Found: three notifications after the user message.
    assert observed == [0, 1, 1, 0]


@pytest.mark.asyncio
async def test_second_submission_while_busy_is_rejected(session, llm, searcher):
    llm.gate = asyncio.Event()
    searcher.places = ()

    first = asyncio.create_task(session.submit("pizza"))
    await asyncio.sleep(0)
    assert session.state is TurnState.AWAITING_INTENT

    assert await session.submit("burgers") is TurnOutcome.BUSY
    assert [m.text for m in session.transcript.messages if m.kind is MessageKind.USER] == ["pizza"]

    llm.gate.set()
    assert await first is TurnOutcome.NO_RESULTS
    assert session.state is TurnState.IDLE
    assert await session.submit("burgers") is TurnOutcome.NO_RESULTS


# ---------------------------------------------------------------------------
# Location announcements
# ---------------------------------------------------------------------------


def test_location_messages_are_announced_once(session):
    assert session.offer_location(Coordinate(lat=1.0, lng=2.0)) is True
    assert session.offer_location(None) is False

    assert _texts(session) == [GREETING_TEXT, LOCATION_FOUND_TEXT]


def test_failed_location_uses_default_message(session):
    session.offer_location(None)
    assert _texts(session)[-1] == LOCATION_MISSING_TEXT
    assert session.snapshot()["location"] is None


@pytest.mark.asyncio
async def test_location_settling_mid_turn_is_deferred(session, llm, searcher):
    llm.gate = asyncio.Event()
    searcher.places = ()

    turn = asyncio.create_task(session.submit("pizza"))
    await asyncio.sleep(0)
    session.offer_location(Coordinate(lat=1.0, lng=2.0))
    assert LOCATION_FOUND_TEXT not in _texts(session)

    llm.gate.set()
    await turn

    assert _texts(session)[-1] == LOCATION_FOUND_TEXT
    assert _texts(session)[-2] == NO_RESULTS_TEXT
