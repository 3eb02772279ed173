"""Shared fakes for conversation-layer tests.

Both collaborators are in-memory: the language model returns a canned reply
(or raises), and the searcher returns canned places (or raises), recording
every call so tests can assert on what was (and was not) invoked.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from conversation.session import ConversationSession
from placefinder.places.models import Coordinate, Place


def make_places(count: int) -> tuple[Place, ...]:
    return tuple(
        Place(
            id=f"place-{i}",
            name=f"Trattoria {i}",
            coordinate=Coordinate(lat=51.5 + i / 100, lng=-0.12 - i / 100),
            formatted_address=f"{i} High Street",
            rating=4.0,
        )
        for i in range(1, count + 1)
    )


class FakeLLM:
    def __init__(self, reply: str = "", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSearcher:
    def __init__(self, places: tuple[Place, ...] = (), error: Optional[Exception] = None):
        self.places = places
        self.error = error
        self.calls: list[tuple[str, Optional[Coordinate]]] = []

    async def search(self, query: str, origin: Optional[Coordinate] = None) -> tuple[Place, ...]:
        self.calls.append((query, origin))
        if self.error is not None:
            raise self.error
        return self.places


@pytest.fixture
def llm():
    return FakeLLM('{"search_query": "Italian restaurants", "intent": "find_place"}')


@pytest.fixture
def searcher():
    return FakeSearcher(make_places(12))


@pytest.fixture
def session(llm, searcher):
    return ConversationSession(llm, searcher, model_name="llama3.2", llm_timeout=5.0)


@pytest.fixture
def places_factory():
    return make_places
