"""
Terminal chat against live Ollama and places-proxy services.

Usage:
    cd python
    python scripts/chat_repl.py
    python scripts/chat_repl.py --lat 51.5072 --lng -0.1276
    python scripts/chat_repl.py --once "Find Italian restaurants"

Inside the loop, ``:select <n>`` clicks marker n and ``:quit`` exits.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Make sure the python/ directory is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from conversation.location import FixedLocationProvider, provider_from_settings
from conversation.session import ConversationSession
from placefinder.config import settings
from placefinder.llm.client import OllamaClient
from placefinder.places.client import PlaceSearchClient
from placefinder.places.models import Coordinate


def _print_new(session: ConversationSession, seen: int) -> int:
    messages = session.transcript.messages
    for message in messages[seen:]:
        print(f"[{message.kind.value}] {message.text}")
        for place in message.attached_places:
            mark = "*" if session.selection.is_highlighted(place.id) else " "
            rating = f" ({place.rating}/5)" if place.rating else ""
            print(f"   {mark} {place.name}{rating} - {place.formatted_address or 'Address not available'}")
    return len(messages)


def _print_map(session: ConversationSession) -> None:
    state = session.map
    print(
        f"   map: {len(state.markers)} markers, center=({state.center.lat:.4f}, "
        f"{state.center.lng:.4f}) zoom={state.zoom} active={state.active_marker_id}"
    )


async def _run(args: argparse.Namespace) -> None:
    async with OllamaClient(settings) as llm, PlaceSearchClient(settings) as places:
        session = ConversationSession(
            llm,
            places,
            model_name=settings.ollama_model,
            llm_timeout=settings.llm_timeout_s,
        )
        if args.lat is not None and args.lng is not None:
            provider = FixedLocationProvider(Coordinate(lat=args.lat, lng=args.lng))
        else:
            provider = provider_from_settings(settings, places)
        await session.resolve_location(provider or FixedLocationProvider(None))

        seen = _print_new(session, 0)
        if args.once:
            await session.submit(args.once)
            _print_new(session, seen)
            _print_map(session)
            return

        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if line.strip() == ":quit":
                break
            if line.startswith(":select "):
                index = line.split(maxsplit=1)[1].strip()
                markers = session.map.markers
                if index.isdigit() and 1 <= int(index) <= len(markers):
                    session.click_marker(markers[int(index) - 1].place_id)
                    _print_map(session)
                else:
                    print("   no such marker")
                continue
            await session.submit(line)
            seen = _print_new(session, seen)
            _print_map(session)


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the place finder in a terminal.")
    parser.add_argument("--lat", type=float, default=None)
    parser.add_argument("--lng", type=float, default=None)
    parser.add_argument("--once", default=None, help="Run a single turn and exit.")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
