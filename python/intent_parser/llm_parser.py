"""LLM-based intent extractor using a local Ollama model.

Takes a raw natural-language request and returns a ``SearchIntent`` by
prompting the model with a fixed few-shot template, then leniently scanning
its reply for the first JSON object.

Small local models do not reliably honour "JSON only" instructions, so an
unparseable reply is not an error: :func:`extract_intent` returns ``None``
and the caller asks the user to rephrase.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from placefinder.errors import LLMTimeout

from .schema import SearchIntent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


class TextGenerator(Protocol):
    """Anything that turns one prompt into raw text (e.g. ``OllamaClient``)."""

    async def generate(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_PROMPT_TEMPLATE = """\
You are a helpful location assistant. User asked: "{user_text}".

Extract the search query for finding places. Respond with ONLY a JSON object \
in this exact format:
{{"search_query": "the place type or name to search", "intent": "find_place"}}

Examples:
User: "Find Italian restaurants" -> {{"search_query": "Italian restaurants", "intent": "find_place"}}
User: "Where can I get coffee?" -> {{"search_query": "coffee shops", "intent": "find_place"}}
User: "Best pizza places" -> {{"search_query": "pizza restaurants", "intent": "find_place"}}
User: "Show me gyms nearby" -> {{"search_query": "gyms", "intent": "find_place"}}

Respond with ONLY the JSON object, no other text."""


def build_prompt(user_text: str) -> str:
    """Embed *user_text* verbatim in the few-shot template."""
    return _PROMPT_TEMPLATE.format(user_text=user_text)


# ---------------------------------------------------------------------------
# JSON extraction helpers
# ---------------------------------------------------------------------------

# First flat {...} block; the expected reply never nests objects.
_JSON_OBJECT_RE = re.compile(r"\{[^{}]*\}")


def _extract_json(text: str) -> Optional[dict[str, Any]]:
    """Return the first brace-delimited object in *text*, or None."""
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def parse_reply(raw_text: str) -> Optional[SearchIntent]:
    """Parse a raw model reply into a ``SearchIntent``.

    Returns ``None`` when there is no JSON object, the object is malformed,
    or ``search_query`` is missing/blank.
    """
    data = _extract_json(raw_text)
    if data is None:
        return None
    try:
        return SearchIntent.model_validate(data)
    except ValidationError:
        return None


# ---------------------------------------------------------------------------
# Core extract function
# ---------------------------------------------------------------------------


async def extract_intent(
    user_text: str,
    llm: TextGenerator,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> Optional[SearchIntent]:
    """Turn a natural-language request into a structured place query.

    Args:
        user_text: The raw user input, e.g. "find sushi near me".
        llm: Model capability; see :class:`TextGenerator`.
        timeout: Overall budget for the model call, in seconds.

    Returns:
        A ``SearchIntent``, or ``None`` if the reply could not be parsed.

    Raises:
        ValueError: *user_text* is blank.
        LLMUnavailable: The model service is unreachable or the model is
            not installed.
        LLMTimeout: No reply within *timeout* seconds.
        IntentExtractionError: Any other model-side failure.
    """
    if not user_text or not user_text.strip():
        raise ValueError("user_text must be a non-empty string")

    prompt = build_prompt(user_text)
    try:
        raw_text = await asyncio.wait_for(llm.generate(prompt), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise LLMTimeout(f"Model did not answer within {timeout:.0f}s") from exc

    intent = parse_reply(raw_text)
    if intent is None:
        logger.info("Unparseable model reply for %r: %r", user_text, raw_text[:200])
    else:
        logger.info("Extracted search query %r from %r", intent.search_query, user_text)
    return intent
