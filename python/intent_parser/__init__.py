"""Place finder: intent parser package."""

from .schema import SearchIntent
from .llm_parser import (
    TextGenerator,
    build_prompt,
    extract_intent,
    parse_reply,
)

__all__ = [
    "SearchIntent",
    "TextGenerator",
    "build_prompt",
    "extract_intent",
    "parse_reply",
]
