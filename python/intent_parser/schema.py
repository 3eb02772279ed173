"""Canonical intent schema for the place finder.

Pure domain model describing what a user wants to find, with no coupling to
the model runtime or the places service.  It is the shared language between
the LLM extractor and the conversation layer.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchIntent(BaseModel):
    """Structured output of the intent extractor.

    Only ``search_query`` is required; the model's ``intent`` label is kept
    for logging but never acted on.
    """

    model_config = ConfigDict(extra="ignore")

    search_query: str = Field(
        description='The place type or name to search for, e.g. "Italian restaurants".',
    )
    intent: Optional[str] = Field(
        default="find_place",
        description='Intent label echoed by the model. Always "find_place" today.',
    )

    @field_validator("search_query", mode="before")
    @classmethod
    def strip_query(cls, v: object) -> object:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("search_query must not be blank")
        return v

    @field_validator("intent", mode="before")
    @classmethod
    def drop_non_string_intent(cls, v: object) -> object:
        return v if isinstance(v, str) else None
