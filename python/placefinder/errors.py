"""Exception taxonomy for the place-finder pipeline.

Every exception here is caught at the turn boundary in
``conversation.session.ConversationSession.submit`` and converted into a
transcript message; none of them is fatal to a session.

Unparseable model replies and empty search results are *not* errors: the
extractor returns ``None`` and the search client returns an empty tuple.
"""

from __future__ import annotations


class PlaceFinderError(Exception):
    """Base class for every pipeline failure."""


class InputRejected(PlaceFinderError):
    """Raised for a blank submission. Never shown to the user."""


# ---------------------------------------------------------------------------
# Model capability
# ---------------------------------------------------------------------------


class IntentExtractionError(PlaceFinderError):
    """Raised when the model call fails for a reason other than reachability."""


class LLMUnavailable(IntentExtractionError):
    """Raised when the model service cannot be reached or the model is missing."""


class LLMTimeout(LLMUnavailable):
    """Raised when the model does not answer within its time budget."""


# ---------------------------------------------------------------------------
# Places service
# ---------------------------------------------------------------------------


class SearchError(PlaceFinderError):
    """Base class for places-service failures."""


class SearchServiceError(SearchError):
    """Raised when the places service answers with a non-success status."""

    def __init__(self, status: str, detail: str | None = None):
        self.status = status
        message = f"Places service returned status {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SearchUnavailable(SearchError):
    """Raised on transport failure talking to the places service."""
