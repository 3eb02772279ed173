"""PlaceSearchClient: async API for the credential-hiding places proxy.

Wraps three proxy endpoints (``POST /api/places/search``, ``POST /api/geocode``
and ``GET /health``) behind a single httpx.AsyncClient with tenacity retries.

Usage::

    from placefinder.config import settings
    from placefinder.places.client import PlaceSearchClient

    async with PlaceSearchClient(settings) as client:
        places = await client.search("sushi", Coordinate(lat=51.5, lng=-0.1))

Retry strategy
--------------
- Connect/read errors and 5xx responses are retried up to
  ``search_max_attempts`` times with a short exponential backoff.
- Timeouts are NOT retried.
- Every proxy call, retries included, runs under one overall
  ``search_budget_s`` deadline; running past it raises SearchUnavailable.
- 4xx responses raise SearchServiceError immediately.
- A 200 whose body carries a status other than OK / ZERO_RESULTS raises
  SearchServiceError; ZERO_RESULTS is an empty result, not an error.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from placefinder.config import Settings
from placefinder.errors import SearchServiceError, SearchUnavailable
from placefinder.places.models import (
    STATUS_OK,
    STATUS_ZERO_RESULTS,
    Coordinate,
    GeocodeResponse,
    Place,
    PlacesSearchResponse,
    to_result_set,
)

logger = logging.getLogger(__name__)

SEARCH_RADIUS_METRES = 5000
MAX_RESULTS = 10

_RETRYABLE = (httpx.ConnectError, httpx.ReadError, httpx.HTTPStatusError)


class PlaceSearchClient:
    """Async HTTP client for the places proxy.

    Intended to be used as an async context manager so that the underlying
    httpx.AsyncClient is always properly closed::

        async with PlaceSearchClient(settings) as client:
            places = await client.search("coffee shops")
    """

    def __init__(self, settings: Settings, *, retry_wait_min: float = 0.25) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.places_base_url,
            timeout=httpx.Timeout(settings.search_timeout_s),
        )
        self._max_attempts = max(1, settings.search_max_attempts)
        self._budget_s = settings.search_budget_s
        self._retry_wait_min = retry_wait_min

    async def __aenter__(self) -> "PlaceSearchClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._client.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -----------------------------------------------------------------------
    # Internal transport layer
    # -----------------------------------------------------------------------

    async def _post(self, path: str, payload: dict) -> httpx.Response:
        """POST *path* with JSON *payload*, retrying transient failures.

        - 4xx → SearchServiceError immediately (not retried)
        - 5xx → httpx.HTTPStatusError, retried, re-raised once exhausted
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_min, min=self._retry_wait_min, max=2),
            retry=retry_if_exception_type(_RETRYABLE),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._client.post(path, json=payload)
                if 400 <= response.status_code < 500:
                    raise SearchServiceError(
                        f"HTTP {response.status_code}", response.text[:200]
                    )
                response.raise_for_status()
                return response

    async def _post_json(self, path: str, payload: dict) -> Any:
        """Call :meth:`_post` and map transport failures onto the error taxonomy."""
        try:
            response = await asyncio.wait_for(self._post(path, payload), timeout=self._budget_s)
        except asyncio.TimeoutError as exc:
            raise SearchUnavailable(
                f"Places service did not answer within {self._budget_s:.0f}s"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise SearchServiceError(
                f"HTTP {exc.response.status_code}", exc.response.text[:200]
            ) from exc
        except httpx.TransportError as exc:
            raise SearchUnavailable(f"Places service unreachable: {exc!r}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise SearchServiceError("INVALID_RESPONSE", response.text[:200]) from exc

    # -----------------------------------------------------------------------
    # Public endpoint methods
    # -----------------------------------------------------------------------

    async def search(
        self,
        query: str,
        origin: Optional[Coordinate] = None,
    ) -> tuple[Place, ...]:
        """Text-search for places matching *query*.

        When *origin* is given the search is constrained to a
        SEARCH_RADIUS_METRES circle around it; otherwise it is unconstrained.

        Args:
            query: Free-text place query, e.g. "Italian restaurants".
            origin: Optional centre point for the search.

        Returns:
            Up to MAX_RESULTS places, unique by id, in upstream order.
            Empty on ZERO_RESULTS.

        Raises:
            ValueError: *query* is blank.
            SearchServiceError: Non-success status or unusable response.
            SearchUnavailable: Transport failure after retries.
        """
        if not query or not query.strip():
            raise ValueError("query must be a non-empty string")

        payload: dict = {"query": query.strip(), "location": None}
        if origin is not None:
            payload["location"] = origin.as_query_param()
            payload["radius"] = SEARCH_RADIUS_METRES

        data = await self._post_json("/api/places/search", payload)
        try:
            body = PlacesSearchResponse.model_validate(data)
        except ValidationError as exc:
            raise SearchServiceError("INVALID_RESPONSE", str(exc)[:200]) from exc

        if body.status == STATUS_ZERO_RESULTS:
            return ()
        if body.status != STATUS_OK:
            raise SearchServiceError(body.status, body.error_message)

        places: list[Place] = []
        for record in body.results:
            if not record.is_usable():
                logger.warning("Skipping place record without id/geometry: %r", record.name)
                continue
            try:
                places.append(record.to_place())
            except ValidationError as exc:
                logger.warning("Skipping place record %s with invalid fields: %s", record.place_id, exc)
        return to_result_set(places, MAX_RESULTS)

    async def geocode(self, address: str) -> Optional[Coordinate]:
        """Resolve *address* to a coordinate, or None when nothing matches.

        Raises:
            ValueError: *address* is blank.
            SearchServiceError: Non-success status or unusable response.
            SearchUnavailable: Transport failure after retries.
        """
        if not address or not address.strip():
            raise ValueError("address must be a non-empty string")

        data = await self._post_json("/api/geocode", {"address": address.strip()})
        try:
            body = GeocodeResponse.model_validate(data)
        except ValidationError as exc:
            raise SearchServiceError("INVALID_RESPONSE", str(exc)[:200]) from exc

        if body.status == STATUS_ZERO_RESULTS or (body.status == STATUS_OK and not body.results):
            return None
        if body.status != STATUS_OK:
            raise SearchServiceError(body.status, body.error_message)
        location = body.results[0].geometry.location
        try:
            return Coordinate(lat=location.lat, lng=location.lng)
        except ValidationError as exc:
            raise SearchServiceError("INVALID_RESPONSE", str(exc)[:200]) from exc

    async def health(self) -> dict[str, Any]:
        """Return the proxy's health payload, or ``{"status": "error"}``."""
        try:
            response = await self._client.get("/health")
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Places proxy health check failed: %s", exc)
            return {"status": "error"}
