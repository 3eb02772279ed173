"""OllamaClient: async wrapper around a local Ollama ``/api/generate`` endpoint.

The model is treated as a plain text-in/text-out capability: one prompt goes
in, raw text comes out, with no guaranteed structure.

Error mapping
-------------
- connection refused / network error → LLMUnavailable
- no answer within ``llm_timeout_s`` → LLMTimeout
- 404 (model not pulled)             → LLMUnavailable
- any other non-2xx / bad body       → IntentExtractionError

No retries: a local model that is down stays down for the whole turn, and a
retry would blow the 30s budget.
"""
from __future__ import annotations

import logging

import httpx

from placefinder.config import Settings
from placefinder.errors import IntentExtractionError, LLMTimeout, LLMUnavailable

logger = logging.getLogger(__name__)


class OllamaClient:
    """Async HTTP client for a local Ollama server.

    Use as an async context manager::

        async with OllamaClient(settings) as llm:
            text = await llm.generate("Say hi")
    """

    def __init__(self, settings: Settings) -> None:
        self.model = settings.ollama_model
        self._client = httpx.AsyncClient(
            base_url=settings.ollama_base_url,
            timeout=httpx.Timeout(settings.llm_timeout_s, connect=5.0),
        )

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._client.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(self, prompt: str) -> str:
        """Send *prompt* to the model and return its raw reply text."""
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        try:
            response = await self._client.post("/api/generate", json=payload)
        except httpx.TimeoutException as exc:
            raise LLMTimeout(f"Ollama did not answer in time: {exc!r}") from exc
        except httpx.TransportError as exc:
            raise LLMUnavailable(f"Could not connect to Ollama: {exc!r}") from exc

        if response.status_code == 404:
            raise LLMUnavailable(
                f"Model {self.model!r} is not available: {response.text[:200]}"
            )
        if response.is_error:
            raise IntentExtractionError(
                f"Ollama returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise IntentExtractionError("Ollama returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise IntentExtractionError("Ollama returned an unexpected body")
        return str(data.get("response", "") or "")
