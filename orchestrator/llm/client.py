"""Language-model clients used by nodes.

All clients implement ``complete(model, prompt, temperature) -> LLMResponse``.

- MockLLMClient: canned responses keyed on prompt keywords, with simulated
  latency; the default for local runs and tests
- OpenAIChatClient: any OpenAI-compatible ``/chat/completions`` endpoint

Environment:
    LLM_PROVIDER: "mock" (default) or "openai"
    LLM_BASE_URL / LLM_API_KEY: endpoint and key for "openai"
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import httpx

from .. import config, settings

logger = logging.getLogger(__name__)


class LLMClientError(Exception):
    """Raised when a language-model call fails."""


@dataclass
class LLMResponse:
    text: str
    token_usage: Dict[str, int] = field(default_factory=dict)


@runtime_checkable
class LLMClient(Protocol):
    async def complete(self, model: str, prompt: str, temperature: float) -> LLMResponse:
        ...


# Checked in order; the first keyword found in the prompt picks the response
MOCK_RESPONSES = (
    ("novelty", "This invention shows moderate novelty with some innovative aspects..."),
    ("feasibility", "The technical feasibility appears strong with current technology..."),
    ("impact", "The potential impact could be significant in the target market..."),
    ("monetization", "Revenue opportunities exist through licensing and direct sales..."),
)
MOCK_DEFAULT_RESPONSE = "Mock LLM response"


class MockLLMClient:
    """Offline client returning canned text with random token usage.

    Args:
        min_delay: Lower bound of simulated latency (seconds)
        max_delay: Upper bound of simulated latency (seconds)
    """

    def __init__(
        self,
        min_delay: float = settings.MOCK_LLM_MIN_DELAY,
        max_delay: float = settings.MOCK_LLM_MAX_DELAY,
    ):
        self.min_delay = min_delay
        self.max_delay = max(max_delay, min_delay)
        self.calls: list[Dict[str, Any]] = []

    async def complete(self, model: str, prompt: str, temperature: float) -> LLMResponse:
        self.calls.append({"model": model, "prompt": prompt, "temperature": temperature})
        if self.max_delay > 0:
            await asyncio.sleep(random.uniform(self.min_delay, self.max_delay))

        text = MOCK_DEFAULT_RESPONSE
        for keyword, response in MOCK_RESPONSES:
            if keyword in prompt:
                text = response
                break

        completion_tokens = random.randint(100, 299)
        prompt_tokens = random.randint(50, 149)
        return LLMResponse(
            text=text,
            token_usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        )


class OpenAIChatClient:
    """Async client for OpenAI-compatible chat completion APIs.

    Args:
        base_url: API root, e.g. ``https://api.openai.com/v1``
        api_key: Bearer token
        timeout: HTTP request timeout in seconds
        transport: Optional httpx transport (tests)
    """

    def __init__(
        self,
        base_url: str = config.LLM_BASE_URL,
        api_key: str = config.LLM_API_KEY,
        timeout: float = settings.LLM_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise LLMClientError(
                "LLM API key not configured. Set LLM_API_KEY environment variable "
                "or pass api_key= to OpenAIChatClient()."
            )
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
                limits=httpx.Limits(
                    max_connections=settings.LLM_HTTP_MAX_CONNECTIONS,
                    max_keepalive_connections=settings.LLM_HTTP_MAX_KEEPALIVE,
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def complete(self, model: str, prompt: str, temperature: float) -> LLMResponse:
        client = await self._get_client()
        body = {
            "model": model,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            resp = await client.post("/chat/completions", json=body)
        except httpx.TimeoutException as e:
            raise LLMClientError(f"LLM API timeout ({model})") from e
        except httpx.HTTPError as e:
            raise LLMClientError(f"LLM API connection error: {e}") from e

        if resp.status_code == 401:
            raise LLMClientError("LLM API returned 401 Unauthorized. Check LLM_API_KEY.")
        if resp.status_code == 429:
            raise LLMClientError("LLM API rate limit exceeded. Retry later.")
        if resp.status_code != 200:
            raise LLMClientError(f"LLM API error {resp.status_code}: {resp.text[:200]}")

        data = resp.json()
        try:
            text = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise LLMClientError(f"Unexpected LLM API response: {str(data)[:200]}") from e

        usage = data.get("usage") or {}
        return LLMResponse(
            text=text,
            token_usage={
                "prompt_tokens": int(usage.get("prompt_tokens", 0)),
                "completion_tokens": int(usage.get("completion_tokens", 0)),
                "total_tokens": int(usage.get("total_tokens", 0)),
            },
        )


def create_llm_client(provider: Optional[str] = None) -> LLMClient:
    """Build the client selected by ``provider`` (defaults to LLM_PROVIDER)."""
    provider = (provider or config.LLM_PROVIDER).lower()
    if provider == "mock":
        return MockLLMClient()
    if provider == "openai":
        return OpenAIChatClient()
    raise ValueError(f"Unknown LLM provider: {provider}. Expected 'mock' or 'openai'")
