"""Single-shot clients for the external reasoning service."""

from __future__ import annotations

import time
from typing import Optional, Protocol

import httpx
import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from ..config import Settings
from ..domain.errors import ConfigError, UpstreamError
from ..logging import get_logger

LOG = get_logger("orchestrator-client")


class ExtractionClient(Protocol):
    def invoke(self, prompt: str) -> str:
        ...


class OpenAIChatClient:
    """Chat Completions client for any OpenAI-compatible endpoint.

    Gemini is reached through its OpenAI-compatible base URL. The SDK's own
    retries are disabled so each ``invoke`` makes exactly one request.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout_seconds: float = 60.0,
        openai_client: Optional[OpenAI] = None,
    ) -> None:
        self.model = model
        self.timeout_seconds = float(timeout_seconds)
        if openai_client is None:
            http_client = httpx.Client(
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            )
            openai_client = OpenAI(
                api_key=api_key,
                base_url=base_url,
                http_client=http_client,
                max_retries=0,
            )
        self._client = openai_client

    def invoke(self, prompt: str) -> str:
        LOG.info(f"Calling chat completions model='{self.model}'")
        t0 = time.perf_counter()
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                timeout=self.timeout_seconds,
            )
        except APITimeoutError as e:
            LOG.error(f"Timeout while calling reasoning service: {e}")
            raise UpstreamError(f"Reasoning service timed out after {self.timeout_seconds:.0f}s") from e
        except APIConnectionError as e:
            LOG.error(f"Network error while calling reasoning service: {e}")
            raise UpstreamError(f"Reasoning service unreachable: {e}") from e
        except APIStatusError as e:
            body = getattr(getattr(e, "response", None), "text", None)
            LOG.error(f"Reasoning service returned {e.status_code}. Body preview: {(body[:300] if body else None)!r}")
            raise UpstreamError(
                f"Reasoning service returned HTTP {e.status_code}", status_code=e.status_code
            ) from e

        choices = getattr(completion, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        text = getattr(message, "content", None) if message is not None else None
        if not isinstance(text, str) or not text.strip():
            LOG.error(f"Reasoning service reply has no text content (id={getattr(completion, 'id', None)})")
            raise UpstreamError("Reasoning service reply is missing text content")

        usage = getattr(completion, "usage", None)
        usage_dict = {k: getattr(usage, k, None) if usage else None for k in ("prompt_tokens", "completion_tokens", "total_tokens")}
        LOG.info(f"Chat completion finished in {time.perf_counter() - t0:.2f}s usage={usage_dict}")
        return text

    def close(self) -> None:
        self._client.close()


class OllamaChatClient:
    """Non-streaming client for a local Ollama server's /api/chat."""

    def __init__(self, *, base_url: str, model: str, timeout_seconds: float = 60.0) -> None:
        self.url = base_url if base_url.endswith("/api/chat") else base_url.rstrip("/") + "/api/chat"
        self.model = model
        self.timeout_seconds = float(timeout_seconds)

    def invoke(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": {"temperature": 0},
        }
        LOG.info(f"Calling Ollama model='{self.model}'")
        LOG.debug(f"Ollama URL: {self.url}; timeout: {self.timeout_seconds}s")
        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout_seconds)
        except requests.Timeout as e:
            LOG.error(f"Ollama request timed out: {e}")
            raise UpstreamError(f"Reasoning service timed out after {self.timeout_seconds:.0f}s") from e
        except requests.RequestException as e:
            LOG.error(f"Ollama request failed: {e}")
            raise UpstreamError(f"Reasoning service unreachable: {e}") from e

        if resp.status_code >= 400:
            LOG.error(f"Ollama HTTP {resp.status_code}: {resp.text[:500]}")
            raise UpstreamError(f"Reasoning service returned HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise UpstreamError("Reasoning service returned a non-JSON body") from e

        if isinstance(body, dict) and body.get("error"):
            LOG.error(f"Ollama error: {body['error']}")
            raise UpstreamError(f"Reasoning service error: {body['error']}")

        message = body.get("message") if isinstance(body, dict) else None
        text = message.get("content") if isinstance(message, dict) else None
        if not isinstance(text, str) or not text.strip():
            LOG.error("Ollama returned empty content")
            raise UpstreamError("Reasoning service reply is missing text content")
        LOG.info(f"Received reply with {len(text)} characters")
        return text


def build_client(settings: Settings) -> ExtractionClient:
    """Return the client for the configured backend."""
    if settings.backend == "ollama":
        LOG.info("Backend selected: Ollama")
        return OllamaChatClient(
            base_url=settings.base_url or "http://localhost:11434",
            model=settings.model,
            timeout_seconds=settings.timeout_seconds,
        )
    if not settings.api_key:
        raise ConfigError(f"No API key configured for backend '{settings.backend}'")
    LOG.info(f"Backend selected: {settings.backend} (base_url={settings.base_url or 'default'})")
    return OpenAIChatClient(
        api_key=settings.api_key,
        model=settings.model,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
    )
