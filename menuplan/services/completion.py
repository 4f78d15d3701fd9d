"""Completion service collaborators.

The pipeline only needs ``complete(prompt_text, model_hint) -> str``. Two
implementations are provided: one on top of the OpenAI SDK and one posting to an
OpenAI-compatible chat-completions URL with httpx (for proxy deployments).
Transport failures surface as ``NetworkError`` and non-success statuses as
``ServiceError``; the returned text is never validated here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
import openai
from openai import OpenAI

from ..config import Settings
from ..errors import NetworkError, ServiceError
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Anything with ``complete``; clients that hold connections also expose ``close``."""

    def complete(self, prompt_text: str, model_hint: Optional[str] = None) -> str:
        ...


def _messages(prompt_text: str) -> list[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt_text},
    ]


class OpenAICompletionClient:
    """Chat completions through the OpenAI SDK. SDK-level retries are disabled; the orchestrator owns retrying."""

    def __init__(self, settings: Settings, *, client: Any = None) -> None:
        self.settings = settings
        self._client = client
        # Only an SDK client built here is closed by close().
        self._owns_client = False
        if self._client is None and settings.openai_api_key:
            self._client = OpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.completion_timeout_seconds,
                max_retries=0,
            )
            self._owns_client = True

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()

    def __enter__(self) -> "OpenAICompletionClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def complete(self, prompt_text: str, model_hint: Optional[str] = None) -> str:
        if self._client is None:
            raise ServiceError(401, "OpenAI API key is not configured")
        model = model_hint or self.settings.menu_model
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=_messages(prompt_text),
                temperature=self.settings.menu_temperature,
                max_tokens=self.settings.menu_max_output_tokens,
            )
        except openai.APITimeoutError as exc:
            logger.warning("Completion request timed out after %ss", self.settings.completion_timeout_seconds)
            raise NetworkError(f"Completion request timed out after {self.settings.completion_timeout_seconds}s") from exc
        except openai.APIConnectionError as exc:
            logger.warning("Unable to reach completion service: %s", exc)
            raise NetworkError(f"Unable to reach completion service: {exc}") from exc
        except openai.APIStatusError as exc:
            logger.warning("Completion service returned %s", exc.status_code)
            raise ServiceError(exc.status_code, getattr(exc, "message", "") or str(exc)) from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        return choices[0].message.content or ""


class HttpCompletionClient:
    """Raw POST to an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self.settings = settings
        headers = {"Content-Type": "application/json"}
        if settings.openai_api_key:
            headers["Authorization"] = f"Bearer {settings.openai_api_key}"
        self._client = httpx.Client(
            headers=headers,
            timeout=settings.completion_timeout_seconds,
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpCompletionClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def complete(self, prompt_text: str, model_hint: Optional[str] = None) -> str:
        payload: Dict[str, Any] = {
            "model": model_hint or self.settings.menu_model,
            "messages": _messages(prompt_text),
            "temperature": self.settings.menu_temperature,
            "max_tokens": self.settings.menu_max_output_tokens,
        }
        try:
            resp = self._client.post(self.settings.completion_url, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("HTTP timeout calling completion service after %ss", self.settings.completion_timeout_seconds)
            raise NetworkError(f"Completion request timed out after {self.settings.completion_timeout_seconds}s") from exc
        except httpx.HTTPError as exc:
            logger.warning("HTTP error calling completion service: %s", exc)
            raise NetworkError(f"Unable to reach completion service: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning("Completion service returned %s: %s", resp.status_code, resp.text[:300])
            raise ServiceError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError:
            # Hand the raw body to the pipeline; the extractor decides if anything is salvageable.
            return resp.text
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""


def build_completion_client(settings: Settings) -> "OpenAICompletionClient | HttpCompletionClient":
    """Build the configured backend. The caller owns the result and must ``close()`` it."""
    if settings.completion_backend == "http":
        return HttpCompletionClient(settings)
    return OpenAICompletionClient(settings)


__all__ = [
    "CompletionClient",
    "OpenAICompletionClient",
    "HttpCompletionClient",
    "build_completion_client",
]
