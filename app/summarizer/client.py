"""
Chat-completion clients.

The pipeline only needs one operation from a provider: turn a system prompt
and one or more user messages into raw text. Connection pooling and transport
error mapping live here so the rest of the pipeline deals in
``SummarizerError`` subclasses only.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
import orjson

from app.summarizer.errors import UpstreamQuotaError, UpstreamTransientError

logger = logging.getLogger(__name__)

UserPrompt = Union[str, Sequence[str]]

QUOTA_STATUS_CODES = {402}
QUOTA_MARKERS = ("quota", "credit", "insufficient")


class CompletionClient(ABC):
    """Abstract base class for completion providers."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: UserPrompt,
        max_tokens: int,
        model: Optional[str] = None,
    ) -> str:
        """Return the raw text of one completion, optionally overriding the model."""

    async def aclose(self) -> None:
        """Release pooled resources."""


def build_messages(system_prompt: str, user_prompt: UserPrompt) -> List[Dict[str, str]]:
    user_messages = [user_prompt] if isinstance(user_prompt, str) else list(user_prompt)
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": "user", "content": content} for content in user_messages)
    return messages


def extract_content(body: Any) -> str:
    """Pull ``choices[0].message.content``; anything missing reads as empty."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message")
        if isinstance(error, str):
            return error
    return None


def _is_quota_failure(status_code: int, message: Optional[str]) -> bool:
    if status_code in QUOTA_STATUS_CODES:
        return True
    if status_code == 429 and message:
        lowered = message.lower()
        return any(marker in lowered for marker in QUOTA_MARKERS)
    return False


class ChatCompletionClient(CompletionClient):
    """OpenAI-compatible ``/chat/completions`` client (OpenRouter by default)."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 30.0,
        temperature: float = 0.2,
        top_p: float = 0.9,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            model: Model identifier sent with every request
            api_key: Bearer token for the provider
            base_url: Provider API root, ``/chat/completions`` is appended
            timeout: Per-request timeout in seconds
            temperature: Sampling temperature, kept low for convergence
            top_p: Nucleus sampling bound
            transport: Optional httpx transport (tests use ``MockTransport``)
        """
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )
        logger.info(f"Initialized completion client for model: {model} at {base_url}")

    async def complete(
        self,
        system_prompt: str,
        user_prompt: UserPrompt,
        max_tokens: int,
        model: Optional[str] = None,
    ) -> str:
        """Issue one completion request and return its raw text."""
        model = model or self.model
        payload = {
            "model": model,
            "messages": build_messages(system_prompt, user_prompt),
            "max_tokens": max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
        }

        started = time.perf_counter()
        try:
            response = await self._client.post("/chat/completions", json=payload)
        except httpx.TimeoutException as exc:
            logger.error(f"Completion request timed out: {exc!r}")
            raise UpstreamTransientError("Completion request timed out.") from exc
        except httpx.HTTPError as exc:
            logger.error(f"Completion request failed: {exc!r}")
            raise UpstreamTransientError(
                "Completion request failed.", details=str(exc)
            ) from exc
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        try:
            body = orjson.loads(response.content) if response.content else None
        except orjson.JSONDecodeError:
            body = None

        if response.is_error:
            message = _error_message(body)
            logger.error(
                f"Completion provider returned {response.status_code}: "
                f"{message or response.text[:200]}"
            )
            if _is_quota_failure(response.status_code, message):
                raise UpstreamQuotaError(
                    UpstreamQuotaError.hint,
                    details=message or "Requires more credits or fewer tokens.",
                )
            raise UpstreamTransientError(
                f"Completion provider returned status {response.status_code}.",
                details=body if body is not None else response.text[:500],
            )

        if body is None:
            logger.error("Completion provider returned a non-JSON body")
            raise UpstreamTransientError("Completion provider returned a malformed body.")

        content = extract_content(body)
        logger.debug(
            f"Completion {model} status={response.status_code} "
            f"elapsed_ms={elapsed_ms} chars={len(content)}"
        )
        return content

    async def aclose(self) -> None:
        await self._client.aclose()
