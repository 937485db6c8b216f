"""Pytest configuration for tests."""

from typing import Callable, List, Optional, Sequence, Union

import anyio
import pytest

from app.summarizer.client import CompletionClient
from app.summarizer.models import SummaryConstraints, SummaryOptions


class FakeCompletionClient(CompletionClient):
    """Scripted completion client that records every call."""

    def __init__(
        self,
        responses: Optional[List[Union[str, Exception]]] = None,
        default: str = "",
        delay: float = 0.0,
        responder: Optional[Callable[[str, Sequence[str]], str]] = None,
    ):
        self.responses = list(responses or [])
        self.default = default
        self.delay = delay
        self.responder = responder
        self.calls: List[dict] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    async def complete(self, system_prompt, user_prompt, max_tokens, model=None):
        user = [user_prompt] if isinstance(user_prompt, str) else list(user_prompt)
        self.calls.append(
            {"system": system_prompt, "user": user, "max_tokens": max_tokens, "model": model}
        )
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await anyio.sleep(self.delay)
            if self.responses:
                response = self.responses.pop(0)
            elif self.responder is not None:
                response = self.responder(system_prompt, user)
            else:
                response = self.default
        finally:
            self.active -= 1
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self) -> None:
        self.closed = True


def words(count: int, prefix: str = "word") -> str:
    return " ".join(f"{prefix}{index}" for index in range(count))


def make_options(
    min_words: int = 5,
    max_words: int = 20,
    line_count: Optional[int] = None,
    expand_retries: int = 1,
    model: str = "test/model",
) -> SummaryOptions:
    return SummaryOptions(
        constraints=SummaryConstraints(
            min_words=min_words, max_words=max_words, line_count=line_count
        ),
        model=model,
        max_tokens=160,
        expand_retries=expand_retries,
        input_char_limit=12000,
    )


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"
