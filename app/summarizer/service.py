"""Summarization pipeline wiring: normalize, fingerprint, cache, generate."""

from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterable, Optional, Tuple

from app.config import Settings
from app.presets.models import Preset
from app.summarizer.bulk import BulkDispatcher
from app.summarizer.cache import RequestCache, fingerprint
from app.summarizer.client import ChatCompletionClient, CompletionClient
from app.summarizer.errors import InputError
from app.summarizer.models import BatchItem, Summary, SummaryConstraints, SummaryOptions
from app.summarizer.retry import RetryController
from app.summarizer.text import normalize

logger = logging.getLogger(__name__)


def options_from_settings(settings: Settings) -> SummaryOptions:
    line_count = settings.summary_line_count or None
    return SummaryOptions(
        constraints=SummaryConstraints(
            min_words=settings.summary_min_words,
            max_words=settings.summary_max_words,
            line_count=line_count,
        ),
        model=settings.summary_model,
        max_tokens=settings.summary_max_tokens,
        expand_retries=settings.summary_expand_retries,
        input_char_limit=settings.summary_input_char_limit,
    )


def apply_preset(options: SummaryOptions, preset: Optional[Preset]) -> SummaryOptions:
    """Overlay the tunables a preset sets onto ``options``."""
    if preset is None:
        return options

    base = options.constraints
    if preset.shape == "paragraph":
        line_count = None
    elif preset.line_count is not None:
        line_count = preset.line_count
    else:
        line_count = base.line_count

    min_words, max_words = preset.word_window(base.min_words, base.max_words)
    constraints = SummaryConstraints(
        min_words=min_words, max_words=max_words, line_count=line_count
    )
    overrides = {
        name: value
        for name, value in (
            ("model", preset.model),
            ("max_tokens", preset.max_tokens),
            ("expand_retries", preset.expand_retries),
        )
        if value is not None
    }
    return dataclasses.replace(options, constraints=constraints, **overrides)


class SummarizerService:
    """
    Owns the pipeline collaborators for one application instance.

    Nothing here is module-global: tests build a fresh service (and so a fresh
    cache) per case.
    """

    def __init__(
        self,
        options: SummaryOptions,
        client: CompletionClient,
        cache: Optional[RequestCache] = None,
        dispatcher: Optional[BulkDispatcher] = None,
        bulk_max_items: int = 100,
    ):
        self.options = options
        self.client = client
        self.cache = cache if cache is not None else RequestCache()
        self.dispatcher = dispatcher if dispatcher is not None else BulkDispatcher()
        self.controller = RetryController(client)
        self.bulk_max_items = bulk_max_items

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[CompletionClient] = None
    ) -> "SummarizerService":
        if client is None:
            if not settings.openrouter_api_key:
                logger.warning("OPENROUTER_API_KEY not configured, upstream calls will fail")
            client = ChatCompletionClient(
                model=settings.summary_model,
                api_key=settings.openrouter_api_key,
                base_url=settings.completion_base_url,
                timeout=settings.completion_timeout_seconds,
                temperature=settings.summary_temperature,
                top_p=settings.summary_top_p,
            )
        return cls(
            options=options_from_settings(settings),
            client=client,
            cache=RequestCache(
                capacity=settings.cache_capacity, ttl_seconds=settings.cache_ttl_seconds
            ),
            dispatcher=BulkDispatcher(concurrency=settings.bulk_concurrency),
            bulk_max_items=settings.bulk_max_items,
        )

    def options_for(self, preset: Optional[Preset] = None) -> SummaryOptions:
        return apply_preset(self.options, preset)

    def prepare(
        self, text: Optional[str], options: Optional[SummaryOptions] = None
    ) -> Tuple[str, str]:
        """Return ``(fingerprint, normalized_text)`` for raw input text."""
        options = options or self.options
        normalized = normalize(text, keep_lines=options.constraints.fixed_lines)
        if len(normalized) > options.input_char_limit:
            normalized = normalize(
                normalized[: options.input_char_limit],
                keep_lines=options.constraints.fixed_lines,
            )
        return fingerprint(options, normalized), normalized

    async def _generate(
        self, key: str, normalized: str, options: SummaryOptions
    ) -> Summary:
        return await self.cache.get_or_compute(
            key, lambda: self.controller.run(normalized, options)
        )

    async def summarize(
        self, text: Optional[str], options: Optional[SummaryOptions] = None
    ) -> Summary:
        options = options or self.options
        if text is None or not text.strip():
            raise InputError("Text is required for summarization.")

        key, normalized = self.prepare(text, options)
        logger.info(f"Summarize request len={len(text)} key={key[:12]}")
        return await self._generate(key, normalized, options)

    async def summarize_batch(
        self, items: Iterable[BatchItem], options: Optional[SummaryOptions] = None
    ) -> Dict[str, Summary]:
        options = options or self.options
        items = list(items)
        if len(items) > self.bulk_max_items:
            raise InputError(
                "Too many items in batch.",
                details={"limit": self.bulk_max_items, "received": len(items)},
            )

        async def _upstream(normalized: str) -> Summary:
            async with self.dispatcher.limiter:
                return await self.controller.run(normalized, options)

        async def _run(key: str, normalized: str) -> Summary:
            return await self.cache.get_or_compute(key, lambda: _upstream(normalized))

        return await self.dispatcher.summarize_batch(
            items, lambda text: self.prepare(text, options), _run
        )

    async def aclose(self) -> None:
        await self.client.aclose()
