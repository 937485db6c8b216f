"""Batch fan-out under a shared concurrency ceiling."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import anyio

from app.summarizer.errors import SummarizerError
from app.summarizer.models import BatchItem, Summary

logger = logging.getLogger(__name__)

# (fingerprint, normalized text) for one raw text
PrepareFn = Callable[[str], Tuple[str, str]]
RunFn = Callable[[str, str], Awaitable[Summary]]


class BulkDispatcher:
    """
    Coalesce identical inputs and run distinct ones concurrently.

    The capacity limiter is shared by every batch dispatched through this
    instance, so the ceiling on outstanding upstream round trips holds across
    concurrent batch requests too. Waiting tasks are admitted in FIFO order.
    """

    def __init__(self, concurrency: int = 4):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self._limiter: Optional[anyio.CapacityLimiter] = None

    @property
    def limiter(self) -> anyio.CapacityLimiter:
        # created on first use, inside the event loop
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.concurrency)
        return self._limiter

    @property
    def active(self) -> int:
        if self._limiter is None:
            return 0
        return int(self._limiter.borrowed_tokens)

    def group_items(
        self, items: Iterable[BatchItem], prepare: PrepareFn
    ) -> Dict[str, Tuple[str, List[str]]]:
        """Map fingerprint -> (normalized text, ids); unusable items are dropped."""
        groups: Dict[str, Tuple[str, List[str]]] = {}
        for item in items:
            if not item.id or not item.text or not item.text.strip():
                continue
            key, normalized = prepare(item.text)
            if not normalized:
                continue
            if key in groups:
                groups[key][1].append(item.id)
            else:
                groups[key] = (normalized, [item.id])
        return groups

    async def summarize_batch(
        self,
        items: Iterable[BatchItem],
        prepare: PrepareFn,
        run: RunFn,
    ) -> Dict[str, Summary]:
        """
        Run one ``run`` per distinct fingerprint and fan results out to ids.

        ``run`` takes a slot from :attr:`limiter` only for upstream work, so
        cache hits and joins on in-flight requests never wait for capacity.
        """
        groups = self.group_items(items, prepare)
        results: Dict[str, Summary] = {}

        async def _dispatch(key: str, normalized: str, ids: List[str]) -> None:
            try:
                summary = await run(key, normalized)
            except SummarizerError as exc:
                logger.warning(
                    f"Batch group {key[:12]} ({len(ids)} items) failed: {exc.message}"
                )
                return
            except Exception:
                logger.exception(f"Batch group {key[:12]} ({len(ids)} items) crashed")
                return
            for item_id in ids:
                results[item_id] = summary

        logger.info(f"Dispatching batch: {len(groups)} distinct inputs")
        async with anyio.create_task_group() as tg:
            for key, (normalized, ids) in groups.items():
                tg.start_soon(_dispatch, key, normalized, ids)

        return results
