"""Fingerprinted summary cache with in-flight request coalescing."""

from __future__ import annotations

import hashlib
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import anyio
import orjson

from app.summarizer.errors import UpstreamTransientError
from app.summarizer.models import Summary, SummaryOptions

logger = logging.getLogger(__name__)


def fingerprint(options: SummaryOptions, normalized_text: str) -> str:
    """
    SHA-256 over the model, every constraint parameter and the normalized text.

    Any tunable change yields a new key so summaries never leak across
    incompatible configurations.
    """
    constraints = options.constraints
    material = {
        "model": options.model,
        "max_tokens": options.max_tokens,
        "min_words": constraints.min_words,
        "max_words": constraints.max_words,
        "line_count": constraints.line_count,
        "expand_retries": options.expand_retries,
        "input_char_limit": options.input_char_limit,
        "text": normalized_text,
    }
    return hashlib.sha256(orjson.dumps(material, option=orjson.OPT_SORT_KEYS)).hexdigest()


@dataclass(slots=True)
class CacheEntry:
    fingerprint: str
    summary: Summary
    inserted_at: float


class PendingResult:
    """Result of one upstream round trip, shared by every caller of a fingerprint."""

    def __init__(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint
        self._event = anyio.Event()
        self._summary: Optional[Summary] = None
        self._error: Optional[BaseException] = None

    @property
    def settled(self) -> bool:
        return self._event.is_set()

    def resolve(self, summary: Summary) -> None:
        self._summary = summary
        self._event.set()

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._event.set()

    async def wait(self) -> Summary:
        await self._event.wait()
        if self._error is not None:
            raise self._error
        assert self._summary is not None
        return self._summary


class RequestCache:
    """
    Bounded, TTL-expiring LRU store keyed by fingerprint.

    Entries are evicted lazily on read once older than ``ttl_seconds`` and in
    least-recently-used order once ``capacity`` is reached. All mutations run
    between suspension points on a single event loop, so no lock is needed.
    """

    def __init__(
        self,
        capacity: int = 500,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 0:
            raise ValueError("capacity must be non-negative")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._in_flight: Dict[str, PendingResult] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Summary]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() - entry.inserted_at >= self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            logger.debug(f"Cache entry expired: {key[:12]}")
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry.summary

    def put(self, key: str, summary: Summary) -> None:
        if self.capacity == 0:
            return
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Cache evicted: {evicted[:12]}")
        self._entries[key] = CacheEntry(
            fingerprint=key, summary=summary, inserted_at=self._clock()
        )

    def clear(self) -> None:
        self._entries.clear()

    def acquire_in_flight(self, key: str) -> Tuple[PendingResult, bool]:
        """Return the pending result for ``key`` and whether the caller owns it."""
        pending = self._in_flight.get(key)
        if pending is not None:
            return pending, False
        pending = PendingResult(key)
        self._in_flight[key] = pending
        return pending, True

    def release_in_flight(self, key: str) -> None:
        self._in_flight.pop(key, None)

    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def get_or_compute(
        self, key: str, compute: Callable[[], Awaitable[Summary]]
    ) -> Summary:
        """
        Serve ``key`` from cache, join an identical in-flight request, or run
        ``compute`` once and share its outcome.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key[:12]}")
            return cached

        pending, owner = self.acquire_in_flight(key)
        if not owner:
            logger.debug(f"Joining in-flight request: {key[:12]}")
            return await pending.wait()

        try:
            summary = await compute()
        except Exception as exc:
            self.release_in_flight(key)
            pending.fail(exc)
            raise
        except BaseException:
            # owner cancelled; waiters still need an outcome
            self.release_in_flight(key)
            pending.fail(UpstreamTransientError("Summarization request was cancelled."))
            raise

        self.release_in_flight(key)
        self.put(key, summary)
        pending.resolve(summary)
        return summary

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "capacity": self.capacity,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "in_flight": len(self._in_flight),
        }
