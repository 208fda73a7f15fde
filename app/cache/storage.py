from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Generic, NamedTuple, Optional, TypeVar

from cachetools import TLRUCache


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheOptions:
    ttl_seconds: int = 300
    check_interval_seconds: int = 120
    max_entries: int = 1000


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    keys: int


class _Entry(NamedTuple):
    value: object
    ttl: int


def _time_to_use(key: str, entry: _Entry, now: float) -> float:
    if entry.ttl <= 0:
        return math.inf
    return now + entry.ttl


class ResultCache(Generic[T]):
    """TTL memo for resolved posts on top of ``cachetools.TLRUCache``.

    Each entry carries its own ttl; ``0`` stores without expiry. Expired keys
    read as absent and are purged at most once per ``check_interval_seconds``.
    """

    def __init__(
        self,
        options: Optional[CacheOptions] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._options = options or CacheOptions()
        self._clock = clock
        self._entries: TLRUCache = TLRUCache(
            maxsize=self._options.max_entries,
            ttu=_time_to_use,
            timer=clock,
        )
        self._hits = 0
        self._misses = 0
        self._last_sweep = clock()

    def get(self, key: str) -> Optional[T]:
        self._maybe_sweep()
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: str, value: T, ttl: Optional[int] = None) -> None:
        seconds = self._options.ttl_seconds if ttl is None else ttl
        self._entries[key] = _Entry(value, seconds)

    def flush_all(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.info("Flushed %d cached entries", count)

    def stats(self) -> CacheStats:
        self._maybe_sweep()
        return CacheStats(hits=self._hits, misses=self._misses, keys=len(self._entries))

    def _maybe_sweep(self) -> None:
        now = self._clock()
        if now - self._last_sweep < self._options.check_interval_seconds:
            return
        self._last_sweep = now
        expired = self._entries.expire()
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))


def build_post_cache_key(url: str) -> str:
    return f"post:{url}"
