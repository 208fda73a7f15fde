from __future__ import annotations

from .storage import CacheOptions, CacheStats, ResultCache, build_post_cache_key

__all__ = [
    "CacheOptions",
    "CacheStats",
    "ResultCache",
    "build_post_cache_key",
]
