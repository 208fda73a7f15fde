from __future__ import annotations

from functools import lru_cache

import httpx

from app.cache.storage import CacheOptions, ResultCache
from app.config import get_settings
from app.instagram.client import InstagramClient
from app.instagram.types import ResolvedPost
from app.media.proxy import MediaProxy
from app.services.instagram_resolver import InstagramResolverService


@lru_cache(maxsize=1)
def get_http_client() -> httpx.AsyncClient:
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.request_timeout),
        max_redirects=settings.max_redirects,
    )


@lru_cache(maxsize=1)
def get_result_cache() -> ResultCache[ResolvedPost]:
    settings = get_settings()
    options = CacheOptions(
        ttl_seconds=settings.cache_ttl,
        check_interval_seconds=settings.cache_check_interval,
        max_entries=settings.cache_max_entries,
    )
    return ResultCache(options)


@lru_cache(maxsize=1)
def get_instagram_service() -> InstagramResolverService:
    settings = get_settings()
    client = InstagramClient(settings, get_http_client())
    return InstagramResolverService(client=client, cache=get_result_cache(), settings=settings)


@lru_cache(maxsize=1)
def get_media_proxy() -> MediaProxy:
    settings = get_settings()
    return MediaProxy(settings, get_http_client())


async def close_http_client() -> None:
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
        get_http_client.cache_clear()
        get_instagram_service.cache_clear()
        get_media_proxy.cache_clear()
