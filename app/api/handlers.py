from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.cache.storage import ResultCache
from app.dependencies import get_instagram_service, get_media_proxy, get_result_cache
from app.instagram.exceptions import (
    InstagramRequestError,
    InstagramTimeoutError,
    InvalidInstagramUrlError,
    UnsupportedResponseShapeError,
)
from app.instagram.types import CommentItem, MediaItem, PostInfo as PostInfoData, ResolvedPost
from app.media.exceptions import BlockedHostError, MediaFetchFailedError
from app.media.proxy import MediaProxy, ProxyMode
from app.models import (
    CacheClearedResponse,
    CacheStatsResponse,
    Comment,
    HealthResponse,
    InstagramPostRequest,
    MediaDetail,
    MediaDimensions,
    MediaUrlResponse,
    PostInfo,
    PostResponse,
)
from app.services.instagram_resolver import InstagramResolverService


logger = logging.getLogger(__name__)

router = APIRouter()
instagram_router = APIRouter(prefix="/api/instagram", tags=["instagram"])
media_router = APIRouter(prefix="/api", tags=["media"])
cache_router = APIRouter(prefix="/api", tags=["cache"])
health_router = APIRouter(tags=["health"])


def _error(status_code: int, message: str, details: Any = None) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": message, "details": details})


def _to_media_detail(item: MediaItem) -> MediaDetail:
    return MediaDetail(
        type=item.kind,
        url=item.url,
        dimensions=MediaDimensions(width=item.dimensions.width, height=item.dimensions.height),
        thumbnail=item.thumbnail_url,
        video_view_count=item.view_count,
    )


def _to_comment(item: CommentItem) -> Comment:
    return Comment(id=item.id, username=item.username, text=item.text, created_at=item.created_at)


def _to_post_info(info: PostInfoData) -> PostInfo:
    return PostInfo(
        owner_username=info.owner_username,
        owner_fullname=info.owner_full_name,
        is_verified=info.is_verified,
        is_private=info.is_private,
        likes=info.likes,
        is_ad=info.is_ad,
        caption=info.caption,
        comments_count=info.comments_count,
        taken_at=info.taken_at,
    )


def _to_response(post: ResolvedPost) -> PostResponse:
    return PostResponse(
        results_number=post.media_item_count,
        url_list=list(post.media_urls),
        post_info=_to_post_info(post.post_info),
        media_details=[_to_media_detail(item) for item in post.media_details],
        comments=[_to_comment(item) for item in post.comments],
    )


@instagram_router.post("/post", response_model=PostResponse)
async def resolve_instagram_post(
    request: InstagramPostRequest,
    service: InstagramResolverService = Depends(get_instagram_service),
) -> PostResponse:
    if not request.url or not request.url.strip():
        raise _error(status.HTTP_400_BAD_REQUEST, "URL is required")

    try:
        post = await service.resolve(request.url.strip())
    except InvalidInstagramUrlError as exc:
        raise _error(status.HTTP_400_BAD_REQUEST, str(exc), exc.details) from exc
    except UnsupportedResponseShapeError as exc:
        logger.error("Unsupported Instagram response for %s: %s", request.url, exc)
        raise _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), exc.details) from exc
    except InstagramTimeoutError as exc:
        logger.error("Instagram timed out for %s: %s", request.url, exc)
        raise _error(status.HTTP_504_GATEWAY_TIMEOUT, str(exc), exc.details) from exc
    except InstagramRequestError as exc:
        logger.error("Instagram request failed for %s: %s", request.url, exc)
        raise _error(status.HTTP_502_BAD_GATEWAY, str(exc), exc.details) from exc

    return _to_response(post)


@instagram_router.get("/video", response_model=MediaUrlResponse)
async def echo_video_url(
    video_url: Optional[str] = Query(None, alias="videoUrl"),
    proxy: MediaProxy = Depends(get_media_proxy),
) -> MediaUrlResponse:
    if not video_url:
        raise _error(status.HTTP_400_BAD_REQUEST, "videoUrl is required")
    try:
        proxy.validate(video_url)
    except BlockedHostError as exc:
        raise _error(status.HTTP_403_FORBIDDEN, "Blocked host", str(exc)) from exc
    return MediaUrlResponse(url=video_url)


async def _proxy_media(
    proxy: MediaProxy,
    url: Optional[str],
    *,
    mode: ProxyMode,
    filename: Optional[str] = None,
) -> StreamingResponse:
    if not url:
        raise _error(status.HTTP_400_BAD_REQUEST, "Media URL is required")

    failure_message = "Failed to download media" if mode == "download" else "Failed to stream media"
    try:
        stream = await proxy.open(url, mode=mode, filename=filename)
    except BlockedHostError as exc:
        raise _error(status.HTTP_403_FORBIDDEN, "Blocked host", str(exc)) from exc
    except MediaFetchFailedError as exc:
        logger.error("Media proxy error for %s: %s", url, exc)
        status_code = status.HTTP_504_GATEWAY_TIMEOUT if exc.timed_out else status.HTTP_502_BAD_GATEWAY
        raise _error(status_code, failure_message, str(exc)) from exc

    try:
        return StreamingResponse(
            stream.iter_bytes(),
            media_type=stream.media_type,
            headers=stream.headers,
            background=BackgroundTask(stream.aclose),
        )
    except Exception:
        await stream.aclose()
        raise


@media_router.get("/stream")
async def stream_media(
    url: Optional[str] = Query(None),
    proxy: MediaProxy = Depends(get_media_proxy),
) -> StreamingResponse:
    return await _proxy_media(proxy, url, mode="view")


@media_router.get("/download")
async def download_media(
    url: Optional[str] = Query(None),
    filename: Optional[str] = Query(None),
    proxy: MediaProxy = Depends(get_media_proxy),
) -> StreamingResponse:
    return await _proxy_media(proxy, url, mode="download", filename=filename)


@cache_router.post("/clear-cache", response_model=CacheClearedResponse)
async def clear_cache(cache: ResultCache = Depends(get_result_cache)) -> CacheClearedResponse:
    cache.flush_all()
    return CacheClearedResponse(message="Cache cleared")


@cache_router.get("/cache-stats", response_model=CacheStatsResponse)
async def cache_stats(cache: ResultCache = Depends(get_result_cache)) -> CacheStatsResponse:
    snapshot = cache.stats()
    return CacheStatsResponse(hits=snapshot.hits, misses=snapshot.misses, keys=snapshot.keys)


@health_router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


router.include_router(instagram_router)
router.include_router(media_router)
router.include_router(health_router)
