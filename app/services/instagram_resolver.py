from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from app.cache.storage import ResultCache, build_post_cache_key
from app.config import Settings
from app.instagram.client import InstagramClient
from app.instagram.exceptions import InstagramRequestError, UnsupportedResponseShapeError
from app.instagram.normalizer import normalize_payload
from app.instagram.parser import assemble_post
from app.instagram.types import NormalizedPost, ResolvedPost
from app.instagram.url_utils import parse_instagram_url


logger = logging.getLogger(__name__)


def _is_document_rejection(exc: InstagramRequestError) -> bool:
    status = exc.status_code
    return status is not None and 400 <= status < 500 and status != 429


class InstagramResolverService:
    def __init__(
        self,
        client: InstagramClient,
        cache: ResultCache[ResolvedPost],
        settings: Settings,
    ) -> None:
        self._client = client
        self._cache = cache
        self._settings = settings

    async def resolve(self, url: str) -> ResolvedPost:
        cache_key = build_post_cache_key(url)
        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Serving cached post for %s", url)
            return cached

        redirect = await self._client.resolve_share_url(url)
        if redirect.error:
            logger.info("Continuing with original URL %s: %s", url, redirect.error)

        parsed_url = parse_instagram_url(redirect.url)
        token = await self._client.fetch_csrf_token()
        if not token.acquired:
            logger.info("Querying %s without a CSRF token: %s", parsed_url.shortcode, token.error)

        normalized = await self._fetch_post(parsed_url.shortcode, token.token)
        post = assemble_post(normalized.node)
        self._cache.set(cache_key, post, self._settings.cache_ttl)
        return post

    async def _fetch_post(self, shortcode: str, csrf_token: Optional[str]) -> NormalizedPost:
        candidates = self._settings.document_ids
        attempts: List[Dict[str, Any]] = []
        last_error: Optional[Exception] = None

        for index, document_id in enumerate(candidates):
            try:
                payload = await self._client.query_post(shortcode, document_id, csrf_token=csrf_token)
                if self._settings.log_instagram_raw:
                    formatted = json.dumps(payload, ensure_ascii=False, indent=2)
                    logger.debug("Raw Instagram payload for %s:\n%s", shortcode, formatted)
                normalized = normalize_payload(payload, document_id=document_id)
            except UnsupportedResponseShapeError as exc:
                logger.warning("Unrecognised response for %s with doc_id=%s: %s", shortcode, document_id, exc)
                attempts.append({"document_id": document_id, "error": str(exc), "details": exc.details})
                last_error = exc
                continue
            except InstagramRequestError as exc:
                if not _is_document_rejection(exc):
                    raise
                logger.warning(
                    "Instagram rejected doc_id=%s for %s with HTTP %s",
                    document_id,
                    shortcode,
                    exc.status_code,
                )
                attempts.append({"document_id": document_id, "error": str(exc), "status": exc.status_code})
                last_error = exc
                continue

            if normalized.source == "recursive_search":
                logger.info("Located post %s via recursive search at %s", shortcode, normalized.location)
            if index > 0:
                logger.info("Alternate doc_id=%s succeeded for %s", document_id, shortcode)
            return normalized

        if isinstance(last_error, InstagramRequestError) and all("status" in attempt for attempt in attempts):
            raise last_error
        raise UnsupportedResponseShapeError(
            "Only posts/reels supported or Instagram changed response format",
            document_ids=[attempt["document_id"] for attempt in attempts],
            details=attempts,
        )
