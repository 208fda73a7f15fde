from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Literal, Optional

import httpx

from app.config import Settings
from .exceptions import BlockedHostError, MediaFetchFailedError
from .url_utils import (
    ParsedMediaUrl,
    build_content_disposition,
    looks_like_video,
    parse_media_url,
    resolve_content_type,
    resolve_download_filename,
)


logger = logging.getLogger(__name__)

ProxyMode = Literal["view", "download"]

_IMAGE_ACCEPT = (
    "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8,"
    "video/mp4,video/webm,video/ogg,video/*;q=0.9"
)
_VIDEO_ACCEPT = "video/mp4,video/webm,video/ogg,video/*;q=0.9,application/ogg;q=0.7,audio/*;q=0.6,*/*;q=0.5"
_VIEW_CACHE_CONTROL = "public, max-age=3600"


@dataclass
class MediaStream:
    """An upstream media response whose first chunk has already arrived."""

    media_type: str
    headers: Dict[str, str]
    _response: httpx.Response
    _chunks: AsyncIterator[bytes]
    _first_chunk: bytes = b""
    _closed: bool = field(default=False, init=False)

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        sent = 0
        try:
            if self._first_chunk:
                sent += len(self._first_chunk)
                yield self._first_chunk
            async for chunk in self._chunks:
                sent += len(chunk)
                yield chunk
        except httpx.HTTPError as exc:
            logger.warning(
                "Media stream from %s dropped after %d bytes: %s",
                self._response.url,
                sent,
                exc,
            )
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()


class MediaProxy:
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http_client = http_client

    def validate(self, url: str) -> ParsedMediaUrl:
        return parse_media_url(url, self._settings.media_allowed_hosts)

    async def open(
        self,
        url: str,
        *,
        mode: ProxyMode = "view",
        filename: Optional[str] = None,
    ) -> MediaStream:
        self.validate(url)
        request = self._http_client.build_request(
            "GET",
            url,
            headers=self._build_headers(url, mode),
            timeout=self._settings.media_timeout,
        )
        response = await self._send_following_allowed_redirects(request)

        if response.is_error:
            await response.aclose()
            raise MediaFetchFailedError(
                f"Upstream returned HTTP {response.status_code} for media",
                status_code=response.status_code,
            )

        chunks = response.aiter_raw()
        try:
            first_chunk = await chunks.__anext__()
        except StopAsyncIteration:
            first_chunk = b""
        except httpx.TimeoutException as exc:
            await response.aclose()
            raise MediaFetchFailedError("Timed out while reading media", timed_out=True) from exc
        except httpx.HTTPError as exc:
            await response.aclose()
            raise MediaFetchFailedError(f"Failed to read media: {exc}") from exc

        media_type = resolve_content_type(response.headers.get("content-type"), url)
        headers = self._build_response_headers(response, url, mode, filename)
        return MediaStream(
            media_type=media_type,
            headers=headers,
            _response=response,
            _chunks=chunks,
            _first_chunk=first_chunk,
        )

    async def _send_following_allowed_redirects(self, request: httpx.Request) -> httpx.Response:
        """Follow redirects one hop at a time, validating each target host."""
        redirects = 0
        while True:
            try:
                response = await self._http_client.send(request, stream=True, follow_redirects=False)
            except httpx.TimeoutException as exc:
                raise MediaFetchFailedError("Timed out while fetching media", timed_out=True) from exc
            except httpx.HTTPError as exc:
                raise MediaFetchFailedError(f"Failed to fetch media: {exc}") from exc

            next_request = response.next_request
            if next_request is None:
                return response
            await response.aclose()

            target = str(next_request.url)
            try:
                self.validate(target)
            except BlockedHostError:
                logger.warning("Refusing media redirect from %s to %s", request.url, target)
                raise

            redirects += 1
            if redirects > self._settings.max_redirects:
                raise MediaFetchFailedError(
                    f"Exceeded {self._settings.max_redirects} redirects while fetching media"
                )
            request = next_request

    def _build_headers(self, url: str, mode: ProxyMode) -> Dict[str, str]:
        headers = {
            "User-Agent": self._settings.user_agent,
            "Referer": f"{self._settings.instagram_base_url}/",
            "Accept": _IMAGE_ACCEPT,
            "Accept-Language": "en-US,en;q=0.9",
            "Sec-Fetch-Dest": "image",
            "Sec-Fetch-Mode": "no-cors",
            "Sec-Fetch-Site": "cross-site",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if mode == "download" and looks_like_video(url):
            headers["Accept"] = _VIDEO_ACCEPT
            headers["Sec-Fetch-Dest"] = "video"
        return headers

    @staticmethod
    def _build_response_headers(
        response: httpx.Response,
        url: str,
        mode: ProxyMode,
        filename: Optional[str],
    ) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        content_length = response.headers.get("content-length")
        if content_length:
            headers["Content-Length"] = content_length
        content_encoding = response.headers.get("content-encoding")
        if content_encoding:
            headers["Content-Encoding"] = content_encoding

        if mode == "download":
            resolved = resolve_download_filename(url, filename)
            headers["Content-Disposition"] = build_content_disposition(resolved)
            headers["Cache-Control"] = "no-cache"
            headers["Pragma"] = "no-cache"
        else:
            headers["Cache-Control"] = _VIEW_CACHE_CONTROL
        return headers
