from typing import AsyncIterator, List

import httpx
import pytest

from app.media.exceptions import BlockedHostError, MediaFetchFailedError
from app.media.proxy import MediaProxy

from conftest import mock_http_client


class _FlakyStream(httpx.AsyncByteStream):
    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield b"first"
        raise httpx.ReadError("connection dropped")


class _BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self) -> AsyncIterator[bytes]:
        raise httpx.ReadError("connection reset")
        yield b""  # pragma: no cover


async def _collect(stream) -> List[bytes]:
    return [chunk async for chunk in stream.iter_bytes()]


@pytest.mark.asyncio
async def test_blocked_host_is_rejected_before_any_request(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with mock_http_client(handler) as http_client:
        proxy = MediaProxy(settings, http_client)
        with pytest.raises(BlockedHostError):
            await proxy.open("https://evil.example.com/img.jpg")


@pytest.mark.asyncio
async def test_view_mode_forwards_type_length_and_public_cache(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        return httpx.Response(200, headers={"Content-Type": "image/jpeg", "Content-Length": "5"}, content=b"hello")

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/img.jpg")
        body = await _collect(stream)

    assert b"".join(body) == b"hello"
    assert stream.media_type == "image/jpeg"
    assert stream.headers["Content-Length"] == "5"
    assert stream.headers["Cache-Control"] == "public, max-age=3600"
    assert "Content-Disposition" not in stream.headers
    assert seen["headers"]["User-Agent"] == "test-agent/1.0"
    assert seen["headers"]["Referer"] == "https://www.instagram.com/"


@pytest.mark.asyncio
async def test_view_mode_defaults_to_binary_content_type(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"raw")

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/blob")
        await _collect(stream)

    assert stream.media_type == "application/octet-stream"


@pytest.mark.asyncio
async def test_download_mode_sets_attachment_from_mp4_extension(settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        return httpx.Response(200, content=b"video-bytes")

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open(
            "https://video.xx.fbcdn.net/o1/v/clip.mp4?efg=abc", mode="download"
        )
        await _collect(stream)

    assert stream.headers["Content-Disposition"] == 'attachment; filename="instagram_media.mp4"'
    assert stream.headers["Cache-Control"] == "no-cache"
    assert stream.media_type == "video/mp4"
    assert seen["headers"]["Sec-Fetch-Dest"] == "video"


@pytest.mark.asyncio
async def test_download_mode_uses_supplied_filename(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Type": "image/jpeg"}, content=b"img")

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open(
            "https://scontent.cdninstagram.com/v/img.jpg", mode="download", filename="holiday"
        )
        await _collect(stream)

    assert stream.headers["Content-Disposition"] == 'attachment; filename="holiday.jpg"'


@pytest.mark.asyncio
async def test_upstream_error_status_fails_before_streaming(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not found")

    async with mock_http_client(handler) as http_client:
        with pytest.raises(MediaFetchFailedError) as excinfo:
            await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/img.jpg")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_timeout_before_first_byte_is_terminal(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with mock_http_client(handler) as http_client:
        with pytest.raises(MediaFetchFailedError) as excinfo:
            await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/img.jpg")

    assert excinfo.value.timed_out is True


@pytest.mark.asyncio
async def test_drop_before_first_byte_is_terminal(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=_BrokenStream())

    async with mock_http_client(handler) as http_client:
        with pytest.raises(MediaFetchFailedError):
            await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/img.jpg")


@pytest.mark.asyncio
async def test_drop_after_first_byte_is_only_logged(settings, caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=_FlakyStream())

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/img.jpg")
        body = await _collect(stream)

    assert body == [b"first"]
    assert "dropped after 5 bytes" in caplog.text


@pytest.mark.asyncio
async def test_redirect_to_unlisted_host_is_refused(settings):
    fetched = []

    def handler(request: httpx.Request) -> httpx.Response:
        fetched.append(request.url.host)
        if request.url.host == "l.instagram.com":
            return httpx.Response(302, headers={"Location": "http://evil.example.com/secret"})
        return httpx.Response(200, content=b"internal-data")

    async with mock_http_client(handler) as http_client:
        with pytest.raises(BlockedHostError):
            await MediaProxy(settings, http_client).open("https://l.instagram.com/?u=http://evil.example.com/secret")

    assert fetched == ["l.instagram.com"]


@pytest.mark.asyncio
async def test_redirect_between_allowed_hosts_is_followed(settings):
    fetched = []

    def handler(request: httpx.Request) -> httpx.Response:
        fetched.append(request.url.host)
        if request.url.host == "scontent.cdninstagram.com":
            return httpx.Response(302, headers={"Location": "https://video.xx.fbcdn.net/v/clip.mp4"})
        return httpx.Response(200, headers={"Content-Type": "video/mp4"}, content=b"clip")

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/v/clip.mp4")
        body = await _collect(stream)

    assert fetched == ["scontent.cdninstagram.com", "video.xx.fbcdn.net"]
    assert b"".join(body) == b"clip"


@pytest.mark.asyncio
async def test_redirect_loop_stops_at_limit(settings):
    fetched = []

    def handler(request: httpx.Request) -> httpx.Response:
        fetched.append(request.url.path)
        return httpx.Response(302, headers={"Location": "https://scontent.cdninstagram.com/loop"})

    async with mock_http_client(handler) as http_client:
        with pytest.raises(MediaFetchFailedError):
            await MediaProxy(settings, http_client).open("https://scontent.cdninstagram.com/start")

    assert len(fetched) == settings.max_redirects + 1


@pytest.mark.asyncio
async def test_download_mode_encodes_non_ascii_filename(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Type": "image/jpeg"}, content=b"img")

    async with mock_http_client(handler) as http_client:
        stream = await MediaProxy(settings, http_client).open(
            "https://scontent.cdninstagram.com/v/a.jpg", mode="download", filename="фото"
        )
        await _collect(stream)

    disposition = stream.headers["Content-Disposition"]
    assert disposition == (
        "attachment; filename=\"instagram_media.jpg\"; filename*=UTF-8''%D1%84%D0%BE%D1%82%D0%BE.jpg"
    )
    disposition.encode("latin-1")
