from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Optional
from urllib.parse import quote, urlparse

from .exceptions import BlockedHostError


DEFAULT_EXTENSION = "jpg"
DEFAULT_FILENAME_STEM = "instagram_media"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "mp4": "video/mp4",
    "webm": "video/webm",
}
_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,5}$")
_UNSAFE_FILENAME_RE = re.compile(r'[\\/"\r\n]+')


@dataclass(frozen=True)
class ParsedMediaUrl:
    url: str
    host: str


def is_allowed_host(host: str, allowed_hosts: Iterable[str]) -> bool:
    host = host.lower().rstrip(".")
    for domain in allowed_hosts:
        domain = domain.lower().lstrip(".")
        if host == domain or host.endswith(f".{domain}"):
            return True
    return False


def url_extension(url: str) -> Optional[str]:
    suffix = PurePosixPath(urlparse(url).path).suffix.lstrip(".").lower()
    if suffix and _EXTENSION_RE.match(suffix):
        return suffix
    return None


def parse_media_url(url: str, allowed_hosts: Iterable[str]) -> ParsedMediaUrl:
    parsed = urlparse(url)
    host = parsed.hostname or ""
    if parsed.scheme not in {"http", "https"} or not host:
        raise BlockedHostError(f"Blocked host: unsupported media URL '{url}'")
    if not is_allowed_host(host, allowed_hosts):
        raise BlockedHostError(f"Blocked host: {host}")
    return ParsedMediaUrl(url=url, host=host)


def looks_like_video(url: str) -> bool:
    lowered = url.lower()
    return ".mp4" in lowered or "video" in lowered


def guess_content_type(url: str) -> Optional[str]:
    extension = url_extension(url)
    if extension is None:
        return None
    return _CONTENT_TYPES.get(extension)


def resolve_content_type(upstream: Optional[str], url: str) -> str:
    if upstream:
        return upstream
    return guess_content_type(url) or DEFAULT_CONTENT_TYPE


def resolve_download_filename(url: str, filename: Optional[str] = None) -> str:
    extension = url_extension(url) or DEFAULT_EXTENSION
    candidate = _UNSAFE_FILENAME_RE.sub("_", (filename or "").strip()).strip("._ ")
    if not candidate:
        return f"{DEFAULT_FILENAME_STEM}.{extension}"
    if "." not in candidate:
        return f"{candidate}.{extension}"
    return candidate


def build_content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 ``filename*``."""
    if filename.isascii():
        return f'attachment; filename="{filename}"'
    path = PurePosixPath(filename)
    stem = path.stem.encode("ascii", "ignore").decode("ascii").strip("._ ")
    suffix = path.suffix.encode("ascii", "ignore").decode("ascii")
    fallback = f"{stem or DEFAULT_FILENAME_STEM}{suffix}"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
