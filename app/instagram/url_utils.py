from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidInstagramUrlError


_POST_KINDS = ("p", "reel", "tv", "reels")
_SHORTCODE_PATTERNS = tuple(
    (kind, re.compile(rf"/{kind}/([A-Za-z0-9_-]+)")) for kind in _POST_KINDS
)
_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#]")
_CANONICAL_SEGMENT = {"reels": "reel"}
SHARE_MARKER = "/share/"
INSTAGRAM_HOSTS = ("instagram.com", "instagr.am")


@dataclass(frozen=True)
class ParsedInstagramUrl:
    entity: str
    shortcode: str
    canonical_url: str


def is_share_url(url: str) -> bool:
    return SHARE_MARKER in url


def _from_patterns(url: str) -> Optional[tuple[str, str]]:
    best: Optional[tuple[int, str, str]] = None
    for kind, pattern in _SHORTCODE_PATTERNS:
        match = pattern.search(url)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), kind, match.group(1))
    if best is None:
        return None
    return best[1], best[2]


def _from_segments(url: str) -> Optional[tuple[str, str]]:
    without_query = _QUERY_OR_FRAGMENT_RE.split(url, maxsplit=1)[0]
    segments = without_query.split("/")
    for idx, segment in enumerate(segments):
        if segment in _POST_KINDS:
            if idx + 1 < len(segments) and segments[idx + 1]:
                return segment, segments[idx + 1]
            return None
    return None


def extract_shortcode(url: str) -> str:
    return parse_instagram_url(url).shortcode


def parse_instagram_url(url: str) -> ParsedInstagramUrl:
    if not url or not url.strip():
        raise InvalidInstagramUrlError("Invalid Instagram URL (shortcode not found)")

    candidate = url.strip()
    found = _from_patterns(candidate) or _from_segments(candidate)
    if found is None:
        raise InvalidInstagramUrlError("Invalid Instagram URL (shortcode not found)")

    entity, shortcode = found
    canonical_entity = _CANONICAL_SEGMENT.get(entity, entity)
    canonical_url = f"https://www.instagram.com/{canonical_entity}/{shortcode}/"
    return ParsedInstagramUrl(entity=canonical_entity, shortcode=shortcode, canonical_url=canonical_url)
