from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple


def _as_bool(value: Optional[str], *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: Optional[str], *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Optional[str], *, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_list(value: Optional[str], *, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_6 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/16.6 Mobile/15E148 Safari/604.1"
)
DEFAULT_DOCUMENT_ID = "9510064595728286"
DEFAULT_ALTERNATE_DOCUMENT_IDS = ("8845758582119845", "10015901848480474")
DEFAULT_MEDIA_ALLOWED_HOSTS = ("cdninstagram.com", "fbcdn.net", "instagram.com")

_BASE_URL = os.getenv("INSTAGRAM_BASE_URL", "https://www.instagram.com").rstrip("/")


@dataclass(frozen=True)
class Settings:
    instagram_base_url: str = _BASE_URL
    graphql_url: str = os.getenv("INSTAGRAM_GRAPHQL_URL", f"{_BASE_URL}/graphql/query")
    document_id: str = os.getenv("INSTAGRAM_DOCUMENT_ID", DEFAULT_DOCUMENT_ID)
    alternate_document_ids: Tuple[str, ...] = _as_list(
        os.getenv("INSTAGRAM_ALTERNATE_DOCUMENT_IDS"), default=DEFAULT_ALTERNATE_DOCUMENT_IDS
    )
    user_agent: str = os.getenv("INSTAGRAM_USER_AGENT") or os.getenv("USER_AGENT") or DEFAULT_USER_AGENT
    request_timeout: float = _as_float(os.getenv("REQUEST_TIMEOUT"), default=10.0)
    media_timeout: float = _as_float(os.getenv("MEDIA_REQUEST_TIMEOUT"), default=30.0)
    max_redirects: int = _as_int(os.getenv("INSTAGRAM_MAX_REDIRECTS"), default=5)
    cache_ttl: int = _as_int(os.getenv("CACHE_TTL"), default=300)
    cache_check_interval: int = _as_int(os.getenv("CACHE_CHECK_INTERVAL"), default=120)
    cache_max_entries: int = _as_int(os.getenv("CACHE_MAX_ENTRIES"), default=1000)
    media_allowed_hosts: Tuple[str, ...] = _as_list(
        os.getenv("MEDIA_ALLOWED_HOSTS"), default=DEFAULT_MEDIA_ALLOWED_HOSTS
    )
    log_instagram_raw: bool = _as_bool(os.getenv("INSTAGRAM_LOG_RAW", "false"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    enable_cache_debug: bool = _as_bool(os.getenv("ENABLE_CACHE_DEBUG"), default=True)

    @property
    def document_ids(self) -> Tuple[str, ...]:
        """Primary document id first, then alternates in declaration order."""
        ordered = [self.document_id]
        for candidate in self.alternate_document_ids:
            if candidate and candidate not in ordered:
                ordered.append(candidate)
        return tuple(ordered)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
