from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import httpx
import pytest

from app.config import Settings


def build_settings(**overrides: Any) -> Settings:
    params: Dict[str, Any] = {
        "instagram_base_url": "https://www.instagram.com",
        "graphql_url": "https://www.instagram.com/graphql/query",
        "document_id": "doc-primary",
        "alternate_document_ids": ("doc-alt-1", "doc-alt-2"),
        "user_agent": "test-agent/1.0",
        "request_timeout": 5.0,
        "media_timeout": 5.0,
        "max_redirects": 5,
        "cache_ttl": 300,
        "cache_check_interval": 120,
        "cache_max_entries": 1000,
        "media_allowed_hosts": ("cdninstagram.com", "fbcdn.net", "instagram.com"),
        "log_instagram_raw": False,
        "enable_cache_debug": True,
    }
    params.update(overrides)
    return Settings(**params)


def mock_http_client(
    handler: Callable[[httpx.Request], Any],
    *,
    max_redirects: Optional[int] = None,
) -> httpx.AsyncClient:
    kwargs: Dict[str, Any] = {"transport": httpx.MockTransport(handler)}
    if max_redirects is not None:
        kwargs["max_redirects"] = max_redirects
    return httpx.AsyncClient(**kwargs)


def single_image_payload(
    *,
    username: str = "alice",
    likes: int = 42,
    caption: str = "hello",
    display_url: str = "https://cdn/img.jpg",
) -> Dict[str, Any]:
    return {
        "data": {
            "xdt_shortcode_media": {
                "__typename": "XDTGraphImage",
                "shortcode": "ABC123",
                "is_video": False,
                "display_url": display_url,
                "dimensions": {"width": 1080, "height": 1350},
                "owner": {"username": username, "full_name": "Alice A.", "is_verified": True},
                "edge_media_preview_like": {"count": likes},
                "edge_media_to_caption": {"edges": [{"node": {"text": caption}}]},
                "taken_at_timestamp": 1700000000,
            }
        },
        "status": "ok",
    }


@pytest.fixture
def settings() -> Settings:
    return build_settings()
