from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Tuple


MediaKind = Literal["image", "video"]


@dataclass(frozen=True)
class Dimensions:
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class MediaItem:
    kind: MediaKind
    url: str
    dimensions: Dimensions = field(default_factory=Dimensions)
    thumbnail_url: Optional[str] = None
    view_count: Optional[int] = None


@dataclass(frozen=True)
class CommentItem:
    id: str
    username: str
    text: str
    created_at: Optional[str] = None


@dataclass(frozen=True)
class PostInfo:
    owner_username: str = ""
    owner_full_name: str = ""
    is_verified: bool = False
    is_private: bool = False
    likes: int = 0
    is_ad: bool = False
    caption: str = ""
    comments_count: int = 0
    taken_at: Optional[str] = None


@dataclass(frozen=True)
class ResolvedPost:
    media_item_count: int
    media_urls: Tuple[str, ...]
    post_info: PostInfo
    media_details: Tuple[MediaItem, ...]
    comments: Tuple[CommentItem, ...] = ()


@dataclass(frozen=True)
class RedirectOutcome:
    """Result of the best-effort share link resolution."""

    url: str
    resolved: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class TokenOutcome:
    """Result of the best-effort CSRF token acquisition."""

    token: Optional[str] = None
    error: Optional[str] = None

    @property
    def acquired(self) -> bool:
        return bool(self.token)


ShapeSource = Literal["known_path", "recursive_search"]


@dataclass(frozen=True)
class NormalizedPost:
    """A post object located inside a GraphQL payload and where it was found."""

    node: Dict[str, Any]
    source: ShapeSource
    location: str
