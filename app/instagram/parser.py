from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .types import CommentItem, Dimensions, MediaItem, PostInfo, ResolvedPost


_SIDECAR_TYPENAMES = {"XDTGraphSidecar", "GraphSidecar"}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _edges(container: Any) -> List[Dict[str, Any]]:
    edges = _as_dict(container).get("edges")
    if not isinstance(edges, list):
        return []
    nodes: List[Dict[str, Any]] = []
    for edge in edges:
        node = _as_dict(edge).get("node")
        if isinstance(node, dict):
            nodes.append(node)
    return nodes


def _extract_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_timestamp(value: Any) -> Optional[str]:
    seconds = _extract_int(value)
    if not seconds:
        return None
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_sidecar(node: Dict[str, Any]) -> bool:
    return node.get("__typename") in _SIDECAR_TYPENAMES or bool(node.get("edge_sidecar_to_children"))


def build_media_item(node: Dict[str, Any]) -> MediaItem:
    dimensions = _as_dict(node.get("dimensions"))
    size = Dimensions(
        width=_extract_int(dimensions.get("width")),
        height=_extract_int(dimensions.get("height")),
    )
    if node.get("is_video"):
        return MediaItem(
            kind="video",
            url=node.get("video_url") or "",
            dimensions=size,
            thumbnail_url=node.get("display_url"),
            view_count=_extract_int(node.get("video_view_count")) or 0,
        )
    return MediaItem(kind="image", url=node.get("display_url") or "", dimensions=size)


def collect_media(node: Dict[str, Any]) -> List[MediaItem]:
    if is_sidecar(node):
        return [build_media_item(child) for child in _edges(node.get("edge_sidecar_to_children"))]
    return [build_media_item(node)]


def dedupe_comments(nodes: Iterable[Dict[str, Any]]) -> List[CommentItem]:
    seen: Set[str] = set()
    comments: List[CommentItem] = []
    for node in nodes:
        comment_id = str(node.get("id") or "")
        if comment_id in seen:
            continue
        seen.add(comment_id)
        owner = _as_dict(node.get("owner"))
        comments.append(
            CommentItem(
                id=comment_id,
                username=owner.get("username") or "unknown",
                text=node.get("text") or "",
                created_at=_parse_timestamp(node.get("created_at")),
            )
        )
    return comments


def _first_caption(node: Dict[str, Any]) -> str:
    captions = _edges(node.get("edge_media_to_caption"))
    if not captions:
        return ""
    return captions[0].get("text") or ""


def assemble_post(node: Dict[str, Any]) -> ResolvedPost:
    media = collect_media(node)
    comments = dedupe_comments(_edges(node.get("edge_media_to_parent_comment")))
    owner = _as_dict(node.get("owner"))

    post_info = PostInfo(
        owner_username=owner.get("username") or "",
        owner_full_name=owner.get("full_name") or "",
        is_verified=bool(owner.get("is_verified")),
        is_private=bool(owner.get("is_private")),
        likes=_extract_int(_as_dict(node.get("edge_media_preview_like")).get("count")) or 0,
        is_ad=bool(node.get("is_ad")),
        caption=_first_caption(node),
        comments_count=len(comments),
        taken_at=_parse_timestamp(node.get("taken_at_timestamp") or node.get("taken_at")),
    )
    return ResolvedPost(
        media_item_count=len(media),
        media_urls=tuple(item.url for item in media),
        post_info=post_info,
        media_details=tuple(media),
        comments=tuple(comments),
    )
