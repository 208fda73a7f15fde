"""Locate the post object inside a loosely structured GraphQL payload.

Instagram changes the envelope of its GraphQL responses without notice. The
payload is first probed at a fixed list of known key paths in priority order;
when none of them holds a post, a depth-limited search looks for any nested
object whose ``__typename`` names a known media type.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .exceptions import UnsupportedResponseShapeError
from .types import NormalizedPost


KNOWN_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("data", "xdt_shortcode_media"),
    ("data", "shortcode_media"),
    ("data", "media"),
    ("graphql", "shortcode_media"),
    ("shortcode_media",),
)

MEDIA_TYPENAMES = frozenset(
    {
        "XDTGraphSidecar",
        "XDTGraphVideo",
        "XDTGraphImage",
        "GraphSidecar",
        "GraphVideo",
        "GraphImage",
    }
)

MAX_SEARCH_DEPTH = 5


def _lookup(payload: Any, path: Sequence[str]) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def probe_known_paths(payload: Any) -> Optional[NormalizedPost]:
    for path in KNOWN_PATHS:
        candidate = _lookup(payload, path)
        if isinstance(candidate, dict) and candidate:
            return NormalizedPost(node=candidate, source="known_path", location=".".join(path))
    return None


def _walk(value: Any, location: str, depth: int) -> Iterator[Tuple[Dict[str, Any], str]]:
    if depth > MAX_SEARCH_DEPTH:
        return
    if isinstance(value, dict):
        if value.get("__typename") in MEDIA_TYPENAMES:
            yield value, location
        for key, child in value.items():
            if isinstance(child, (dict, list)):
                yield from _walk(child, f"{location}.{key}" if location else str(key), depth + 1)
    elif isinstance(value, list):
        for index, child in enumerate(value):
            if isinstance(child, (dict, list)):
                yield from _walk(child, f"{location}[{index}]", depth + 1)


def search_media_node(payload: Any) -> Optional[NormalizedPost]:
    for node, location in _walk(payload, "", 0):
        return NormalizedPost(node=node, source="recursive_search", location=location or "$")
    return None


def _describe_errors(payload: Any) -> Optional[List[str]]:
    if not isinstance(payload, dict):
        return None
    messages: List[str] = []
    errors = payload.get("errors")
    if isinstance(errors, list):
        for error in errors:
            if isinstance(error, dict) and error.get("message"):
                messages.append(str(error["message"]))
    if payload.get("status") == "fail" and payload.get("message"):
        messages.append(str(payload["message"]))
    return messages or None


def normalize_payload(payload: Any, *, document_id: str = "") -> NormalizedPost:
    """Return the post object found in ``payload`` or raise.

    Raises:
        UnsupportedResponseShapeError: if neither a known path nor the
            bounded search yields a post object.
    """
    found = probe_known_paths(payload) or search_media_node(payload)
    if found is None:
        raise UnsupportedResponseShapeError(
            "Only posts/reels supported or Instagram changed response format",
            document_ids=[document_id] if document_id else [],
            details=_describe_errors(payload),
        )
    return found
