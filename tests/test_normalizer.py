import pytest

from app.instagram import normalizer
from app.instagram.exceptions import UnsupportedResponseShapeError
from app.instagram.normalizer import normalize_payload, search_media_node


def test_first_known_path_wins_without_recursive_search(monkeypatch):
    def _unexpected(payload):
        raise AssertionError("recursive search should not run")

    monkeypatch.setattr(normalizer, "search_media_node", _unexpected)
    payload = {
        "data": {
            "xdt_shortcode_media": {"__typename": "XDTGraphImage", "id": "first"},
            "shortcode_media": {"__typename": "GraphImage", "id": "second"},
        }
    }

    result = normalize_payload(payload)

    assert result.node["id"] == "first"
    assert result.source == "known_path"
    assert result.location == "data.xdt_shortcode_media"


def test_known_paths_are_probed_in_priority_order():
    payload = {
        "data": {
            "xdt_shortcode_media": None,
            "shortcode_media": {},
            "media": {"id": "third"},
        }
    }

    result = normalize_payload(payload)

    assert result.node["id"] == "third"
    assert result.location == "data.media"


def test_legacy_graphql_envelope_is_recognised():
    result = normalize_payload({"graphql": {"shortcode_media": {"id": "legacy"}}})

    assert result.node["id"] == "legacy"
    assert result.location == "graphql.shortcode_media"


def test_recursive_search_finds_nested_media_object():
    payload = {
        "data": {
            "viewer": {"id": "1"},
            "xdt_api__v1__media": {"items": [{"node": {"__typename": "XDTGraphVideo", "id": "deep"}}]},
        }
    }

    result = normalize_payload(payload)

    assert result.source == "recursive_search"
    assert result.node["id"] == "deep"
    assert result.location == "data.xdt_api__v1__media.items[0].node"


def test_recursive_search_prefers_first_match_in_key_order():
    payload = {
        "a": {"__typename": "XDTGraphSidecar", "id": "sidecar"},
        "b": {"__typename": "XDTGraphImage", "id": "image"},
    }

    assert search_media_node(payload).node["id"] == "sidecar"


def test_recursive_search_is_depth_bounded():
    within = {"l1": {"l2": {"l3": {"l4": {"l5": {"__typename": "GraphImage", "id": "ok"}}}}}}
    beyond = {"l1": {"l2": {"l3": {"l4": {"l5": {"l6": {"__typename": "GraphImage", "id": "too-deep"}}}}}}}

    assert search_media_node(within).node["id"] == "ok"
    assert search_media_node(beyond) is None


def test_unknown_shape_raises_with_upstream_error_messages():
    payload = {"errors": [{"message": "doc_id not found"}], "data": None}

    with pytest.raises(UnsupportedResponseShapeError) as excinfo:
        normalize_payload(payload, document_id="doc-x")

    assert excinfo.value.document_ids == ["doc-x"]
    assert excinfo.value.details == ["doc_id not found"]


def test_non_dict_payload_is_unsupported():
    with pytest.raises(UnsupportedResponseShapeError):
        normalize_payload(["not", "a", "post"])
