"""
Unit tests for deep_find / first_string.

Run:
    pytest tests/test_search.py -v
"""

from pinfetch.search import deep_find, first_string


def test_finds_nested_values_parents_first():
    payload = {
        "video_list": {"V_720P": {"url": "a"}},
        "children": [
            {"video_list": {"V_480P": {"url": "b"}}},
            {"deeper": {"video_list": {"V_240P": {"url": "c"}}}},
        ],
    }
    found = deep_find(payload, "video_list")
    assert [list(v)[0] for v in found] == ["V_720P", "V_480P", "V_240P"]


def test_returns_empty_for_scalars_and_missing_keys():
    assert deep_find("video_list", "video_list") == []
    assert deep_find(None, "title") == []
    assert deep_find({"a": {"b": 1}}, "title") == []


def test_collects_non_container_values_too():
    assert deep_find([{"title": "x"}, {"title": None}, ({"title": 3},)], "title") == ["x", None, 3]


def test_terminates_on_self_referencing_payload():
    payload = {"title": "loop"}
    payload["self"] = payload
    payload["list"] = [payload, {"title": "inner"}]

    assert deep_find(payload, "title") == ["loop", "inner"]


def test_shared_container_visited_once():
    shared = {"title": "shared"}
    payload = {"a": shared, "b": shared}
    assert deep_find(payload, "title") == ["shared"]


def test_first_string_skips_blank_and_non_strings():
    assert first_string([None, "   ", 5, "  Sunset  ", "Later"]) == "Sunset"
    assert first_string([], "Pinterest Video") == "Pinterest Video"
    assert first_string([{"title": "x"}]) == ""


def test_deeply_nested_payload_does_not_exhaust_the_stack():
    payload = {"title": "leaf"}
    for depth in range(5000):
        payload = {"level": depth, "child": payload}

    assert deep_find(payload, "title") == ["leaf"]
    assert len(deep_find(payload, "level")) == 5000
