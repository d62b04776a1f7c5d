"""
Unit tests for the video/image quality pickers.

Run:
    pytest tests/test_quality.py -v
"""

import random

import pytest

from pinfetch.quality import (
    IMAGE_SIZE_PREFERENCE,
    VIDEO_QUALITY_PREFERENCE,
    is_streaming_url,
    pick_best_image,
    pick_best_video,
)


# ─── pick_best_video ─────────────────────────────────────────────────────────

def test_video_prefers_highest_listed_quality():
    video_list = {
        "V_480P": {"url": "https://v.pinimg.com/480.mp4"},
        "V_1080P": {"url": "https://v.pinimg.com/1080.mp4", "width": 1080, "height": 1920},
        "V_720P": {"url": "https://v.pinimg.com/720.mp4"},
    }
    best = pick_best_video(video_list)
    assert best.url == "https://v.pinimg.com/1080.mp4"
    assert (best.width, best.height) == (1080, 1920)


def test_video_skips_hls_in_preference_list():
    video_list = {
        "V_1080P": {"url": "https://v.pinimg.com/1080.m3u8"},
        "V_720P": {"url": "https://v.pinimg.com/720.mp4"},
    }
    assert pick_best_video(video_list).url == "https://v.pinimg.com/720.mp4"


def test_video_falls_back_to_unlisted_keys_in_mapping_order():
    video_list = {
        "V_HLSV4": {"url": "https://v.pinimg.com/hls.m3u8"},
        "V_CUSTOM_A": {"url": "https://v.pinimg.com/a.mp4", "width": 10},
        "V_CUSTOM_B": {"url": "https://v.pinimg.com/b.mp4"},
    }
    best = pick_best_video(video_list)
    assert best.url == "https://v.pinimg.com/a.mp4"
    assert best.width is None  # fallback entries carry only the URL


@pytest.mark.parametrize("video_list", [
    {},
    {"V_HLSV3_MOBILE": {"url": "https://v.pinimg.com/x.m3u8"}},
    None,
    "V_720P",
    [{"url": "https://v.pinimg.com/x.mp4"}],
    {"V_720P": None, "V_480P": {"url": 42}, "V_240P": "https://v.pinimg.com/x.mp4"},
])
def test_video_returns_none_for_unusable_input(video_list):
    assert pick_best_video(video_list) is None


def test_video_never_returns_manifest_when_progressive_exists():
    """Randomised mappings: any progressive candidate beats every manifest."""
    rng = random.Random(1234)
    labels = VIDEO_QUALITY_PREFERENCE + ["V_HLSV4", "V_HLSV3_MOBILE", "V_OTHER", "V_EXP4"]

    for _ in range(500):
        video_list = {}
        for label in rng.sample(labels, rng.randint(1, len(labels))):
            ext = rng.choice([".mp4", ".m3u8"])
            video_list[label] = {"url": f"https://v.pinimg.com/{label}{ext}"}

        best = pick_best_video(video_list)
        has_progressive = any(not v["url"].endswith(".m3u8") for v in video_list.values())
        if has_progressive:
            assert best is not None
            assert not is_streaming_url(best.url)
        else:
            assert best is None


# ─── pick_best_image ─────────────────────────────────────────────────────────

def test_image_prefers_original():
    images = {
        "236x": {"url": "https://i.pinimg.com/236x/a.jpg"},
        "orig": {"url": "https://i.pinimg.com/originals/a.jpg"},
        "736x": {"url": "https://i.pinimg.com/736x/a.jpg"},
    }
    assert pick_best_image(images) == "https://i.pinimg.com/originals/a.jpg"


def test_image_preference_order_is_fixed():
    assert IMAGE_SIZE_PREFERENCE[0] == "orig"
    images = {"474x": {"url": "https://i.pinimg.com/474x/a.jpg"}, "736x": {"url": "https://i.pinimg.com/736x/a.jpg"}}
    assert pick_best_image(images) == "https://i.pinimg.com/736x/a.jpg"


@pytest.mark.parametrize("label", ["orig", "170x", "60x60", "weird-size"])
def test_image_single_variant_is_returned_regardless_of_label(label):
    images = {label: {"url": "https://i.pinimg.com/only.jpg"}}
    assert pick_best_image(images) == "https://i.pinimg.com/only.jpg"
    # Selecting again from the same mapping gives the same answer
    assert pick_best_image(images) == pick_best_image(images)


@pytest.mark.parametrize("images", [{}, None, 7, ["x"], {"orig": {"url": ""}}, {"orig": {}}])
def test_image_returns_none_for_unusable_input(images):
    assert pick_best_image(images) is None


def test_is_streaming_url():
    assert is_streaming_url("https://v.pinimg.com/a/playlist.M3U8?x=1")
    assert not is_streaming_url("https://v.pinimg.com/a/video.mp4")
