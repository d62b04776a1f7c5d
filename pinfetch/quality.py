"""
Quality selection over Pinterest's `video_list` and `images` mappings.

Both pickers are pure and accept anything: malformed input yields None.
"""

from typing import Any, Optional

from .models import VideoVariant

# Pinterest `video_list` keys, highest resolution first
VIDEO_QUALITY_PREFERENCE = [
    "V_1080P",
    "V_720P",
    "V_480P",
    "V_360P",
    "V_240P",
    "V_EXP7",
    "V_EXP6",
    "V_EXP5",
]

# Pinterest `images` keys, original upload first
IMAGE_SIZE_PREFERENCE = ["orig", "736x", "600x315", "474x", "236x", "170x"]

STREAMING_MARKERS = (".m3u8",)


def is_streaming_url(url: str) -> bool:
    """True for segmented streaming manifests (HLS)."""
    lowered = url.lower()
    return any(marker in lowered for marker in STREAMING_MARKERS)


def _entry_url(entry: Any) -> Optional[str]:
    if isinstance(entry, dict):
        url = entry.get("url")
        if isinstance(url, str) and url:
            return url
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def pick_best_video(video_list: Any) -> Optional[VideoVariant]:
    """
    Pick the highest-quality progressive rendition from a `video_list`.

    Walks VIDEO_QUALITY_PREFERENCE first, then any remaining entry in
    mapping order. HLS manifests are never returned.
    """
    if not isinstance(video_list, dict):
        return None

    for quality in VIDEO_QUALITY_PREFERENCE:
        entry = video_list.get(quality)
        url = _entry_url(entry)
        if url and not is_streaming_url(url):
            return VideoVariant(
                url=url,
                width=_as_int(entry.get("width")),
                height=_as_int(entry.get("height")),
            )

    for entry in video_list.values():
        url = _entry_url(entry)
        if url and not is_streaming_url(url):
            return VideoVariant(url=url)

    return None


def pick_best_image(images: Any) -> Optional[str]:
    """Pick the largest image URL from an `images` mapping."""
    if not isinstance(images, dict):
        return None

    for size in IMAGE_SIZE_PREFERENCE:
        url = _entry_url(images.get(size))
        if url:
            return url

    for entry in images.values():
        url = _entry_url(entry)
        if url:
            return url

    return None
