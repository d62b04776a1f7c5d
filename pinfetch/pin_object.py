"""
Conversion of a raw Pinterest pin object into a MediaResult.

Used by the internal-API strategy and the redux-state strategy. Three pin
shapes are understood:
  1. Regular video pin   — pin.videos.video_list
  2. Idea / story pin    — pin.story_pin_data.pages[].blocks[].video.video_list
  3. Image / GIF pin     — pin.images
"""

from typing import Any, Optional

from .models import MediaResult, MediaType
from .quality import pick_best_image, pick_best_video
from .search import deep_find

DEFAULT_TITLE = "Pinterest"
DESCRIPTION_TITLE_LENGTH = 120


def get_path(obj: Any, *path: str) -> Any:
    """Walk nested dicts, returning None at the first missing or non-dict hop."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def pin_title(pin: dict) -> str:
    title = pin.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    description = pin.get("description")
    if isinstance(description, str) and description.strip():
        return description.strip()[:DESCRIPTION_TITLE_LENGTH]
    return DEFAULT_TITLE


def _story_video(pin: dict, fallback_thumbnail: Optional[str]) -> Optional[tuple]:
    pages = get_path(pin, "story_pin_data", "pages")
    if not isinstance(pages, list):
        return None

    for page in pages:
        blocks = get_path(page, "blocks")
        if not isinstance(blocks, list):
            continue
        for block in blocks:
            video_list = get_path(block, "video", "video_list")
            if video_list is None:
                video_list = get_path(block, "block", "video", "video_list")
            best = pick_best_video(video_list)
            if best:
                thumbnail = pick_best_image(get_path(page, "image")) or fallback_thumbnail
                return best.url, thumbnail
    return None


def pin_object_to_media(pin: Any) -> Optional[MediaResult]:
    """
    Build a MediaResult from a pin object, preferring video over stills.

    Returns None only when the pin carries neither a usable video nor an image.
    """
    if not isinstance(pin, dict):
        return None

    title = pin_title(pin)
    thumbnail = pick_best_image(pin.get("images"))

    best = pick_best_video(get_path(pin, "videos", "video_list"))
    if best:
        return MediaResult(type=MediaType.VIDEO, media_url=best.url, thumbnail=thumbnail, title=title)

    story = _story_video(pin, thumbnail)
    if story:
        url, story_thumbnail = story
        return MediaResult(type=MediaType.VIDEO, media_url=url, thumbnail=story_thumbnail, title=title)

    # Catch-all for video lists nested in shapes not covered above
    for video_list in deep_find(pin, "video_list"):
        best = pick_best_video(video_list)
        if best:
            return MediaResult(type=MediaType.VIDEO, media_url=best.url, thumbnail=thumbnail, title=title)

    if thumbnail:
        return MediaResult.still(thumbnail, thumbnail, title)

    return None
