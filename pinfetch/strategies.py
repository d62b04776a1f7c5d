"""
Pinterest media extraction strategies.

Each strategy targets one representation of the pin data and returns a
MediaResult, or None when its representation is absent or unreadable:

  internal-api    — PinResource XHR endpoint used by Pinterest's own frontend
  redux-state     — bare JSON script carrying `initialReduxState` (current layout)
  pws-data        — `__PWS_DATA__` / `__PWS_INITIAL_DATA__` blobs (legacy layout)
  relay-response  — `__PWS_RELAY_REGISTER_COMPLETED_REQUEST__(query, json)` calls
  meta-tags       — Open Graph / Twitter Card tags (most durable, lowest fidelity)

Only internal-api touches the network. Every parse failure stays local.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import httpx
from bs4 import BeautifulSoup

from .config import API_TIMEOUT, BROWSER_HEADERS
from .models import MediaResult, MediaType
from .pin_object import get_path, pin_object_to_media
from .quality import is_streaming_url, pick_best_image, pick_best_video
from .search import deep_find, first_string

logger = logging.getLogger(__name__)

PIN_RESOURCE_URL = "https://www.pinterest.com/resource/PinResource/get/"

PWS_MARKERS = ("__PWS_INITIAL_DATA__", "__PWS_DATA__")
PWS_ASSIGN_RE = re.compile(r"(__PWS_INITIAL_DATA__|__PWS_DATA__)\s*=")

RELAY_MARKER = "__PWS_RELAY_REGISTER_COMPLETED_REQUEST__("

# Relay payload keys, progressive renditions first
RELAY_PROGRESSIVE_KEYS = [
    "V_1080P", "V_720P", "V_EXP7", "V_EXP6", "V_EXP5", "V_EXP4", "V_480P", "V_360P", "V_240P",
]
RELAY_STREAMING_KEYS = ["V_HLSV4", "V_HLSV3_WEB", "V_HLSV3_MOBILE", "V_HLS_MOBILE"]

META_VIDEO_SELECTORS = [
    'meta[property="og:video:secure_url"]',
    'meta[property="og:video:url"]',
    'meta[property="og:video"]',
    'meta[name="twitter:player:stream"]',
]
META_IMAGE_SELECTORS = [
    'meta[property="og:image"]',
    'meta[name="twitter:image:src"]',
    'meta[name="twitter:image"]',
]
META_TITLE_SELECTORS = ['meta[property="og:title"]', 'meta[name="twitter:title"]']

TITLE_SUFFIX = " | Pinterest"
IMAGE_HASH_RE = re.compile(r"/([a-f0-9]{32})\.")
SIZED_PATH_RE = re.compile(r"/\d+x/")


@dataclass(frozen=True)
class RawPage:
    """One fetched pin page: final URL, markup and the session cookie header."""
    url: str
    html: str
    cookies: str = ""


@dataclass(frozen=True)
class PageContext:
    """Artifacts of a single page fetch, shared read-only by all strategies."""
    page: RawPage
    soup: BeautifulSoup
    pin_id: Optional[str] = None

    @classmethod
    def from_page(cls, page: RawPage, pin_id: Optional[str] = None) -> "PageContext":
        return cls(page=page, soup=BeautifulSoup(page.html, "html.parser"), pin_id=pin_id)


# =========================================================================
# HELPERS
# =========================================================================

def _script_bodies(soup: BeautifulSoup, inline_only: bool = False) -> Iterator[str]:
    for script in soup.find_all("script"):
        if inline_only and script.get("src"):
            continue
        yield script.get_text() or ""


def _load_json(text: str) -> Any:
    """json.loads that reports failure (including absurd nesting) as None."""
    try:
        return json.loads(text)
    except (ValueError, TypeError, RecursionError):
        return None


def parse_cookie_header(cookies: str) -> Dict[str, str]:
    """Split a `name=value; name2=value2` header into a dict."""
    jar: Dict[str, str] = {}
    for part in cookies.split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            jar[name] = value
    return jar


# =========================================================================
# STRATEGY 1: INTERNAL RESOURCE API
# =========================================================================

async def fetch_pin_resource(
    client: httpx.AsyncClient,
    pin_id: str,
    cookies: str = "",
) -> Optional[MediaResult]:
    """
    Ask Pinterest's PinResource endpoint for the full pin JSON.

    Mirrors the XHR the web frontend makes. The session cookie from the page
    fetch authenticates the call and its csrftoken doubles as X-CSRFToken.
    Network failures are non-fatal: later strategies may still succeed.
    """
    data = json.dumps(
        {"options": {"id": pin_id, "field_set_key": "unauth_react"}, "context": {}},
        separators=(",", ":"),
    )
    params = {
        "source_url": f"/pin/{pin_id}/",
        "data": data,
        "_": str(int(time.time() * 1000)),
    }
    headers = {
        **BROWSER_HEADERS,
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "X-Requested-With": "XMLHttpRequest",
        "X-Pinterest-AppState": "active",
        "Referer": f"https://www.pinterest.com/pin/{pin_id}/",
    }
    if cookies:
        headers["Cookie"] = cookies
        csrf_token = parse_cookie_header(cookies).get("csrftoken")
        if csrf_token:
            headers["X-CSRFToken"] = csrf_token

    try:
        resp = await client.get(PIN_RESOURCE_URL, params=params, headers=headers, timeout=API_TIMEOUT)
    except httpx.HTTPError as e:
        logger.warning(f"⚠️ PinResource request failed for pin {pin_id}: {e!r}")
        return None

    if resp.status_code != 200:
        logger.info(f"PinResource returned HTTP {resp.status_code} for pin {pin_id}")
        return None

    payload = _load_json(resp.text)
    pin = get_path(payload, "resource_response", "data")
    if not isinstance(pin, dict):
        return None

    return pin_object_to_media(pin)


# =========================================================================
# STRATEGY 2A: initialReduxState (current page layout)
# =========================================================================

def _find_redux_state(soup: BeautifulSoup) -> Optional[dict]:
    for body in _script_bodies(soup, inline_only=True):
        body = body.strip()
        if not body.startswith("{") or "initialReduxState" not in body:
            continue
        parsed = _load_json(body)
        if isinstance(parsed, dict) and isinstance(parsed.get("initialReduxState"), dict):
            return parsed["initialReduxState"]
    return None


def extract_from_redux_state(soup: BeautifulSoup) -> Optional[MediaResult]:
    """
    Read pins out of the Redux store Pinterest inlines as a bare JSON script:

        <script>{"otaData":{…},"initialReduxState":{"pins":{…},"resources":{…}}}</script>

    Pins live under `initialReduxState.pins[<id>]` or as cached responses in
    `initialReduxState.resources.PinResource`.
    """
    state = _find_redux_state(soup)
    if state is None:
        return None

    pins = state.get("pins")
    if isinstance(pins, dict):
        for pin in pins.values():
            result = pin_object_to_media(pin)
            if result:
                return result

    resources = state.get("resources")
    pin_resource = resources.get("PinResource") if isinstance(resources, dict) else None
    if isinstance(pin_resource, dict):
        for entry in pin_resource.values():
            # Either a {status, data} wrapper or the pin object itself
            wrapped = get_path(entry, "data")
            pin = wrapped if wrapped is not None else entry
            result = pin_object_to_media(pin)
            if result:
                return result

    return None


# =========================================================================
# STRATEGY 2B: __PWS_DATA__ (legacy page layout)
# =========================================================================

def _find_pws_data(soup: BeautifulSoup) -> Any:
    tagged = soup.find("script", id="__PWS_DATA__")
    if tagged is not None:
        data = _load_json((tagged.get_text() or "").strip())
        if data is not None:
            return data

    for body in _script_bodies(soup):
        if not any(marker in body for marker in PWS_MARKERS):
            continue
        match = PWS_ASSIGN_RE.search(body)
        if not match:
            continue
        eq_idx = body.index("=", match.start())
        # Everything after "=", minus the trailing ";…" statement terminator
        json_text = body[eq_idx + 1:].strip().split(";", 1)[0]
        data = _load_json(json_text)
        if data is not None:
            return data

    return None


def _first_image(data: Any) -> Optional[str]:
    for images in deep_find(data, "images"):
        url = pick_best_image(images)
        if url:
            return url
    return None


def extract_from_pws_data(soup: BeautifulSoup) -> Optional[MediaResult]:
    """
    Parse the server-rendering payload older pages embed, either as
    `<script id="__PWS_DATA__">{…}</script>` or as a
    `window.__PWS_INITIAL_DATA__ = {…};` assignment.
    """
    data = _find_pws_data(soup)
    if data is None:
        return None

    for video_list in deep_find(data, "video_list"):
        best = pick_best_video(video_list)
        if best:
            return MediaResult(
                type=MediaType.VIDEO,
                media_url=best.url,
                thumbnail=_first_image(data),
                title=first_string(deep_find(data, "title"), "Pinterest Video"),
            )

    image_url = _first_image(data)
    if image_url:
        title = first_string(deep_find(data, "title"), "Pinterest Image")
        return MediaResult.still(image_url, image_url, title)

    return None


# =========================================================================
# STRATEGY 2C: relay (structured query) responses
# =========================================================================

def _relay_payloads(soup: BeautifulSoup) -> Iterator[Any]:
    for body in _script_bodies(soup):
        marker_idx = body.find(RELAY_MARKER)
        if marker_idx == -1:
            continue
        # First argument is a URL-encoded string literal, so its closing `",`
        # is the argument boundary
        boundary = body.find('",', marker_idx + len(RELAY_MARKER))
        if boundary == -1:
            continue
        start = boundary + 2

        end = body.rfind("});")
        if end < start:
            end = body.rfind("}")
        if end < start:
            continue

        data = _load_json(body[start:end + 1].strip())
        if data is not None:
            yield data


def _candidate_urls(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        if value.startswith("http"):
            yield value
    elif isinstance(value, dict):
        url = value.get("url")
        if isinstance(url, str) and url:
            yield url


def _relay_video_url(data: Any, keys: List[str], progressive: bool) -> Optional[str]:
    for key in keys:
        for value in deep_find(data, key):
            for url in _candidate_urls(value):
                if progressive and is_streaming_url(url):
                    continue
                return url
    return None


def extract_from_relay_response(soup: BeautifulSoup) -> Optional[MediaResult]:
    """
    Parse `__PWS_RELAY_REGISTER_COMPLETED_REQUEST__("<query>", {…})` scripts.

    Progressive renditions are preferred; HLS keys are only used when a pin
    has no downloadable file at all.
    """
    for data in _relay_payloads(soup):
        url = (
            _relay_video_url(data, RELAY_PROGRESSIVE_KEYS, progressive=True)
            or _relay_video_url(data, RELAY_STREAMING_KEYS, progressive=False)
        )
        if url:
            return MediaResult(
                type=MediaType.VIDEO,
                media_url=url,
                thumbnail=_first_image(data),
                title=first_string(deep_find(data, "title"), "Pinterest Video"),
            )
    return None


# =========================================================================
# STRATEGY 3: OPEN GRAPH / TWITTER META TAGS
# =========================================================================

def _meta_content(soup: BeautifulSoup, selectors: List[str]) -> Optional[str]:
    for selector in selectors:
        tag = soup.select_one(selector)
        content = tag.get("content") if tag is not None else None
        if content:
            return content
    return None


def find_original_image(html: str, image_url: str) -> Optional[str]:
    """
    Look through raw HTML for the /originals/ version of a resized image.

    Pinterest shards originals by the first three byte pairs of the hash:
    /originals/ab/cd/ef/abcdef….jpg
    """
    match = IMAGE_HASH_RE.search(image_url)
    if not match:
        return None
    image_hash = match.group(1)
    shards = "/".join([image_hash[0:2], image_hash[2:4], image_hash[4:6]])
    pattern = re.compile(
        rf"https://i\.pinimg\.com/originals/{shards}/{image_hash}\.[a-z]+", re.IGNORECASE
    )
    found = pattern.search(html)
    return found.group(0) if found else None


def upgrade_image_url(image_url: str) -> str:
    """Swap the first sized path segment (/736x/, /474x/, …) for /originals/."""
    return SIZED_PATH_RE.sub("/originals/", image_url, count=1)


def extract_from_meta_tags(soup: BeautifulSoup, html: str) -> Optional[MediaResult]:
    """
    Fall back to Open Graph / Twitter Card tags.

    Video pins rarely expose og:video (the player loads client-side), so
    this usually yields the still image, upgraded to original size.
    """
    video_url = _meta_content(soup, META_VIDEO_SELECTORS)
    image_url = _meta_content(soup, META_IMAGE_SELECTORS)

    title = _meta_content(soup, META_TITLE_SELECTORS)
    if not title and soup.title is not None:
        title = soup.title.get_text().replace(TITLE_SUFFIX, "").strip()
    title = title or "Pinterest"

    if video_url:
        return MediaResult(type=MediaType.VIDEO, media_url=video_url, thumbnail=image_url, title=title)

    if image_url:
        original = find_original_image(html, image_url) or upgrade_image_url(image_url)
        return MediaResult.still(original, image_url, title)

    return None
