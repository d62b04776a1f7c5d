"""
Shared fixtures and helpers for pinfetch tests.

Network traffic never leaves the process: FakePinterest answers every
request through httpx.MockTransport, and PinterestExtractor takes that
transport instead of the real network.
"""

import json
import os
import pathlib
import sys
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

# ─── Path + .env loading (must happen before any pinfetch import) ────────────

_ROOT = pathlib.Path(__file__).parent.parent
sys.path.insert(0, str(_ROOT))

# Load .env so LOG_LEVEL, PINFETCH_LIVE_TESTS etc. are available
_env_file = _ROOT / ".env"
if _env_file.exists():
    for _line in _env_file.read_text().splitlines():
        _line = _line.strip()
        if _line and not _line.startswith("#") and "=" in _line:
            _k, _v = _line.split("=", 1)
            os.environ.setdefault(_k.strip(), _v.strip())

# ─── Constants ───────────────────────────────────────────────────────────────

PIN_ID = "774124931181173"
PIN_URL = f"https://www.pinterest.com/pin/{PIN_ID}/"
SHORT_URL = "https://pin.it/AbCdEfG"

VIDEO_720 = "https://v1.pinimg.com/videos/mc/720p/ab/cd/ef/abcdef.mp4"
VIDEO_480 = "https://v1.pinimg.com/videos/mc/480p/ab/cd/ef/abcdef.mp4"
VIDEO_HLS = "https://v1.pinimg.com/videos/mc/hls/ab/cd/ef/abcdef.m3u8"
IMAGE_ORIG = "https://i.pinimg.com/originals/ab/cd/ef/abcdef.jpg"
IMAGE_736 = "https://i.pinimg.com/736x/ab/cd/ef/abcdef.jpg"

LIVE_TESTS = bool(os.getenv("PINFETCH_LIVE_TESTS"))


# ─── HTML builders ───────────────────────────────────────────────────────────

def page_html(head: str = "", scripts: Tuple[str, ...] = (), title: Optional[str] = None) -> str:
    """Minimal pin page with optional <head> markup and inline scripts."""
    title_tag = f"<title>{title}</title>" if title is not None else ""
    script_tags = "".join(f"<script>{body}</script>" for body in scripts)
    return f"<!DOCTYPE html><html><head>{title_tag}{head}</head><body>{script_tags}</body></html>"


def og_tags(**props: str) -> str:
    """og_tags(title="x", image="y") → <meta property="og:title" content="x">…"""
    return "".join(
        f'<meta property="og:{name.replace("__", ":")}" content="{value}">'
        for name, value in props.items()
    )


def redux_script(pins: Dict[str, dict], resources: Optional[dict] = None) -> str:
    state = {"pins": pins}
    if resources is not None:
        state["resources"] = resources
    return json.dumps({"otaData": {"v": 1}, "initialReduxState": state})


def video_pin(url: str = VIDEO_720, title: str = "Sunset timelapse") -> dict:
    return {
        "id": PIN_ID,
        "title": title,
        "images": {"orig": {"url": IMAGE_ORIG}, "736x": {"url": IMAGE_736}},
        "videos": {
            "video_list": {
                "V_HLSV3_MOBILE": {"url": VIDEO_HLS},
                "V_720P": {"url": url, "width": 720, "height": 1280},
            }
        },
    }


def image_pin(url: str = IMAGE_ORIG, title: str = "Mountain lake") -> dict:
    return {"id": PIN_ID, "title": title, "images": {"orig": {"url": url}}}


# ─── Fake Pinterest over httpx.MockTransport ─────────────────────────────────

Handler = Callable[[httpx.Request], httpx.Response]


class FakePinterest:
    """
    Routes requests by (host, path) to canned responses and records every
    request seen. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.url.host, request.url.path))
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)

    def route(self, url: str, handler: Handler) -> None:
        parsed = httpx.URL(url)
        self.routes[(parsed.host, parsed.path)] = handler

    def page(self, url: str, html: str, status: int = 200, cookies: Tuple[str, ...] = ()) -> None:
        headers = [("content-type", "text/html; charset=utf-8")]
        headers += [("set-cookie", cookie) for cookie in cookies]
        self.route(url, lambda request: httpx.Response(status, text=html, headers=headers))

    def redirect(self, url: str, location: str, status: int = 301) -> None:
        self.route(url, lambda request: httpx.Response(status, headers={"location": location}))

    def api(self, pin: Optional[dict], status: int = 200) -> None:
        body = {"resource_response": {"status": "success", "data": pin}}
        self.route(
            "https://www.pinterest.com/resource/PinResource/get/",
            lambda request: httpx.Response(status, json=body),
        )

    def fail(self, url: str, exc_type: type = httpx.ConnectError) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc_type("simulated network failure", request=request)
        self.route(url, handler)

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


# ─── Per-test fixtures ────────────────────────────────────────────────────────

@pytest.fixture
def fake():
    """A fresh FakePinterest with no routes."""
    return FakePinterest()


@pytest.fixture
def extractor(fake):
    """PinterestExtractor wired to the fake network."""
    from pinfetch.extractor import PinterestExtractor
    return PinterestExtractor(transport=fake.transport)
