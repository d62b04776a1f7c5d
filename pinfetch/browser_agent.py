"""
Playwright browser fallback for pins whose video only appears client-side.

Session states, in order:
  IDLE → LAUNCHING → NAVIGATING → OBSERVING → RESOLVING → CLOSED

Fast path: before any browser is launched the PinResource API is tried
directly. A video result skips the browser entirely (IDLE → CLOSED).

Network observers:
  - page.on("request"/"response") records v.pinimg.com MP4 URLs requested
    by the player during page load
  - PinResource / v3 pins XHR responses are searched for a `video_list`
Both handlers only append to the session's capture state; the agent reads
that state after the bounded network-idle wait.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import BROWSER_NAV_TIMEOUT, USER_AGENT
from .errors import TransportError
from .extractor import PinterestExtractor, extractor
from .models import MediaResult, MediaType
from .quality import pick_best_video
from .search import deep_find
from .strategies import TITLE_SUFFIX, fetch_pin_resource
from .validators import extract_pin_id

logger = logging.getLogger(__name__)

# ── Availability flag ────────────────────────────────────────────────────────

PLAYWRIGHT_AVAILABLE = False

try:
    from playwright.async_api import async_playwright
    from playwright.async_api import Error as PlaywrightError
    from playwright.async_api import TimeoutError as PlaywrightTimeoutError
    PLAYWRIGHT_AVAILABLE = True
    logger.info("✅ playwright available (browser extraction endpoint active)")
except ImportError:
    logger.warning(
        "⚠️ playwright not installed — run: pip install playwright && playwright install chromium"
    )

# ── Constants ─────────────────────────────────────────────────────────────────

# Video CDN hosts: v.pinimg.com and numbered shards such as v1.pinimg.com
CDN_VIDEO_RE = re.compile(r"\bv\d*\.pinimg\.com", re.IGNORECASE)
MP4_RE = re.compile(r"\.mp4", re.IGNORECASE)
HTML_VIDEO_RE = re.compile(r"https://v\d*\.pinimg\.com/[^\"'\s]+\.mp4", re.IGNORECASE)
TITLE_SUFFIX_RE = re.compile(re.escape(TITLE_SUFFIX) + r"$", re.IGNORECASE)

API_PATH_FRAGMENTS = ("/resource/PinResource/", "/api/v3/pins/", "/v3/pins/")
PLAY_BUTTON_SELECTOR = '[aria-label="Play"], [data-test-id="play-button"]'
CAPTURED_RESOLUTIONS = ["1080", "720", "480", "360", "240"]

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-blink-features=AutomationControlled",
]
VIEWPORT = {"width": 1280, "height": 800}
HIDE_WEBDRIVER_SCRIPT = (
    "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"
)

SCROLL_SETTLE_SECONDS = 2
PLAY_VISIBLE_TIMEOUT_MS = 2_000
PLAY_SETTLE_SECONDS = 3
DEFAULT_TITLE = "Pinterest Video"


class BrowserState(str, Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    NAVIGATING = "navigating"
    OBSERVING = "observing"
    RESOLVING = "resolving"
    CLOSED = "closed"


def is_cdn_video_url(url: str) -> bool:
    return bool(CDN_VIDEO_RE.search(url) and MP4_RE.search(url))


def is_pin_api_url(url: str) -> bool:
    return any(fragment in url for fragment in API_PATH_FRAGMENTS)


def pick_best_captured_url(urls: List[str]) -> Optional[str]:
    """
    Prefer captured MP4s whose path names a higher resolution
    (Pinterest encodes quality in the path, e.g. /720p/); otherwise the longest URL.
    """
    if not urls:
        return None
    for resolution in CAPTURED_RESOLUTIONS:
        for url in urls:
            if resolution in url:
                return url
    return max(urls, key=len)


def first_video_in_payload(payload: Any) -> Optional[str]:
    for video_list in deep_find(payload, "video_list"):
        best = pick_best_video(video_list)
        if best:
            return best.url
    return None


# ── Session (per-extraction browser state) ────────────────────────────────────

@dataclass
class _BrowserSession:
    """
    State of one browser extraction. The observers only ever add to
    `video_urls` (a dict used as an insertion-ordered set) or fill the
    `api_video_url` slot once, so no locking is needed.
    """
    pin_url: str
    state: BrowserState = BrowserState.IDLE
    video_urls: Dict[str, None] = field(default_factory=dict)
    api_video_url: Optional[str] = None

    def transition(self, state: BrowserState) -> None:
        logger.info(f"[browser] {self.state.value} → {state.value}")
        self.state = state

    def add_video_url(self, url: str) -> None:
        self.video_urls.setdefault(url.split("?")[0], None)

    @property
    def empty(self) -> bool:
        return not self.video_urls and not self.api_video_url

    def best_video_url(self) -> Optional[str]:
        return self.api_video_url or pick_best_captured_url(list(self.video_urls))

    # ── Network observers (registered BEFORE page.goto) ───────────────────────

    def on_request(self, request: Any) -> None:
        if is_cdn_video_url(request.url):
            self.add_video_url(request.url)

    async def on_response(self, response: Any) -> None:
        url = response.url
        if is_cdn_video_url(url):
            self.add_video_url(url)
            return

        if self.api_video_url or response.status != 200 or not is_pin_api_url(url):
            return
        try:
            content_type = (response.headers or {}).get("content-type", "")
            if "json" not in content_type:
                return
            payload = await response.json()
        except Exception as e:
            logger.debug(f"[browser] unreadable API response {url[:80]}: {e!r}")
            return

        video_url = first_video_in_payload(payload)
        if video_url and not self.api_video_url:
            self.api_video_url = video_url
            logger.info(f"[browser] video_list captured from API response: {video_url[:80]}")


class PinterestBrowserAgent:
    """Headless Chromium extraction with network observation."""

    def __init__(self, http: Optional[PinterestExtractor] = None):
        # Supplies the HTTP client for the API fast path
        self._http = http or extractor

    # ── Fast path ─────────────────────────────────────────────────────────────

    async def _try_api_fast_path(self, pin_url: str) -> Optional[MediaResult]:
        pin_id = extract_pin_id(pin_url)
        if not pin_id:
            return None
        async with self._http.client() as client:
            result = await fetch_pin_resource(client, pin_id)
        # Only a video result skips the browser
        if result and result.type == MediaType.VIDEO:
            return result
        return None

    # ── Recovery actions ─────────────────────────────────────────────────────

    async def _recover(self, page: Any, session: _BrowserSession) -> None:
        """Escalate until something is captured: scroll, click play, scan HTML."""
        if session.empty:
            try:
                await page.evaluate("window.scrollTo(0, 400)")
            except Exception as e:
                logger.debug(f"[browser] scroll failed: {e!r}")
            await asyncio.sleep(SCROLL_SETTLE_SECONDS)

        if session.empty:
            try:
                play_button = page.locator(PLAY_BUTTON_SELECTOR).first
                await play_button.wait_for(state="visible", timeout=PLAY_VISIBLE_TIMEOUT_MS)
                await play_button.click()
                logger.info("[browser] play button clicked")
                await asyncio.sleep(PLAY_SETTLE_SECONDS)
            except Exception as e:
                logger.debug(f"[browser] no clickable play button: {e!r}")

        if session.empty:
            try:
                html = await page.content()
                for url in HTML_VIDEO_RE.findall(html):
                    session.add_video_url(url)
            except Exception as e:
                logger.debug(f"[browser] rendered HTML scan failed: {e!r}")

    async def _read_page_meta(self, page: Any) -> Tuple[str, Optional[str]]:
        title = DEFAULT_TITLE
        thumbnail = None
        try:
            title = TITLE_SUFFIX_RE.sub("", await page.title()).strip() or title
        except Exception as e:
            logger.debug(f"[browser] title unavailable: {e!r}")
        try:
            og_image = page.locator('meta[property="og:image"]').first
            if await og_image.count():
                thumbnail = await og_image.get_attribute("content")
        except Exception as e:
            logger.debug(f"[browser] og:image unavailable: {e!r}")
        return title, thumbnail

    async def _run_browser(self, session: _BrowserSession) -> Optional[MediaResult]:
        async with async_playwright() as pw:
            session.transition(BrowserState.LAUNCHING)
            browser = await pw.chromium.launch(headless=True, args=LAUNCH_ARGS)
            try:
                ctx = await browser.new_context(
                    user_agent=USER_AGENT,
                    viewport=VIEWPORT,
                    locale="en-US",
                    extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
                )
                # navigator.webdriver is the main automation signal Pinterest checks
                await ctx.add_init_script(HIDE_WEBDRIVER_SCRIPT)
                page = await ctx.new_page()

                session.transition(BrowserState.NAVIGATING)
                # CRITICAL: register BEFORE goto() so early CDN requests are seen
                page.on("request", session.on_request)
                page.on("response", session.on_response)

                session.transition(BrowserState.OBSERVING)
                logger.info(f"[browser] Navigating to {session.pin_url}")
                try:
                    await page.goto(
                        session.pin_url,
                        wait_until="networkidle",
                        timeout=BROWSER_NAV_TIMEOUT * 1000,
                    )
                except PlaywrightTimeoutError:
                    # The wait is only a bound; whatever loaded is still inspected
                    logger.warning(
                        f"[browser] ⚠️ network did not go idle within {BROWSER_NAV_TIMEOUT:.0f}s"
                    )
                except PlaywrightError as e:
                    # DNS / connection failures (net::ERR_*)
                    logger.error(f"[browser] ❌ navigation failed: {e}")
                    raise TransportError(
                        f"Cannot reach Pinterest: {e}",
                        kind=TransportError.UNREACHABLE,
                    ) from e

                session.transition(BrowserState.RESOLVING)
                title, thumbnail = await self._read_page_meta(page)
                await self._recover(page, session)

                video_url = session.best_video_url()
                if video_url:
                    logger.info(f"[browser] ✅ video resolved: {video_url[:80]}")
                    return MediaResult(
                        type=MediaType.VIDEO,
                        media_url=video_url,
                        thumbnail=thumbnail,
                        title=title,
                    )

                if thumbnail:
                    logger.info("[browser] no video captured — returning still image")
                    return MediaResult.still(thumbnail, thumbnail, title)

                logger.warning(f"[browser] ⚠️ nothing captured for {session.pin_url}")
                return None
            finally:
                try:
                    await browser.close()
                except Exception as e:
                    logger.warning(f"[browser] browser close failed: {e!r}")

    # ── Public API ────────────────────────────────────────────────────────────

    async def extract(self, pin_url: str) -> Optional[MediaResult]:
        """
        Extract media for a pin through a real browser session.

        Returns None when neither a video nor a still could be found. The
        browser is always closed before returning, including on errors.
        """
        session = _BrowserSession(pin_url=pin_url)
        try:
            fast = await self._try_api_fast_path(pin_url)
            if fast:
                logger.info(f"[browser] ✅ API fast path returned video: {fast.media_url[:80]}")
                return fast

            if not PLAYWRIGHT_AVAILABLE:
                logger.error("[browser] ❌ playwright not installed — browser extraction unavailable")
                return None

            return await self._run_browser(session)
        finally:
            session.transition(BrowserState.CLOSED)


# Global singleton
browser_agent = PinterestBrowserAgent()
