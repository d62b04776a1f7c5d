"""
Pinterest media extractor using multiple strategies with ordered fallback.

Pipeline for one URL:
  1. pin.it short links are resolved by following redirects (fatal on failure);
     a landing pin page is kept as the page fetch
  2. The canonical pin page is fetched once; HTML and session cookies are kept
  3. The pin id is read from the canonical URL
  4. Strategies run in priority order until one returns a result:
       1. internal-api    — PinResource XHR (needs pin id + session cookie)
       2. redux-state     — `initialReduxState` inline JSON (current layout)
       3. pws-data        — `__PWS_DATA__` blobs (legacy layout)
       4. relay-response  — relay query response scripts
       5. meta-tags       — Open Graph / Twitter Card tags

Nothing is retried and nothing is cached; every call is independent.
"""

import logging
from typing import Callable, List, Optional, Tuple

import httpx

from .config import BROWSER_HEADERS, MAX_REDIRECTS, PAGE_TIMEOUT, SHORT_LINK_TIMEOUT
from .errors import ResolutionError, TransportError, UnresolvedMediaError, UpstreamStatusError
from .models import MediaResult
from .strategies import (
    PageContext,
    RawPage,
    extract_from_meta_tags,
    extract_from_pws_data,
    extract_from_redux_state,
    extract_from_relay_response,
    fetch_pin_resource,
)
from .validators import extract_pin_id, is_short_link

logger = logging.getLogger(__name__)

# Strategy kinds decide which page artifacts a strategy receives
KIND_API = "api"          # (client, pin_id, cookies), async
KIND_SOUP = "soup"        # (soup)
KIND_MARKUP = "markup"    # (soup, raw_html)

StrategyEntry = Tuple[str, str, Callable]


class PinterestExtractor:
    """Multi-strategy Pinterest extractor with ordered fallback."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # Injected by tests; None means the real network
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        """A fresh HTTP client carrying browser-like headers."""
        return httpx.AsyncClient(
            headers=BROWSER_HEADERS,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            timeout=PAGE_TIMEOUT,
            transport=self._transport,
        )

    # =========================================================================
    # STRATEGY CONFIGURATION
    # =========================================================================

    def build_strategy_list(self) -> List[StrategyEntry]:
        """Ordered (name, kind, callable) entries, highest priority first."""
        return [
            ("internal-api", KIND_API, fetch_pin_resource),
            ("redux-state", KIND_SOUP, extract_from_redux_state),
            ("pws-data", KIND_SOUP, extract_from_pws_data),
            ("relay-response", KIND_SOUP, extract_from_relay_response),
            ("meta-tags", KIND_MARKUP, extract_from_meta_tags),
        ]

    # =========================================================================
    # NETWORK STEPS
    # =========================================================================

    async def resolve_short_url(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """Follow a pin.it redirect chain; returns the landing response."""
        try:
            resp = await client.get(url, timeout=SHORT_LINK_TIMEOUT)
        except httpx.HTTPError as e:
            raise ResolutionError(f"Unable to resolve short URL ({url}): {e}") from e

        if resp.status_code >= 400:
            raise ResolutionError(
                f"Unable to resolve short URL ({url}): HTTP {resp.status_code}"
            )
        return resp

    @staticmethod
    def _raw_page(client: httpx.AsyncClient, resp: httpx.Response) -> RawPage:
        cookies = "; ".join(f"{cookie.name}={cookie.value}" for cookie in client.cookies.jar)
        return RawPage(url=str(resp.url), html=resp.text, cookies=cookies)

    async def fetch_page(self, client: httpx.AsyncClient, url: str) -> RawPage:
        """GET the pin page once, keeping the HTML and the session cookies."""
        try:
            resp = await client.get(url, timeout=PAGE_TIMEOUT)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamStatusError(e.response.status_code) from e
        except httpx.TimeoutException as e:
            raise TransportError(
                "The request to Pinterest timed out. Please try again.",
                kind=TransportError.TIMEOUT,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"Cannot reach Pinterest: {e}",
                kind=TransportError.UNREACHABLE,
            ) from e

        return self._raw_page(client, resp)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def _run_strategy(
        self,
        kind: str,
        strategy: Callable,
        ctx: PageContext,
        client: httpx.AsyncClient,
    ) -> Optional[MediaResult]:
        if kind == KIND_API:
            return await strategy(client, ctx.pin_id, ctx.page.cookies)
        if kind == KIND_MARKUP:
            return strategy(ctx.soup, ctx.page.html)
        return strategy(ctx.soup)

    async def extract(self, url: str) -> MediaResult:
        """
        Extract the best media URL for a pin.

        Raises ResolutionError, TransportError or UpstreamStatusError for
        network problems and UnresolvedMediaError when every strategy fails.
        """
        async with self.client() as client:
            canonical_url = url
            page = None
            if is_short_link(url):
                landing = await self.resolve_short_url(client, url)
                canonical_url = str(landing.url)
                logger.info(f"🔗 Short link resolved: {url} → {canonical_url}")
                # The redirect chain already downloaded the pin page
                if landing.is_success and extract_pin_id(canonical_url):
                    page = self._raw_page(client, landing)

            if page is None:
                page = await self.fetch_page(client, canonical_url)
            ctx = PageContext.from_page(page, extract_pin_id(canonical_url))

            strategies = self.build_strategy_list()
            total = len(strategies)
            logger.info(f"🚀 Extracting with {total} strategies: {canonical_url} (pin_id={ctx.pin_id})")

            for idx, (name, kind, strategy) in enumerate(strategies, 1):
                if kind == KIND_API and not ctx.pin_id:
                    logger.info(f"⏭️ Strategy {idx}/{total} ({name}) skipped: no pin id in URL")
                    continue

                try:
                    result = await self._run_strategy(kind, strategy, ctx, client)
                except Exception as e:
                    logger.warning(f"⚠️ Strategy {idx}/{total} ({name}) raised: {e!r}")
                    continue

                if result:
                    logger.info(
                        f"✅ Strategy {idx}/{total} ({name}) succeeded: {result.type.value} {result.media_url}"
                    )
                    return result

                logger.info(f"Strategy {idx}/{total} ({name}) found nothing")

        logger.error(f"❌ All {total} strategies failed for {url}")
        raise UnresolvedMediaError()


# Global singleton
extractor = PinterestExtractor()
