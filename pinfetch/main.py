"""
FastAPI Pinterest Media Extraction Service
Resolves a Pinterest pin (or pin.it short link) to a direct video/image URL
"""

import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .browser_agent import PLAYWRIGHT_AVAILABLE, browser_agent
from .errors import (
    ExtractionError,
    InvalidURLError,
    RateLimitExceeded,
    Unauthorized,
    UnresolvedMediaError,
)
from .extractor import extractor
from .models import ErrorResponse, ExtractRequest, ExtractResponse, HealthResponse
from .rate_limiter import FixedWindowRateLimiter
from .validators import validate_pinterest_url

# Logging configuration
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

extract_limiter = FixedWindowRateLimiter(config.EXTRACT_RATE_LIMIT, config.RATE_LIMIT_WINDOW_SECONDS)
browser_limiter = FixedWindowRateLimiter(config.BROWSER_RATE_LIMIT, config.RATE_LIMIT_WINDOW_SECONDS)

BROWSER_UNRESOLVED_MESSAGE = (
    "Could not extract media. The pin may be private, deleted, or use an unsupported format."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup/shutdown logging"""
    logger.info("🚀 Starting Pinterest media extraction service...")
    logger.info(f"Version: {config.VERSION} ({config.APP_ENV})")
    logger.info(f"🔑 API key auth: {'enabled' if config.get_api_key() else 'disabled'}")
    logger.info(f"🌐 Browser extraction: {'available' if PLAYWRIGHT_AVAILABLE else 'UNAVAILABLE (playwright missing)'}")
    yield
    logger.info("Shutting down Pinterest media extraction service...")


# Create FastAPI app
app = FastAPI(
    title="Pinterest Media Extraction Service",
    description="Extracts direct video, image and GIF URLs from Pinterest pins",
    version=config.VERSION,
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ============================================================================
# DEPENDENCIES (rate limit → auth, in that order)
# ============================================================================


def client_ip(request: Request) -> str:
    """
    Caller identity for rate limiting.

    Only the last X-Forwarded-For entry is trusted: it is the address the
    fronting proxy saw. Earlier entries are client-supplied.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        last_hop = forwarded.split(",")[-1].strip()
        if last_hop:
            return last_hop
    return request.client.host if request.client else "unknown"


def _rate_limit(limiter: FixedWindowRateLimiter):
    def dependency(request: Request, response: Response) -> None:
        decision = limiter.hit(client_ip(request))
        request.state.rate_limit_headers = decision.headers()
        response.headers.update(decision.headers())
        if not decision.allowed:
            raise RateLimitExceeded(decision.limit, decision.reset_after)
    return dependency


def require_api_key(request: Request) -> None:
    """Bearer-token gate; a no-op when API_KEY is not configured."""
    required_key = config.get_api_key()
    if not required_key:
        return
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme != "Bearer" or token != required_key:
        raise Unauthorized()


def _validated_url(payload: Optional[ExtractRequest]) -> str:
    url, error = validate_pinterest_url(payload.url if payload else None)
    if error:
        raise InvalidURLError(error)
    return url


# ============================================================================
# API ENDPOINTS
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness probe"""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=config.VERSION,
    )


@app.post(
    "/api/extract",
    response_model=ExtractResponse,
    dependencies=[Depends(_rate_limit(extract_limiter)), Depends(require_api_key)],
)
async def extract_media(payload: Optional[ExtractRequest] = Body(None)):
    """
    Static extraction (httpx + BeautifulSoup).

    **Flow:**
    1. Resolve pin.it short links
    2. Fetch the pin page once
    3. Try internal API → redux state → PWS data → relay scripts → meta tags
    """
    url = _validated_url(payload)
    logger.info(f"📥 Extract request: {url}")

    result = await extractor.extract(url)
    return ExtractResponse.from_result(result)


@app.post(
    "/api/extract/browser",
    response_model=ExtractResponse,
    dependencies=[Depends(_rate_limit(browser_limiter)), Depends(require_api_key)],
)
async def extract_media_with_browser(payload: Optional[ExtractRequest] = Body(None)):
    """
    Headless Chromium extraction for video pins whose video loads client-side.
    Slower (5–15 s) and heavier than /api/extract, hence the lower rate limit.
    """
    url = _validated_url(payload)
    logger.info(f"📥 Browser extract request: {url}")

    result = await browser_agent.extract(url)
    if result is None:
        raise UnresolvedMediaError(BROWSER_UNRESOLVED_MESSAGE)
    return ExtractResponse.from_result(result)


@app.get("/api/strategies")
async def list_strategies():
    """List the static extraction strategies in the order they are tried."""
    strategies = extractor.build_strategy_list()
    return {
        "total": len(strategies),
        "strategies": [
            {"num": i + 1, "name": name, "kind": kind}
            for i, (name, kind, _) in enumerate(strategies)
        ],
    }


@app.get("/")
async def root():
    """Root endpoint with service info"""
    return {
        "service": "Pinterest Media Extraction Service",
        "version": config.VERSION,
        "status": "running",
        "endpoints": {
            "extract": "/api/extract",
            "browser": "/api/extract/browser",
            "strategies": "/api/strategies",
            "health": "/health",
        },
        "docs": "/docs",
    }


# ============================================================================
# ERROR HANDLERS
# ============================================================================


def _error_response(request: Request, status_code: int, body: ErrorResponse) -> JSONResponse:
    headers = getattr(request.state, "rate_limit_headers", None)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError):
    """Typed errors carry their own HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} → {exc.status_code}: {exc.message}")
    else:
        logger.warning(f"⚠️ {request.method} {request.url.path} → {exc.status_code}: {exc.message}")

    body = ErrorResponse(error=exc.message)
    if isinstance(exc, RateLimitExceeded):
        body.retryAfter = exc.retry_after
    return _error_response(request, exc.status_code, body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed JSON bodies are reported like any other bad input"""
    return _error_response(
        request, 400, ErrorResponse(error="Request body must be JSON with a \"url\" field.")
    )


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Custom 404 handler"""
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(error="Endpoint not found.").model_dump(exclude_none=True),
    )


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    """Anything untyped becomes a generic 500"""
    logger.exception(f"💥 Unexpected error on {request.method} {request.url.path}: {exc}")
    body = ErrorResponse(error="An unexpected error occurred. Please try again later.")
    if not config.is_production():
        body.detail = str(exc)
    return _error_response(request, 500, body)


def run() -> None:
    """Console entry point"""
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
