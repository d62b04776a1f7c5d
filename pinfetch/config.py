"""
Service configuration read from environment variables
"""

import os
from typing import List, Optional

VERSION = "1.0.0"

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# CORS: comma-separated origins, "*" allows any
ALLOWED_ORIGINS: List[str] = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()
]

# Fixed-window rate limits (requests per window, per client IP)
EXTRACT_RATE_LIMIT = int(os.getenv("EXTRACT_RATE_LIMIT", "30"))
BROWSER_RATE_LIMIT = int(os.getenv("BROWSER_RATE_LIMIT", "5"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# Network timeouts (seconds)
SHORT_LINK_TIMEOUT = float(os.getenv("SHORT_LINK_TIMEOUT", "15"))
PAGE_TIMEOUT = float(os.getenv("PAGE_TIMEOUT", "20"))
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "15"))
BROWSER_NAV_TIMEOUT = float(os.getenv("BROWSER_NAV_TIMEOUT", "30"))
MAX_REDIRECTS = 10

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

# Pinterest rejects bare HTTP clients; mimic a desktop Chrome navigation
BROWSER_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "max-age=0",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Sec-CH-UA": '"Chromium";v="124", "Google Chrome";v="124", "Not-A.Brand";v="99"',
    "Sec-CH-UA-Mobile": "?0",
    "Sec-CH-UA-Platform": '"Windows"',
}


def get_api_key() -> Optional[str]:
    """Bearer token required by the extraction routes, read per request."""
    return os.getenv("API_KEY") or None


def is_production() -> bool:
    return APP_ENV == "production"
