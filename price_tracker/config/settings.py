# price_tracker/config/settings.py

"""Central configuration for the price_tracker engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the price_tracker engine."""

    # --- Store ---
    MONGO_URI: str = os.getenv("MONGO_URI", "")
    DATABASE_NAME: str = "price_tracker"
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    MONGO_CONNECT_TIMEOUT_MS: int = 5000
    MONGO_SOCKET_TIMEOUT_MS: int = 20000
    DEFAULT_USER: str = os.getenv("PRICE_TRACKER_USER", "")

    # --- Scraping ---
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    RETRY_BACKOFF: float = 1.5          # Seconds, multiplied by attempt number

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 120.0
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
        "enter the characters you see below",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-IN,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "price_tracker" / "config" / "selectors.json"
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Vendors (URL substring -> scraper), checked in order ---
    VENDORS: list[dict[str, str]] = [
        {
            "id": "flipkart",
            "label": "Flipkart",
            "match": "flipkart",
            "homepage": "https://www.flipkart.com/",
            "scraper": (
                "price_tracker.scrapers.flipkart_scraper.FlipkartScraper"
            ),
        },
        {
            "id": "amazon",
            "label": "Amazon",
            "match": "amazon",
            "homepage": "https://www.amazon.in/",
            "scraper": (
                "price_tracker.scrapers.amazon_scraper.AmazonScraper"
            ),
        },
    ]

    @classmethod
    def mongo_client_options(cls) -> dict[str, object]:
        """Keyword arguments passed to ``MongoClient``."""
        return {
            "serverSelectionTimeoutMS": (
                cls.MONGO_SERVER_SELECTION_TIMEOUT_MS
            ),
            "connectTimeoutMS": cls.MONGO_CONNECT_TIMEOUT_MS,
            "socketTimeoutMS": cls.MONGO_SOCKET_TIMEOUT_MS,
            "tz_aware": True,
        }
