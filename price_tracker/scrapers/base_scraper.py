# price_tracker/scrapers/base_scraper.py

"""Abstract base class for vendor product-page scrapers."""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup, Tag
from curl_cffi import requests as curl_requests

from price_tracker.config.settings import Settings
from price_tracker.errors import ScrapeError
from price_tracker.models.product import Product


class BaseScraper(ABC):
    """Fetches a single product page and extracts price or details."""

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"price_tracker.{source_name}"
        )
        self.settings = Settings()
        self.selectors: dict[str, str] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._consecutive_failures: int = 0
        self._circuit_open: bool = False
        self._circuit_opened_at: float = 0.0
        self._request_timeout: int = (
            self.settings.REQUEST_TIMEOUT
        )

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for this source from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(
            self.source_name, {}
        )
        return result

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def _validate_response(
        self, resp: curl_requests.Response,
    ) -> bool:
        """Check for Cloudflare challenge pages and CAPTCHA indicators."""
        lower = resp.text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Cloudflare challenge detected "
                    "(marker: '%s')",
                    self.source_name,
                    marker,
                )
                return False

        # Real product pages are large; only scan short pages for
        # CAPTCHA wording to avoid false positives in reviews
        has_body_content = (
            "<body" in lower and len(resp.text) > 5000
        )
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "[%s] CAPTCHA keyword '%s' detected",
                        self.source_name,
                        keyword,
                    )
                    return False
        return True

    def _check_circuit(self) -> bool:
        """Return True if the circuit breaker blocks this request.

        After CIRCUIT_BREAKER_COOLDOWN seconds the breaker enters
        a half-open state, allowing a single probe request through.
        """
        if not self._circuit_open:
            return False
        elapsed = time.time() - self._circuit_opened_at
        if elapsed >= self.settings.CIRCUIT_BREAKER_COOLDOWN:
            self.logger.info(
                "[%s] Circuit breaker half-open after %.0fs",
                self.source_name,
                elapsed,
            )
            self._circuit_open = False
            return False
        return True

    def _record_success(self) -> None:
        """Reset failure counters after a successful fetch."""
        self._consecutive_failures = 0
        self._circuit_open = False
        self._circuit_opened_at = 0.0

    def _record_failure(self) -> None:
        """Track failure and open circuit breaker if needed."""
        self._consecutive_failures += 1
        threshold = self.settings.CIRCUIT_BREAKER_THRESHOLD
        if self._consecutive_failures >= threshold:
            self._circuit_open = True
            self._circuit_opened_at = time.time()
            self.logger.error(
                "[%s] Circuit breaker opened after %d "
                "consecutive failures",
                self.source_name,
                self._consecutive_failures,
            )

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
    ) -> curl_requests.Response | None:
        """GET with retries and linear backoff."""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=self._request_timeout,
                )
                if resp.status_code == 200:
                    if self._validate_response(resp):
                        return resp
                else:
                    self.logger.warning(
                        "[%s] HTTP %d on attempt %d",
                        self.source_name,
                        resp.status_code,
                        attempt + 1,
                    )
                    if resp.status_code == 404:
                        return None
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_name,
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
            time.sleep(
                self.settings.RETRY_BACKOFF * (attempt + 1)
            )
        return None

    def _get_page(self, url: str) -> BeautifulSoup:
        """Fetch a product page, falling back to cloudscraper.

        Raises:
            ScrapeError: the circuit is open or every attempt failed.
        """
        if self._check_circuit():
            raise ScrapeError(
                f"[{self.source_name}] circuit open, skipping {url}"
            )
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(),
        }

        # Primary: curl_cffi (browser-impersonating TLS)
        resp = self._fetch_get(url, headers)
        if resp is not None:
            self._record_success()
            return BeautifulSoup(resp.text, "lxml")

        # Fallback: cloudscraper (JS challenge solver)
        self.logger.info(
            "[%s] curl_cffi exhausted, falling back to cloudscraper",
            self.source_name,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback_resp: Any = scraper.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
            if fallback_resp.status_code == 200:
                self._record_success()
                return BeautifulSoup(
                    str(fallback_resp.text), "lxml"
                )
            reason = f"HTTP {fallback_resp.status_code}"
        except Exception as e:
            self.logger.error(
                "[%s] cloudscraper fallback also failed: %s",
                self.source_name,
                e,
                exc_info=True,
            )
            reason = str(e)

        self._record_failure()
        raise ScrapeError(
            f"[{self.source_name}] failed to fetch {url}: {reason}"
        )

    def _select_text(
        self, soup: BeautifulSoup, key: str,
    ) -> str:
        """Text of the first element matching selector *key*, or ''."""
        selector = self.selectors.get(key, "")
        if not selector:
            return ""
        el = soup.select_one(selector)
        return " ".join(el.get_text(" ", strip=True).split()) if el else ""

    def _select_all_text(
        self, soup: BeautifulSoup, key: str,
    ) -> list[str]:
        """Non-empty, de-duplicated texts of all matches for *key*."""
        selector = self.selectors.get(key, "")
        if not selector:
            return []
        seen: set[str] = set()
        texts: list[str] = []
        for el in soup.select(selector):
            text = " ".join(el.get_text(" ", strip=True).split())
            if text and text not in seen:
                seen.add(text)
                texts.append(text)
        return texts

    def _select_image(self, soup: BeautifulSoup) -> str:
        """Best image URL from the first matching ``img`` element."""
        selector = self.selectors.get("image", "")
        el = soup.select_one(selector) if selector else None
        if not isinstance(el, Tag):
            return ""
        for attr in ("data-old-hires", "src", "data-src"):
            value = el.get(attr)
            if isinstance(value, str) and value.startswith("http"):
                return value
        return ""

    @staticmethod
    def extract_price(text: str | None) -> str:
        """Extract a decimal string from text like '₹1,29,999.00'.

        Returns an empty string when no number is present.
        """
        if not text:
            return ""
        cleaned = text.replace(",", "")
        numbers = re.findall(r"\d+(?:\.\d+)?", cleaned)
        return numbers[0] if numbers else ""

    def scrape_price(self, url: str) -> str:
        """Return the current price on *url* as a decimal string."""
        soup = self._get_page(url)
        raw = self._select_text(soup, "price")
        price = self.extract_price(raw)
        if not price:
            raise ScrapeError(
                f"[{self.source_name}] price not found on {url}"
            )
        self.logger.info(
            "[%s] Scraped price %s for %s",
            self.source_name,
            price,
            url,
        )
        return price

    def scrape_product_details(self, url: str) -> Product:
        """Return name, image and specifications for *url*.

        The returned product carries no price history.
        """
        soup = self._get_page(url)
        product = Product(
            product_url=url,
            product_name=self._select_text(soup, "product_name"),
            image_url=self._select_image(soup),
            specifications=self._select_all_text(
                soup, "specifications"
            ),
        )
        if not product.product_name:
            raise ScrapeError(
                f"[{self.source_name}] product name not found on {url}"
            )
        self.logger.info(
            "[%s] Scraped details for %s (%d specs)",
            self.source_name,
            url,
            len(product.specifications),
        )
        return product

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...
