# price_tracker/scrapers/amazon_scraper.py

"""Scraper for Amazon product pages."""

import json
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from price_tracker.scrapers.base_scraper import BaseScraper


class AmazonScraper(BaseScraper):
    """Scraper for Amazon product pages."""

    def __init__(self) -> None:
        super().__init__("amazon")
        self._homepage = "https://www.amazon.in/"

    def _get_homepage(self) -> str:
        """Return the Amazon homepage URL."""
        return self._homepage

    def _get_page(self, url: str) -> BeautifulSoup:
        """Fetch with the Referer set to the product's own storefront."""
        parsed = urlparse(url)
        if parsed.scheme and parsed.netloc:
            self._homepage = f"{parsed.scheme}://{parsed.netloc}/"
        return super()._get_page(url)

    def _select_image(self, soup: BeautifulSoup) -> str:
        """Prefer the largest entry of ``data-a-dynamic-image``."""
        el = soup.select_one(self.selectors.get("image", ""))
        if isinstance(el, Tag):
            dynamic = el.get("data-a-dynamic-image")
            if isinstance(dynamic, str) and dynamic:
                try:
                    sizes: dict[str, list[int]] = json.loads(dynamic)
                except json.JSONDecodeError:
                    sizes = {}
                if sizes:
                    return max(
                        sizes,
                        key=lambda k: sizes[k][0] * sizes[k][1]
                        if len(sizes[k]) == 2 else 0,
                    )
        return super()._select_image(soup)
