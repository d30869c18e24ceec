# price_tracker/scrapers/flipkart_scraper.py

"""Scraper for flipkart.com product pages."""

from bs4 import BeautifulSoup

from price_tracker.scrapers.base_scraper import BaseScraper


class FlipkartScraper(BaseScraper):
    """Scraper for flipkart.com product pages."""

    def __init__(self) -> None:
        super().__init__("flipkart")

    def _get_homepage(self) -> str:
        """Return the Flipkart homepage URL."""
        return "https://www.flipkart.com/"

    def _select_all_text(
        self, soup: BeautifulSoup, key: str,
    ) -> list[str]:
        """Render specification table rows as ``label: value``."""
        if key != "specifications":
            return super()._select_all_text(soup, key)
        specs: list[str] = []
        for el in soup.select(self.selectors.get(key, "")):
            cells = [
                c.get_text(" ", strip=True)
                for c in el.find_all("td")
            ]
            cells = [c for c in cells if c]
            if len(cells) >= 2:
                text = f"{cells[0]}: {', '.join(cells[1:])}"
            else:
                text = " ".join(el.get_text(" ", strip=True).split())
            if text and text not in specs:
                specs.append(text)
        return specs
