# tests/test_flipkart_scraper.py

"""Tests for the Flipkart scraper using mocked HTTP responses."""

import unittest
from unittest.mock import MagicMock, patch

from price_tracker.errors import ScrapeError
from price_tracker.scrapers.flipkart_scraper import FlipkartScraper

PRODUCT_URL = (
    "https://www.flipkart.com/apple-iphone-15-black-128-gb/p/itm6ac6485515ae4"
)

FLIPKART_PAGE = """
<html><body>
<h1 class="_6EBuvT"><span class="VU-ZEz">Apple iPhone 15 (Black, 128 GB)</span></h1>
<div class="Nx9bqj CxhGGd">₹65,999</div>
<div class="yRaY8j A6+E6v">₹79,900</div>
<img class="DByuf4 IZexXJ jLEJ7H"
     src="https://rukminim2.flixcart.com/image/416/416/iphone.jpeg">
<table class="_0ZhAN9">
  <tr><td class="+fFi1w">Model Name</td><td><ul><li>iPhone 15</li></ul></td></tr>
  <tr><td class="+fFi1w">Color</td><td><ul><li>Black</li></ul></td></tr>
</table>
</body></html>
"""


def _mock_session(text: str = FLIPKART_PAGE, status: int = 200) -> MagicMock:
    session = MagicMock()
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    session.get.return_value = resp
    return session


@patch("price_tracker.scrapers.base_scraper.curl_requests.Session")
class TestFlipkartScraper(unittest.TestCase):
    """FlipkartScraper parsing of a product page."""

    def test_scrape_price(self, _mock_session_cls: MagicMock) -> None:
        """The selling price, not the MRP, is returned."""
        scraper = FlipkartScraper()
        scraper.session = _mock_session()
        self.assertEqual(scraper.scrape_price(PRODUCT_URL), "65999")

    def test_details(self, _mock_session_cls: MagicMock) -> None:
        """Name, image and spec table rows are extracted."""
        scraper = FlipkartScraper()
        scraper.session = _mock_session()
        product = scraper.scrape_product_details(PRODUCT_URL)
        self.assertEqual(
            product.product_name, "Apple iPhone 15 (Black, 128 GB)",
        )
        self.assertEqual(
            product.image_url,
            "https://rukminim2.flixcart.com/image/416/416/iphone.jpeg",
        )
        self.assertEqual(
            product.specifications,
            ["Model Name: iPhone 15", "Color: Black"],
        )

    @patch("price_tracker.scrapers.base_scraper.cloudscraper")
    def test_not_found_page(
        self,
        mock_cloudscraper: MagicMock,
        _mock_session_cls: MagicMock,
    ) -> None:
        """A 404 product page is a scrape error."""
        mock_cloudscraper.create_scraper.return_value.get.return_value = (
            MagicMock(status_code=404)
        )
        scraper = FlipkartScraper()
        scraper.session = _mock_session("gone", status=404)
        with self.assertRaises(ScrapeError):
            scraper.scrape_price(PRODUCT_URL)
        self.assertEqual(scraper.session.get.call_count, 1)


if __name__ == "__main__":
    unittest.main()
