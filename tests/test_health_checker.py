# tests/test_health_checker.py

"""Tests for the store and vendor health checker."""

import unittest
from typing import Any
from unittest.mock import MagicMock, patch

import mongomock
from pymongo.errors import ServerSelectionTimeoutError

from price_tracker.services.health_checker import (
    HealthChecker,
    HealthResult,
    probe_store,
    probe_vendor,
)

VENDOR = {
    "id": "flipkart",
    "label": "Flipkart",
    "match": "flipkart",
    "homepage": "https://www.flipkart.com/",
    "scraper": "price_tracker.scrapers.flipkart_scraper.FlipkartScraper",
}


class TestProbeVendor(unittest.TestCase):
    """Tests for the per-vendor health probe function."""

    def _mock_scraper(self, status: int) -> MagicMock:
        scraper = MagicMock()
        scraper.settings.DEFAULT_HEADERS = {}
        scraper.session.get.return_value = MagicMock(status_code=status)
        return scraper

    @patch("price_tracker.services.health_checker.importlib")
    def test_ok_status(self, mock_importlib: MagicMock) -> None:
        """A fast 200 response should return 'ok' status."""
        scraper = self._mock_scraper(200)
        mock_importlib.import_module.return_value = MagicMock(
            FlipkartScraper=MagicMock(return_value=scraper),
        )
        result = probe_vendor(VENDOR)
        self.assertEqual(result.status, "ok")
        self.assertEqual(result.source_id, "flipkart")
        scraper.session.get.assert_called_once()
        self.assertEqual(
            scraper.session.get.call_args[0][0], "https://www.flipkart.com/",
        )

    @patch("price_tracker.services.health_checker.importlib")
    def test_down_on_http_error(self, mock_importlib: MagicMock) -> None:
        """A non-200 response should return 'down' status."""
        mock_importlib.import_module.return_value = MagicMock(
            FlipkartScraper=MagicMock(return_value=self._mock_scraper(403)),
        )
        result = probe_vendor(VENDOR)
        self.assertEqual(result.status, "down")
        self.assertIn("403", result.message)

    @patch("price_tracker.services.health_checker.importlib")
    def test_down_on_exception(self, mock_importlib: MagicMock) -> None:
        """A network exception should return 'down' status."""
        scraper = self._mock_scraper(200)
        scraper.session.get.side_effect = ConnectionError("refused")
        mock_importlib.import_module.return_value = MagicMock(
            FlipkartScraper=MagicMock(return_value=scraper),
        )
        result = probe_vendor(VENDOR)
        self.assertEqual(result.status, "down")
        self.assertIn("refused", result.message)

    @patch("price_tracker.services.health_checker.importlib")
    def test_down_on_load_failure(self, mock_importlib: MagicMock) -> None:
        """An unloadable scraper class is reported as down."""
        mock_importlib.import_module.side_effect = ImportError("nope")
        result = probe_vendor(VENDOR)
        self.assertEqual(result.status, "down")
        self.assertIn("Failed to load", result.message)


class TestProbeStore(unittest.TestCase):
    """Tests for the store health probe."""

    def test_ok_reports_product_count(self) -> None:
        """A reachable store is ok and reports its size."""
        client = mongomock.MongoClient(tz_aware=True)
        client["price_tracker"]["alice"].insert_one({"product_url": "u"})

        def factory(uri: str, **kw: Any) -> Any:
            return client

        result = probe_store("alice", "mongodb://localhost", factory)
        self.assertEqual(result.status, "ok")
        self.assertEqual(result.message, "1 products")
        client.drop_database("price_tracker")

    def test_down_when_unreachable(self) -> None:
        """Ping failures are reported as down."""
        client = MagicMock()
        client.admin.command.side_effect = ServerSelectionTimeoutError("x")
        result = probe_store(
            "alice", "mongodb://localhost", lambda uri, **kw: client,
        )
        self.assertEqual(result.status, "down")
        self.assertEqual(result.source_id, "store")


class TestHealthChecker(unittest.IsolatedAsyncioTestCase):
    """HealthChecker.check_all runs every probe."""

    @patch("price_tracker.services.health_checker.probe_vendor")
    @patch("price_tracker.services.health_checker.probe_store")
    async def test_check_all(
        self,
        mock_store: MagicMock,
        mock_vendor: MagicMock,
    ) -> None:
        """One store result plus one result per vendor."""
        mock_store.return_value = HealthResult("store", "ok", 1.0, "")
        mock_vendor.side_effect = lambda v: HealthResult(
            v["id"], "ok", 1.0, "",
        )
        checker = HealthChecker("alice", "mongodb://localhost")
        results = await checker.check_all()
        self.assertEqual(
            [r.source_id for r in results],
            ["store"] + [v["id"] for v in checker.vendors],
        )
        mock_store.assert_called_once_with("alice", "mongodb://localhost")


if __name__ == "__main__":
    unittest.main()
