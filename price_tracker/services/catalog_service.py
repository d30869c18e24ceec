# price_tracker/services/catalog_service.py

"""Catalog operations: history-preserving upserts, price refresh, repair."""

import importlib
import logging
import math
import threading
from collections.abc import Iterator
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from price_tracker.config.settings import Settings
from price_tracker.errors import (
    CatalogError,
    OperationCancelled,
    PriceParseError,
    ProductNotFoundError,
    ScrapeError,
    UnsupportedVendorError,
    WriteError,
)
from price_tracker.models.price import Price, as_utc, utcnow
from price_tracker.models.product import Product
from price_tracker.storage.catalog_store import CatalogStore

logger = logging.getLogger("price_tracker.catalog")

# Guarded price writes retried before giving up on a contended product
_RECORD_ATTEMPTS = 5


class ScraperGateway(Protocol):
    """What the catalog needs from a vendor scraper."""

    def scrape_price(self, url: str) -> str: ...

    def scrape_product_details(self, url: str) -> Product: ...


@dataclass
class ItemOutcome:
    """Result of processing one product during a pass."""

    product_url: str
    success: bool
    price: float | None = None
    reason: str | None = None


@dataclass
class PassSummary:
    """Counts and per-item outcomes of a refresh or repair pass."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: list[ItemOutcome] = field(
        default_factory=lambda: list[ItemOutcome]()
    )

    def add_result(self, result: ItemOutcome) -> None:
        """Record one item's outcome."""
        self.total += 1
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1
        self.results.append(result)


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def build_vendor_table(
    vendors: list[dict[str, str]] | None = None,
) -> dict[str, ScraperGateway]:
    """Instantiate one scraper per configured vendor, keyed by substring."""
    table: dict[str, ScraperGateway] = {}
    for vendor in vendors or Settings.VENDORS:
        scraper_cls = _load_scraper_class(vendor["scraper"])
        table[vendor["match"]] = scraper_cls()
    return table


def parse_price(text: str) -> float:
    """Parse a scraped price string as a non-negative decimal.

    Raises:
        PriceParseError: empty, non-numeric, non-finite or negative.
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise PriceParseError(f"Invalid price {text!r}") from exc
    if not value.is_finite():
        raise PriceParseError(f"Non-finite price {text!r}")
    if value < 0:
        raise PriceParseError(f"Negative price {text!r}")
    result = float(value)
    if not math.isfinite(result):
        raise PriceParseError(f"Price out of range {text!r}")
    return result


def next_aggregates(
    min_price: float | None,
    max_price: float | None,
    current: float,
) -> tuple[float, float]:
    """Fold *current* into the running min/max.

    ``None`` or ``0`` means nothing has been observed yet.
    """
    if not min_price or current < min_price:
        min_price = current
    if not max_price or current > max_price:
        max_price = current
    return min_price, max_price


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled("Operation cancelled")


def _single(product: Product) -> Iterator[Product]:
    yield product


class CatalogService:
    """Stateless operations over one user's catalog store.

    Vendor scrapers are selected by substring match on the product URL,
    in the order of the vendor table.
    """

    def __init__(
        self,
        store: CatalogStore,
        vendors: dict[str, ScraperGateway] | None = None,
    ) -> None:
        self._store = store
        self._vendors = vendors

    @property
    def vendors(self) -> dict[str, ScraperGateway]:
        """Substring to scraper mapping; built from settings on first use."""
        if self._vendors is None:
            self._vendors = build_vendor_table()
        return self._vendors

    def select_scraper(self, product_url: str) -> ScraperGateway:
        """Return the scraper whose substring occurs in *product_url*."""
        for substring, scraper in self.vendors.items():
            if substring in product_url:
                return scraper
        raise UnsupportedVendorError(product_url)

    # ── Lookup / ingest ──────────────────────────────────

    def get_product(self, product_url: str) -> Product:
        """Return the stored product or raise ProductNotFoundError."""
        product = self._store.find_by_url(product_url)
        if product is None:
            raise ProductNotFoundError(product_url)
        return product

    def upsert_product(self, product: Product) -> Product:
        """Store *product*, keeping any existing price data.

        When the URL is already tracked, the incoming price history and
        aggregates are replaced by the stored ones before writing.
        Returns the product as written.
        """
        existing = self._store.find_by_url(product.product_url)
        if existing is not None:
            product.price_history = existing.price_history
            product.min_price = existing.min_price
            product.max_price = existing.max_price
            logger.debug(
                "Preserving %d prices for %s",
                len(existing.price_history),
                product.product_url,
            )
        self._store.upsert(product)
        logger.info(
            "%s product %s",
            "Updated" if existing is not None else "Added",
            product.product_url,
        )
        return product

    def add_price(
        self,
        product_url: str,
        value: float,
        timestamp: datetime | None = None,
    ) -> Product:
        """Append a price to a stored product and update its min/max.

        Raises:
            ProductNotFoundError: the URL is not tracked.
            PriceParseError: *value* is negative or not finite.
            ValueError: *timestamp* precedes the latest stored price.

        A naive *timestamp* is taken to be UTC.
        """
        current = parse_price(str(value))
        product = self.get_product(product_url)
        when = as_utc(timestamp) if timestamp is not None else utcnow()
        latest = product.latest_price
        if latest is not None and when < latest.timestamp:
            raise ValueError(
                f"Timestamp {when.isoformat()} precedes latest price "
                f"at {latest.timestamp.isoformat()}"
            )
        return self._record(product, current, when, stored=product)

    # ── Refresh pipeline ─────────────────────────────────

    def refresh_product(
        self,
        product: Product,
        cancel_event: threading.Event | None = None,
    ) -> float:
        """Scrape, parse and record the current price of one product.

        Every failure is raised to the caller.  Returns the new price.
        """
        scraper = self.select_scraper(product.product_url)
        try:
            raw = scraper.scrape_price(product.product_url)
        except ScrapeError:
            raise
        except Exception as exc:
            raise ScrapeError(
                f"Price scrape failed for {product.product_url}: {exc}"
            ) from exc
        current = parse_price(raw)
        _check_cancelled(cancel_event)
        self._record(product, current, utcnow())
        return current

    def refresh_prices(
        self,
        product: Product | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PassSummary:
        """Refresh one product, or every product in the catalog.

        Per-item failures are logged and recorded in the summary; the
        pass continues with the next product.

        Raises:
            OperationCancelled: *cancel_event* was set.
            StoreError: the scan itself failed.
        """
        summary = PassSummary()
        targets = (
            _single(product) if product is not None
            else self._store.scan()
        )
        with closing(targets):
            for item in targets:
                _check_cancelled(cancel_event)
                try:
                    price = self.refresh_product(item, cancel_event)
                except OperationCancelled:
                    raise
                except CatalogError as exc:
                    logger.warning(
                        "Skipping price refresh for %s: %s",
                        item.product_url,
                        exc,
                    )
                    summary.add_result(ItemOutcome(
                        product_url=item.product_url,
                        success=False,
                        reason=str(exc),
                    ))
                    continue
                logger.info(
                    "Updated price for %s: %.2f",
                    item.product_name or item.product_url,
                    price,
                )
                summary.add_result(ItemOutcome(
                    product_url=item.product_url,
                    success=True,
                    price=price,
                ))

        logger.info(
            "Price refresh on %s: %d updated, %d skipped",
            self._store.name,
            summary.succeeded,
            summary.failed,
        )
        return summary

    # ── Repair pass ──────────────────────────────────────

    def repair_product(self, product: Product) -> Product:
        """Re-scrape descriptive fields for one product and upsert them."""
        scraper = self.select_scraper(product.product_url)
        try:
            details = scraper.scrape_product_details(product.product_url)
        except ScrapeError:
            raise
        except Exception as exc:
            raise ScrapeError(
                f"Details scrape failed for {product.product_url}: {exc}"
            ) from exc
        # Keep the catalog key even if the page reports another URL
        details.product_url = product.product_url
        return self.upsert_product(details)

    def repair_incomplete(
        self,
        cancel_event: threading.Event | None = None,
    ) -> PassSummary:
        """Re-scrape every product missing a name, image or specs."""
        summary = PassSummary()
        with closing(self._store.scan_incomplete()) as targets:
            for item in targets:
                _check_cancelled(cancel_event)
                try:
                    repaired = self.repair_product(item)
                except CatalogError as exc:
                    logger.warning(
                        "Skipping repair of %s: %s",
                        item.product_url,
                        exc,
                    )
                    summary.add_result(ItemOutcome(
                        product_url=item.product_url,
                        success=False,
                        reason=str(exc),
                    ))
                    continue
                if not repaired.is_complete:
                    logger.info(
                        "Product %s is still incomplete after repair",
                        item.product_url,
                    )
                summary.add_result(ItemOutcome(
                    product_url=item.product_url, success=True,
                ))

        logger.info(
            "Repair pass on %s: %d repaired, %d skipped",
            self._store.name,
            summary.succeeded,
            summary.failed,
        )
        return summary

    def _record(
        self,
        product: Product,
        current: float,
        when: datetime,
        stored: Product | None = None,
    ) -> Product:
        """Append *current* and fold it into the stored min/max.

        Aggregates are computed from the stored document, never from the
        caller's copy, and the write only lands while those aggregates
        are unchanged.  A lost race re-reads and tries again.
        """
        url = product.product_url
        price = Price(value=current, timestamp=when)
        for _ in range(_RECORD_ATTEMPTS):
            if stored is None:
                stored = self.get_product(url)
            expected = (stored.min_price, stored.max_price)
            min_price, max_price = next_aggregates(*expected, current)
            if self._store.record_price(
                url, price, min_price, max_price, expected=expected,
            ):
                break
            stored = None
        else:
            raise WriteError(
                f"Aggregates of {url} kept changing, price not recorded"
            )
        product.price_history = [*stored.price_history, price]
        product.min_price = min_price
        product.max_price = max_price
        return product
