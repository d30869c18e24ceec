# price_tracker/errors.py

"""Exception hierarchy for the catalog store and refresh engine."""


class CatalogError(Exception):
    """Base class for every error raised by price_tracker."""


class ConfigurationError(CatalogError):
    """Raised when required configuration (e.g. MONGO_URI) is missing."""


class StoreError(CatalogError):
    """Raised when the backing store fails to serve a request."""


class ConnectivityError(StoreError):
    """Store unreachable, authentication failure or index creation failure."""


class DecodeError(StoreError):
    """A stored document cannot be turned into a Product."""


class WriteError(StoreError):
    """The store rejected a write (uniqueness violation, transport)."""


class ProductNotFoundError(CatalogError):
    """No product with the requested URL exists in the user's catalog."""

    def __init__(self, product_url: str) -> None:
        super().__init__(f"Product not found: {product_url}")
        self.product_url = product_url


class ScrapeError(CatalogError):
    """A scraper failed (network, HTTP status or missing selector)."""


class PriceParseError(CatalogError):
    """A scraped price string is not a valid non-negative decimal."""


class UnsupportedVendorError(CatalogError):
    """The product URL matches no known vendor."""

    def __init__(self, product_url: str) -> None:
        super().__init__(f"Unsupported vendor for URL: {product_url}")
        self.product_url = product_url


class OperationCancelled(CatalogError):
    """A pass observed its cancellation signal and stopped."""
