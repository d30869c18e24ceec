# price_tracker/storage/catalog_store.py

"""MongoDB-backed catalog of tracked products for a single user."""

import logging
from collections.abc import Iterator
from typing import Any

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from price_tracker.errors import (
    ConnectivityError,
    DecodeError,
    ProductNotFoundError,
    StoreError,
    WriteError,
)
from price_tracker.models.price import Price
from price_tracker.models.product import Product, encode_aggregate

logger = logging.getLogger("price_tracker.store")

URL_INDEX_NAME = "product_url_unique"

# Matches any product failing the completeness check
INCOMPLETE_FILTER: dict[str, Any] = {
    "$or": [
        {"product_name": ""},
        {"product_name": {"$exists": False}},
        {"image_url": ""},
        {"image_url": {"$exists": False}},
        {"specifications": {"$size": 0}},
        {"specifications": {"$exists": False}},
    ],
}


class CatalogStore:
    """Point lookups, upserts and scans over one user's collection."""

    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    @property
    def name(self) -> str:
        """Collection name, i.e. the user identifier."""
        return self._collection.name

    def ensure_indexes(self) -> None:
        """Create the unique ``product_url`` index if it is missing."""
        try:
            self._collection.create_index(
                [("product_url", ASCENDING)],
                unique=True,
                name=URL_INDEX_NAME,
            )
        except PyMongoError as exc:
            raise ConnectivityError(
                f"Failed to create product_url index on "
                f"{self.name}: {exc}"
            ) from exc

    # ── Reads ────────────────────────────────────────────

    def find_by_url(self, product_url: str) -> Product | None:
        """Return the stored product, or ``None`` when absent."""
        try:
            doc = self._collection.find_one(
                {"product_url": product_url}
            )
        except PyMongoError as exc:
            raise StoreError(
                f"Lookup failed for {product_url}: {exc}"
            ) from exc
        if doc is None:
            return None
        return Product.from_document(doc)

    def count(self) -> int:
        """Number of products in the collection."""
        try:
            return self._collection.count_documents({})
        except PyMongoError as exc:
            raise StoreError(f"Count failed: {exc}") from exc

    def scan(self) -> Iterator[Product]:
        """Yield every product in the collection.

        The generator owns a fresh cursor; it cannot be restarted.
        """
        return self._iter_products({})

    def scan_incomplete(self) -> Iterator[Product]:
        """Yield products missing a name, an image or specifications."""
        return self._iter_products(INCOMPLETE_FILTER)

    def _iter_products(
        self, query: dict[str, Any],
    ) -> Iterator[Product]:
        try:
            cursor = self._collection.find(query)
        except PyMongoError as exc:
            raise StoreError(f"Scan failed: {exc}") from exc

        try:
            while True:
                try:
                    doc = next(cursor)
                except StopIteration:
                    return
                except PyMongoError as exc:
                    raise StoreError(
                        f"Scan advance failed: {exc}"
                    ) from exc
                try:
                    yield Product.from_document(doc)
                except DecodeError as exc:
                    logger.warning(
                        "Skipping undecodable document %s in %s: %s",
                        doc.get("_id") if isinstance(doc, dict) else "?",
                        self.name,
                        exc,
                    )
        finally:
            cursor.close()

    # ── Writes ───────────────────────────────────────────

    def upsert(self, product: Product) -> None:
        """Insert or update a product keyed on its URL.

        Descriptive fields are overwritten.  History and aggregates are
        only written when the document is created, so appends that land
        between a caller's lookup and this write are kept.
        """
        doc = product.to_document()
        update = {
            "$set": product.descriptive_fields(),
            "$setOnInsert": {
                "price_history": doc["price_history"],
                "min_price": doc["min_price"],
                "max_price": doc["max_price"],
            },
        }
        self._update(product.product_url, update, upsert=True)
        logger.debug(
            "Upserted %s into %s", product.product_url, self.name,
        )

    def append_price(self, product_url: str, price: Price) -> None:
        """Append one observation to the product's history."""
        self._update(
            product_url,
            {"$push": {"price_history": price.to_document()}},
        )

    def update_aggregates(
        self,
        product_url: str,
        min_price: float | None,
        max_price: float | None,
    ) -> None:
        """Replace the stored min/max aggregates."""
        self._update(
            product_url,
            {"$set": {
                "min_price": encode_aggregate(min_price),
                "max_price": encode_aggregate(max_price),
            }},
        )

    def record_price(
        self,
        product_url: str,
        price: Price,
        min_price: float | None,
        max_price: float | None,
        expected: tuple[float | None, float | None] | None = None,
    ) -> bool:
        """Append a price and set both aggregates in a single update.

        With *expected* given as the ``(min, max)`` the caller read, the
        write only applies while the stored aggregates still hold those
        values.  Returns False when another writer changed them first.
        """
        guard = None
        if expected is not None:
            guard = {"$and": [
                _aggregate_guard("min_price", expected[0]),
                _aggregate_guard("max_price", expected[1]),
            ]}
        matched = self._update(
            product_url,
            {
                "$push": {"price_history": price.to_document()},
                "$set": {
                    "min_price": encode_aggregate(min_price),
                    "max_price": encode_aggregate(max_price),
                },
            },
            guard=guard,
        )
        if not matched:
            logger.debug(
                "Aggregates of %s changed since read, price not recorded",
                product_url,
            )
            return False
        logger.debug(
            "Recorded price %.2f for %s (min=%s, max=%s)",
            price.value,
            product_url,
            min_price,
            max_price,
        )
        return True

    def _update(
        self,
        product_url: str,
        update: dict[str, Any],
        upsert: bool = False,
        guard: dict[str, Any] | None = None,
    ) -> int:
        query: dict[str, Any] = {"product_url": product_url}
        if guard is not None:
            query.update(guard)
        try:
            result = self._collection.update_one(
                query,
                update,
                upsert=upsert,
            )
        except DuplicateKeyError as exc:
            raise WriteError(
                f"Duplicate product_url {product_url}: {exc}"
            ) from exc
        except PyMongoError as exc:
            raise WriteError(
                f"Write failed for {product_url}: {exc}"
            ) from exc
        if guard is None and not upsert and result.matched_count == 0:
            raise ProductNotFoundError(product_url)
        return result.matched_count


def _aggregate_guard(name: str, value: float | None) -> dict[str, Any]:
    """Filter matching a stored aggregate equal to *value*."""
    if value is None:
        # Sentinel 0, explicit null or a missing field
        return {"$or": [{name: 0}, {name: None}]}
    return {name: value}
