# tests/test_product_model.py

"""Tests for the Product and Price models and their stored form."""

import unittest
from datetime import datetime, timezone

from price_tracker.errors import DecodeError
from price_tracker.models.price import Price
from price_tracker.models.product import Product

T1 = datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)


class TestProductModel(unittest.TestCase):
    """Product dataclass unit tests."""

    def test_defaults(self) -> None:
        """Only the URL is required; everything else starts empty."""
        product = Product(product_url="https://www.amazon.in/dp/B01")
        self.assertEqual(product.product_name, "")
        self.assertEqual(product.image_url, "")
        self.assertEqual(product.specifications, [])
        self.assertEqual(product.price_history, [])
        self.assertIsNone(product.min_price)
        self.assertIsNone(product.max_price)

    def test_default_lists_not_shared(self) -> None:
        """Each instance gets its own history list."""
        a = Product(product_url="a")
        b = Product(product_url="b")
        a.price_history.append(Price(1.0, T1))
        self.assertEqual(b.price_history, [])

    def test_is_complete(self) -> None:
        """Name, image and at least one spec make a product complete."""
        product = Product(
            product_url="u",
            product_name="Phone",
            image_url="https://img/x.jpg",
            specifications=["128 GB"],
        )
        self.assertTrue(product.is_complete)

    def test_incomplete_variants(self) -> None:
        """Any missing descriptive field makes a product incomplete."""
        cases = {
            "no name": Product("u", "", "i", ["s"]),
            "no image": Product("u", "n", "", ["s"]),
            "no specs": Product("u", "n", "i", []),
        }
        for label, product in cases.items():
            with self.subTest(label):
                self.assertFalse(product.is_complete)

    def test_latest_price(self) -> None:
        """latest_price is the last history entry or None."""
        product = Product(product_url="u")
        self.assertIsNone(product.latest_price)
        product.price_history = [Price(10.0, T1), Price(9.0, T1)]
        self.assertEqual(product.latest_price, Price(9.0, T1))


class TestProductDocument(unittest.TestCase):
    """Conversion to and from the stored document shape."""

    def test_to_document_field_names(self) -> None:
        """Stored field names are exactly the wire contract."""
        doc = Product(product_url="u").to_document()
        self.assertEqual(
            set(doc),
            {
                "product_url", "product_name", "image_url",
                "specifications", "price_history",
                "min_price", "max_price",
            },
        )

    def test_unset_aggregates_stored_as_zero(self) -> None:
        """None aggregates are written as the 0 sentinel."""
        doc = Product(product_url="u").to_document()
        self.assertEqual(doc["min_price"], 0)
        self.assertEqual(doc["max_price"], 0)

    def test_price_history_serialised(self) -> None:
        """Prices become {value, timestamp} sub-documents."""
        product = Product(
            product_url="u", price_history=[Price(99.5, T1)],
        )
        self.assertEqual(
            product.to_document()["price_history"],
            [{"value": 99.5, "timestamp": T1}],
        )

    def test_from_document_zero_aggregates_are_none(self) -> None:
        """A stored 0 reads back as 'no observation yet'."""
        product = Product.from_document({
            "product_url": "u", "min_price": 0, "max_price": 0,
        })
        self.assertIsNone(product.min_price)
        self.assertIsNone(product.max_price)

    def test_from_document_legacy_shape(self) -> None:
        """Documents without aggregates or lists still decode."""
        product = Product.from_document({
            "_id": "abc",
            "product_url": "https://www.flipkart.com/p/1",
            "product_name": "Kettle",
            "price_history": [{"value": 1200, "timestamp": T1}],
        })
        self.assertEqual(product.product_name, "Kettle")
        self.assertEqual(product.specifications, [])
        self.assertEqual(product.price_history, [Price(1200.0, T1)])
        self.assertIsNone(product.min_price)

    def test_from_document_naive_timestamp_is_utc(self) -> None:
        """Naive timestamps are interpreted as UTC."""
        product = Product.from_document({
            "product_url": "u",
            "price_history": [
                {"value": 5, "timestamp": datetime(2026, 1, 1, 10, 0)},
            ],
        })
        self.assertEqual(product.price_history[0].timestamp, T1)

    def test_from_document_round_trip(self) -> None:
        """A full product survives conversion unchanged."""
        product = Product(
            product_url="u",
            product_name="n",
            image_url="i",
            specifications=["a", "b"],
            price_history=[Price(80.0, T1), Price(100.0, T1)],
            min_price=80.0,
            max_price=100.0,
        )
        self.assertEqual(
            Product.from_document(product.to_document()), product,
        )

    def test_from_document_rejects_malformed(self) -> None:
        """Malformed documents raise DecodeError."""
        bad_docs = [
            "not a dict",
            {"product_name": "missing url"},
            {"product_url": "u", "specifications": "not-a-list"},
            {"product_url": "u", "price_history": "nope"},
            {"product_url": "u", "price_history": [{"value": "x",
                                                     "timestamp": T1}]},
            {"product_url": "u", "price_history": [{"value": 1}]},
            {"product_url": "u", "min_price": "cheap"},
        ]
        for doc in bad_docs:
            with self.subTest(doc=doc):
                with self.assertRaises(DecodeError):
                    Product.from_document(doc)


if __name__ == "__main__":
    unittest.main()
