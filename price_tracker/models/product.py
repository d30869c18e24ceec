# price_tracker/models/product.py

"""Product entity stored in a user's catalog."""

from dataclasses import dataclass, field
from typing import Any

from price_tracker.errors import DecodeError
from price_tracker.models.price import Price

# Stored min/max of 0 means "no price observed yet"
_SENTINEL = 0


@dataclass
class Product:
    """A tracked product page, keyed by its canonical URL."""

    product_url: str
    product_name: str = ""
    image_url: str = ""
    specifications: list[str] = field(
        default_factory=lambda: list[str]()
    )
    price_history: list[Price] = field(
        default_factory=lambda: list[Price]()
    )
    min_price: float | None = None
    max_price: float | None = None

    @property
    def is_complete(self) -> bool:
        """True when name, image and specifications are all present."""
        return bool(
            self.product_name
            and self.image_url
            and len(self.specifications) > 0
        )

    @property
    def latest_price(self) -> Price | None:
        """Most recent observation, if any."""
        return self.price_history[-1] if self.price_history else None

    def to_document(self) -> dict[str, Any]:
        """Serialise to the stored document shape."""
        return {
            "product_url": self.product_url,
            "product_name": self.product_name,
            "image_url": self.image_url,
            "specifications": list(self.specifications),
            "price_history": [
                p.to_document() for p in self.price_history
            ],
            "min_price": encode_aggregate(self.min_price),
            "max_price": encode_aggregate(self.max_price),
        }

    def descriptive_fields(self) -> dict[str, Any]:
        """Fields an ingest or repair is allowed to overwrite."""
        doc = self.to_document()
        return {
            k: doc[k]
            for k in ("product_url", "product_name", "image_url",
                      "specifications")
        }

    @classmethod
    def from_document(cls, doc: Any) -> "Product":
        """Build a Product from a stored document.

        Absent list fields decode as empty lists and absent or zero
        aggregates decode as ``None``.
        """
        if not isinstance(doc, dict):
            raise DecodeError(f"product is not a document: {doc!r}")

        url = doc.get("product_url")
        if not isinstance(url, str) or not url:
            raise DecodeError(f"product_url missing or invalid: {url!r}")

        name = doc.get("product_name") or ""
        image = doc.get("image_url") or ""
        if not isinstance(name, str) or not isinstance(image, str):
            raise DecodeError(f"non-string name/image for {url}")

        specs = doc.get("specifications") or []
        if not isinstance(specs, list) or not all(
            isinstance(s, str) for s in specs
        ):
            raise DecodeError(f"specifications malformed for {url}")

        history = doc.get("price_history") or []
        if not isinstance(history, list):
            raise DecodeError(f"price_history malformed for {url}")

        return cls(
            product_url=url,
            product_name=name,
            image_url=image,
            specifications=list(specs),
            price_history=[Price.from_document(p) for p in history],
            min_price=_decode_aggregate(doc.get("min_price"), url),
            max_price=_decode_aggregate(doc.get("max_price"), url),
        )


def encode_aggregate(value: float | None) -> float:
    """Map an in-memory aggregate to its stored form (None -> 0)."""
    return _SENTINEL if value is None else float(value)


def _decode_aggregate(raw: Any, url: str) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise DecodeError(f"aggregate is not a number for {url}: {raw!r}")
    if raw == _SENTINEL:
        return None
    return float(raw)
