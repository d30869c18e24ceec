# price_tracker/models/price.py

"""Temporal price observation for a product's price history."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from price_tracker.errors import DecodeError


def utcnow() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC; aware ones pass through."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Price:
    """A single price observation for a product at a point in time."""

    value: float
    timestamp: datetime

    def to_document(self) -> dict[str, Any]:
        """Serialise to the stored ``{value, timestamp}`` shape."""
        return {"value": float(self.value), "timestamp": self.timestamp}

    @classmethod
    def from_document(cls, doc: Any) -> "Price":
        """Build a Price from a stored sub-document."""
        if not isinstance(doc, dict):
            raise DecodeError(f"price entry is not a document: {doc!r}")
        value = doc.get("value")
        timestamp = doc.get("timestamp")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError(f"price value is not a number: {value!r}")
        if not isinstance(timestamp, datetime):
            raise DecodeError(
                f"price timestamp is not a datetime: {timestamp!r}"
            )
        # Naive datetimes come back from clients without tz_aware
        return cls(value=float(value), timestamp=as_utc(timestamp))
