# price_tracker/services/health_checker.py

"""Connectivity health checks for the store and vendor sites."""

import asyncio
import importlib
import logging
import time
from dataclasses import dataclass

from pymongo import MongoClient

from price_tracker.config.settings import Settings
from price_tracker.errors import CatalogError
from price_tracker.storage.session import ClientFactory, open_session

logger = logging.getLogger("price_tracker.health")

_HEALTH_TIMEOUT = 10  # seconds per source
_SLOW_MS = 5000


@dataclass
class HealthResult:
    """Result of a single health check."""

    source_id: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def _classify(source_id: str, elapsed_ms: float) -> HealthResult:
    if elapsed_ms > _SLOW_MS:
        return HealthResult(source_id, "slow", elapsed_ms, "High latency")
    return HealthResult(source_id, "ok", elapsed_ms, "")


def probe_vendor(vendor: dict[str, str]) -> HealthResult:
    """Probe a vendor homepage through its scraper's HTTP session."""
    source_id = vendor["id"]
    dotted_path = vendor["scraper"]

    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
        module = importlib.import_module(module_path)
        scraper = getattr(module, class_name)()
    except Exception as exc:
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=0.0,
            message=f"Failed to load scraper: {exc}",
        )

    start = time.monotonic()
    try:
        homepage = vendor.get("homepage") or scraper._get_homepage()
        resp = scraper.session.get(
            homepage,
            headers=dict(scraper.settings.DEFAULT_HEADERS),
            timeout=_HEALTH_TIMEOUT,
        )
        elapsed_ms = (time.monotonic() - start) * 1000
        if resp.status_code != 200:
            return HealthResult(
                source_id=source_id,
                status="down",
                latency_ms=elapsed_ms,
                message=f"HTTP {resp.status_code}",
            )
        return _classify(source_id, elapsed_ms)
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )


def probe_store(
    user: str,
    uri: str | None = None,
    client_factory: ClientFactory = MongoClient,
) -> HealthResult:
    """Open and release a session against the user's collection."""
    start = time.monotonic()
    try:
        with open_session(user, uri, client_factory) as session:
            count = session.store.count()
    except CatalogError as exc:
        return HealthResult(
            source_id="store",
            status="down",
            latency_ms=(time.monotonic() - start) * 1000,
            message=str(exc)[:80],
        )
    result = _classify("store", (time.monotonic() - start) * 1000)
    if not result.message:
        result.message = f"{count} products"
    return result


class HealthChecker:
    """Runs concurrent health probes against the store and vendors."""

    def __init__(self, user: str, uri: str | None = None) -> None:
        self.user = user
        self.uri = uri
        self.vendors = Settings.VENDORS

    async def check_all(self) -> list[HealthResult]:
        """Probe the store and every registered vendor concurrently."""
        tasks = [asyncio.to_thread(probe_store, self.user, self.uri)]
        tasks.extend(
            asyncio.to_thread(probe_vendor, vendor)
            for vendor in self.vendors
        )
        results: list[HealthResult] = list(
            await asyncio.gather(*tasks)
        )
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
