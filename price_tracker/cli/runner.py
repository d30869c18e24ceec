# price_tracker/cli/runner.py

"""Headless CLI commands for tracking, refreshing and repairing products."""

import logging

from rich.console import Console
from rich.table import Table

from price_tracker.errors import CatalogError, ProductNotFoundError
from price_tracker.models.product import Product
from price_tracker.services.catalog_service import (
    CatalogService,
    PassSummary,
)
from price_tracker.storage.session import open_session

logger = logging.getLogger("price_tracker.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)


def _format_price(value: float | None) -> str:
    return f"₹{value:,.2f}" if value is not None else "—"


def _print_product(product: Product) -> None:
    """Render a stored product and its price history to stdout."""
    console = Console()
    console.print(f"[bold]{product.product_name or '(unnamed)'}[/bold]")
    console.print(f"[dim]{product.product_url}[/dim]")
    if product.image_url:
        console.print(f"[dim]Image: {product.image_url}[/dim]")
    for spec in product.specifications:
        console.print(f"  • {spec}")
    console.print(
        f"Min {_format_price(product.min_price)}  "
        f"Max {_format_price(product.max_price)}"
    )

    table = Table(
        title="Price History",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Timestamp")
    table.add_column("Price", justify="right", style="green")
    for idx, price in enumerate(product.price_history, 1):
        table.add_row(
            str(idx),
            price.timestamp.strftime("%Y-%m-%d %H:%M:%S %Z"),
            _format_price(price.value),
        )
    console.print(table)


def _print_summary(label: str, summary: PassSummary) -> None:
    """Print pass counts and each failure reason to stderr."""
    for result in summary.results:
        if not result.success:
            _err.print(
                f"[yellow]Skipped {result.product_url}: "
                f"{result.reason}[/yellow]"
            )
    _err.print(
        f"[green]✓ {label}: {summary.succeeded} of {summary.total}"
        f" products[/green]"
    )


def run_track(user: str, url: str) -> int:
    """Scrape a product page's details and add it to the catalog."""
    try:
        with open_session(user) as session:
            service = CatalogService(session.store)
            details = service.select_scraper(url).scrape_product_details(url)
            product = service.upsert_product(details)
    except CatalogError as exc:
        logger.error("Track failed for %s: %s", url, exc, exc_info=True)
        _err.print(f"[red]Track failed: {exc}[/red]")
        return 1
    _err.print(f"[green]✓ Tracking {product.product_url}[/green]")
    _print_product(product)
    return 0


def run_show(user: str, url: str) -> int:
    """Print one stored product."""
    try:
        with open_session(user) as session:
            product = CatalogService(session.store).get_product(url)
    except ProductNotFoundError:
        _err.print(f"[yellow]Not tracked: {url}[/yellow]")
        return 1
    except CatalogError as exc:
        logger.error("Lookup failed for %s: %s", url, exc, exc_info=True)
        _err.print(f"[red]Lookup failed: {exc}[/red]")
        return 1
    _print_product(product)
    return 0


def run_refresh(user: str, url: str | None = None) -> int:
    """Refresh prices for one product or the whole catalog.

    A single URL fails the command on any error; a full pass reports
    skipped products and still succeeds.
    """
    try:
        with open_session(user) as session:
            service = CatalogService(session.store)
            if url is not None:
                product = service.get_product(url)
                price = service.refresh_product(product)
            else:
                _err.print(
                    f"[bold]Refreshing {session.store.count()} "
                    f"products for {user}...[/bold]"
                )
                summary = service.refresh_prices()
    except CatalogError as exc:
        logger.error("Price refresh failed: %s", exc, exc_info=True)
        _err.print(f"[red]Price refresh failed: {exc}[/red]")
        return 1
    if url is not None:
        _err.print(f"[green]✓ Price updated: {_format_price(price)}[/green]")
        _print_product(product)
        return 0
    _print_summary("Prices updated", summary)
    return 0


def run_repair(user: str) -> int:
    """Re-scrape details for every incomplete product."""
    try:
        with open_session(user) as session:
            summary = CatalogService(session.store).repair_incomplete()
    except CatalogError as exc:
        logger.error("Repair pass failed: %s", exc, exc_info=True)
        _err.print(f"[red]Repair pass failed: {exc}[/red]")
        return 1
    _print_summary("Products repaired", summary)
    return 0


async def run_health_check(user: str) -> int:
    """Run connectivity health check on the store and all vendors."""
    from price_tracker.services.health_checker import HealthChecker

    _err.print("[bold]Running health check...[/bold]")
    checker = HealthChecker(user)
    results = await checker.check_all()

    table = Table(
        title="Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Source", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = (
            f"{r.latency_ms:.0f}ms"
            if r.latency_ms > 0
            else "—"
        )
        table.add_row(
            r.source_id, status, latency, r.message,
        )

    Console().print(table)
    return 1 if any_down else 0
