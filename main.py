# main.py

"""Entry point for the price_tracker command-line interface."""

import argparse
import asyncio
import logging
import sys

from price_tracker.config.logging_config import setup_logging
from price_tracker.config.settings import Settings

logger = logging.getLogger("price_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    vendors = ", ".join(v["label"] for v in Settings.VENDORS)

    parser = argparse.ArgumentParser(
        prog="price_tracker",
        description="Per-user product price tracker.",
        epilog=f"Supported vendors: {vendors}",
    )
    parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Product URL to track (or to show / refresh).",
    )
    parser.add_argument(
        "-u",
        "--user",
        default=Settings.DEFAULT_USER or None,
        help="User whose catalog to use (default: $PRICE_TRACKER_USER).",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Print the stored record for URL.",
    )
    action.add_argument(
        "--refresh",
        action="store_true",
        default=False,
        help="Refresh prices for URL, or every product when omitted.",
    )
    action.add_argument(
        "--repair",
        action="store_true",
        default=False,
        help="Re-scrape details for incomplete products.",
    )
    action.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Check store and vendor connectivity.",
    )
    return parser


def main() -> None:
    """Dispatch to the requested catalog command."""
    parser = _build_parser()
    args = parser.parse_args()
    if not args.user:
        parser.error("a user is required (-u or $PRICE_TRACKER_USER)")

    command = next(
        (name for name in ("health", "repair", "refresh", "show")
         if getattr(args, name)),
        "track",
    )
    log_file = setup_logging(user=args.user, command=command)
    logger.info("price_tracker starting, log file: %s", log_file)

    from price_tracker.cli import runner

    if args.health:
        exit_code = asyncio.run(runner.run_health_check(args.user))
    elif args.repair:
        exit_code = runner.run_repair(args.user)
    elif args.refresh:
        exit_code = runner.run_refresh(args.user, args.url)
    elif args.url is None:
        parser.error("a product URL is required")
    elif args.show:
        exit_code = runner.run_show(args.user, args.url)
    else:
        exit_code = runner.run_track(args.user, args.url)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
