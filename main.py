# main.py

"""Entry point for the price_watcher service."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("price_watcher.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    platforms = ", ".join(p["id"] for p in Settings.AVAILABLE_PLATFORMS)

    parser = argparse.ArgumentParser(
        prog="price_watcher",
        description="Track product prices and get alerted on new lows.",
        epilog=f"Supported platforms: {platforms}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO logs to the console.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Start the periodic price monitor.")

    add = sub.add_parser("add", help="Start tracking a product.")
    add.add_argument("name", help="Display name for the product.")
    add.add_argument("url", help="Product page URL.")

    list_cmd = sub.add_parser("list", help="List tracked products.")
    list_cmd.add_argument(
        "--platform",
        choices=[p["id"] for p in Settings.AVAILABLE_PLATFORMS],
        default=None,
        help="Only show products on this platform.",
    )

    remove = sub.add_parser("remove", help="Stop tracking a product.")
    remove.add_argument("product_id")

    check = sub.add_parser("check", help="Fetch one product's price now.")
    check.add_argument("product_id")

    history = sub.add_parser("history", help="Show a product's price history.")
    history.add_argument("product_id")

    return parser


def _dispatch(args: argparse.Namespace) -> int:
    """Run the selected command and return its exit code."""
    from src.cli import runner

    if args.command == "run":
        return asyncio.run(runner.run_monitor())
    if args.command == "add":
        return runner.add_product(args.name, args.url)
    if args.command == "list":
        return runner.list_products(args.platform)
    if args.command == "remove":
        return runner.remove_product(args.product_id)
    if args.command == "check":
        return asyncio.run(runner.check_now(args.product_id))
    return runner.show_history(args.product_id)


def main() -> None:
    """Parse arguments, set up logging and run a command."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(verbose=args.verbose)
    logger.info("price_watcher starting, log file: %s", log_file)

    try:
        exit_code = _dispatch(args)
    except Exception:
        logger.critical("Fatal error in %s", args.command, exc_info=True)
        raise
    finally:
        logger.info("price_watcher %s finished", args.command)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
