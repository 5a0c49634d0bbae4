"""Command-line interface for the product feed scraper.

Usage:
    python -m src.cli --company "Grandpas Goody Getter" --currency GBP \\
        --urls urls.txt --output output/feed.xlsx
    python -m src.cli            # prompts for anything missing
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from src.models import CurrencyCode, FeedConfig
from src.orchestrator import build_feed


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru logging.

    Args:
        verbose: Whether to enable debug logging on the console
    """
    logger.remove()

    log_level = "DEBUG" if verbose else "INFO"
    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
        "<level>{message}</level>"
    )

    logger.add(sys.stderr, format=log_format, level=log_level, colorize=True)
    logger.add(
        "logs/feed_{time:YYYY-MM-DD}.log",
        format=log_format,
        level="DEBUG",
        rotation="1 day",
        retention="30 days",
    )


def read_url_list(file_path: str) -> list[str]:
    """Read URLs from a text file (one per line, '#' comments ignored).

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"URL list file not found: {path.resolve()}")

    with open(path, "r", encoding="utf-8") as f:
        stripped = (line.strip() for line in f)
        return [line for line in stripped if line and not line.startswith("#")]


def prompt_value(message: str, input_func: Callable[[str], str] = input) -> str:
    """Ask until a non-blank answer is given."""
    while True:
        value = input_func(f"{message}\n> ").strip()
        if value:
            return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a product feed spreadsheet from e-commerce URLs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape every product and listing URL in urls.txt
  python -m src.cli --company "Grandpas Goody Getter" --currency GBP --urls urls.txt --output feed.xlsx

  # Only scrape the given URLs, no listing discovery
  python -m src.cli -c "Acme" -k USD -u urls.txt -o feed.xlsx --no-discovery

  # Interactive mode: prompts for company, currency, URL list and output
  python -m src.cli
        """,
    )

    parser.add_argument("--company", "-c", help="Company/brand name")
    parser.add_argument("--currency", "-k", help="ISO currency code (GBP, USD, EUR)")
    parser.add_argument("--urls", "-u", help="URL list file (one URL per line)")
    parser.add_argument("--output", "-o", help="Output Excel file")
    parser.add_argument(
        "--product-types",
        default="product_types.txt",
        help="Product type dictionary, one category per line "
        "(default: product_types.txt)",
    )
    parser.add_argument(
        "--max-links",
        type=int,
        default=2500,
        help="Maximum product links discovered per listing (default: 2500)",
    )
    parser.add_argument(
        "--no-discovery",
        action="store_false",
        dest="discover_listings",
        help="Don't expand listing/category URLs into product links",
    )
    parser.add_argument(
        "--listings-expand-only",
        action="store_false",
        dest="scrape_input_urls",
        help="Expand listing URLs without scraping the listing page itself",
    )
    parser.add_argument(
        "--no-fallback-fetch",
        action="store_false",
        dest="fallback_fetch_on_redirect",
        help="Don't re-fetch pages that redirect to another host",
    )
    parser.add_argument(
        "--headed",
        action="store_false",
        dest="headless",
        help="Show the browser window",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose debug logging",
    )
    return parser


def fill_missing_arguments(
    args: argparse.Namespace, input_func: Callable[[str], str] = input
) -> argparse.Namespace:
    """Prompt for any of the four core inputs not given on the command line."""
    if not args.company:
        args.company = prompt_value(
            "Company name (e.g. Grandpas Goody Getter)", input_func
        )
    if not args.currency:
        args.currency = prompt_value("Currency code (USD, GBP, EUR)", input_func)
    if not args.urls:
        args.urls = prompt_value("URL list file (e.g. urls.txt)", input_func)
    if not args.output:
        args.output = prompt_value("Output Excel file (e.g. output.xlsx)", input_func)
    return args


def config_from_args(args: argparse.Namespace) -> FeedConfig:
    return FeedConfig(
        company_name=args.company,
        currency_code=CurrencyCode(args.currency),
        output_path=args.output,
        product_types_path=args.product_types,
        max_links_per_listing=args.max_links,
        scrape_input_urls=args.scrape_input_urls,
        discover_listings=args.discover_listings,
        fallback_fetch_on_redirect=args.fallback_fetch_on_redirect,
        headless=args.headless,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        args = fill_missing_arguments(args)
    except (EOFError, KeyboardInterrupt):
        logger.error("Input aborted")
        return 1

    config = config_from_args(args)

    logger.info("--- Configuration ---")
    logger.info(f"Company: {config.company_name}")
    logger.info(f"Currency: {config.currency_code}")
    logger.info(f"URL list file: {args.urls}")
    logger.info(f"Output Excel: {config.output_path}")

    try:
        input_urls = read_url_list(args.urls)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    if not input_urls:
        logger.error(f"No URLs found in {args.urls}")
        return 1

    try:
        records, output_path = build_feed(config, input_urls)
    except Exception as e:
        logger.exception(f"Feed build failed: {e}")
        return 1

    logger.success(f"Feed written to {output_path} (rows: {len(records)})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
