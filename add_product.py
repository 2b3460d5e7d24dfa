#!/usr/bin/env python
import os
import sys
import argparse
import logging

# Add the project directory to the path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from price_tracker.config import Settings
from price_tracker.errors import InvalidTrackingRequest
from price_tracker.logging_config import setup_logging
from price_tracker.models.database import Database
from price_tracker.scrapers.extractor import Extractor
from price_tracker.services.price_analysis import PriceAnalyzer
from price_tracker.services.tracking import TrackingService

logger = logging.getLogger('add_product')


def add_product(db: Database, settings: Settings, url: str) -> bool:
    """
    Add a new product to track

    Args:
        db: Open database gateway
        settings: Scraper settings
        url: Product URL to add

    Returns:
        True if the product is tracked afterwards, False if the URL was rejected
    """
    tracking = TrackingService(db, Extractor(settings))
    try:
        detail, created = tracking.track(url)
    except InvalidTrackingRequest as e:
        logger.error(str(e))
        return False

    product = detail.product
    if created:
        logger.info(f"Added product: {product.title} - Current price: {product.current_price:.2f} (id {product.id})")
    else:
        logger.info(f"Product already exists: {product.url} (id {product.id})")
    return True


def list_products(db: Database):
    """List all tracked products"""
    products = PriceAnalyzer(db).list_products()

    if not products:
        logger.info("No products are being tracked.")
        return

    logger.info(f"Tracking {len(products)} products:")
    for product in products:
        change = f"{product.price_change:+.2f}" if product.price_change is not None else "n/a"
        logger.info(
            f" - {product.title} ({product.url}): {product.current_price:.2f} "
            f"[low {product.lowest_price:.2f}, high {product.highest_price:.2f}, change {change}]"
        )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Manage products for price tracking")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_parser = subparsers.add_parser("add", help="Add a product to track")
    add_parser.add_argument("url", help="URL of the product to track")

    subparsers.add_parser("list", help="List all tracked products")

    args = parser.parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)

    if args.command not in ("add", "list"):
        parser.print_help()
        return 1

    db = Database(settings.database_url)
    try:
        if args.command == "add":
            return 0 if add_product(db, settings, args.url) else 1
        list_products(db)
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
