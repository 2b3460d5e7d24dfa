#!/usr/bin/env python
import sys
import logging
import argparse
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from price_tracker.config import Settings
from price_tracker.errors import ProductNotFoundError
from price_tracker.logging_config import setup_logging
from price_tracker.models.database import Database
from price_tracker.models.schemas import ProductDetail
from price_tracker.scrapers.extractor import Extractor
from price_tracker.services.price_analysis import PriceAnalyzer
from price_tracker.services.reconciler import reconcile, utcnow

logger = logging.getLogger('price_checker')


class PriceChecker:
    """Refreshes tracked products: one on demand, or all of them as a sweep."""

    def __init__(
        self,
        db: Database,
        extractor: Extractor,
        clock: Callable = utcnow,
        max_workers: int = 1,
    ):
        self.db = db
        self.extractor = extractor
        self.clock = clock
        self.max_workers = max(1, max_workers)
        self.analyzer = PriceAnalyzer(db)
        self._product_locks = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, product_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._product_locks[product_id]

    def check_product(self, product_id: str) -> ProductDetail:
        """Extract, reconcile and persist one product.

        Raises ProductNotFoundError for an unknown id; store errors propagate.
        """
        # Locks are only created for ids that exist
        if self.db.get_product_by_id(product_id) is None:
            raise ProductNotFoundError(product_id)

        with self._lock_for(product_id):
            # State may have changed while waiting for the lock
            product = self.db.get_product_by_id(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)

            logger.info(f"Checking price for {product.url}")
            extracted = self.extractor.extract(product.url)

            result = reconcile(product, extracted, self.clock())
            self.db.save_reconciliation(result)

            logger.info(f"Successfully updated price for {result.product.title}: {result.product.current_price}")
            return self.analyzer.product_detail(result.product)

    def _check_safely(self, product_id: str) -> Optional[ProductDetail]:
        try:
            return self.check_product(product_id)
        except Exception as e:
            logger.error(f"Failed to update product {product_id}: {e}", exc_info=True)
            return None

    def check_all_products(self, cancel_event: Optional[threading.Event] = None) -> List[ProductDetail]:
        """Update every tracked product, skipping the ones that fail.

        Setting ``cancel_event`` stops new updates from starting; results of
        updates that already finished are still returned.
        """
        logger.info("Starting price check for all products")

        products = self.db.get_all_products()
        if not products:
            logger.info("No products to check")
            return []

        logger.info(f"Found {len(products)} products to check")

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        results: List[ProductDetail] = []
        if self.max_workers == 1:
            for product in products:
                if cancelled():
                    logger.info("Price check cancelled")
                    break
                detail = self._check_safely(product.id)
                if detail is not None:
                    results.append(detail)
        else:
            def run(product_id: str) -> Optional[ProductDetail]:
                if cancelled():
                    return None
                return self._check_safely(product_id)

            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="price-check") as pool:
                futures = [pool.submit(run, product.id) for product in products]
                for future in futures:
                    detail = future.result()
                    if detail is not None:
                        results.append(detail)

        logger.info(f"Completed price checks: {len(results)}/{len(products)} successful")
        return results


def build_checker(settings: Settings) -> PriceChecker:
    db = Database(settings.database_url)
    return PriceChecker(db, Extractor(settings), max_workers=settings.sweep_workers)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check product prices")
    parser.add_argument("--product-id", help="Check a specific product by id")
    parser.add_argument("--check-all", action="store_true", help="Check all tracked products")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    checker = build_checker(settings)

    try:
        if args.product_id:
            try:
                checker.check_product(args.product_id)
            except ProductNotFoundError as e:
                logger.error(str(e))
                return 1
        else:
            checker.check_all_products()
    finally:
        checker.db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
