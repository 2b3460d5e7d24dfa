import logging
from typing import Any, Callable, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from price_tracker.errors import InvalidTrackingRequest
from price_tracker.models.database import Database
from price_tracker.models.schemas import ProductDetail
from price_tracker.scrapers.extractor import Extractor
from price_tracker.services.price_analysis import PriceAnalyzer
from price_tracker.services.reconciler import reconcile, utcnow

logger = logging.getLogger('tracking')


def validate_url(url: Any) -> str:
    if url is None or (isinstance(url, str) and not url.strip()):
        raise InvalidTrackingRequest("URL is required")
    if not isinstance(url, str):
        raise InvalidTrackingRequest("URL must be a string")
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise InvalidTrackingRequest("Invalid URL. Make sure it starts with http:// or https://")
    return url


class TrackingService:

    def __init__(self, db: Database, extractor: Extractor, clock: Callable = utcnow):
        self.db = db
        self.extractor = extractor
        self.clock = clock
        self.analyzer = PriceAnalyzer(db)

    def track(self, url: Any) -> Tuple[ProductDetail, bool]:
        """Start tracking ``url`` and return its detail plus whether it was newly created.

        A URL that is already tracked returns the stored product unchanged.
        """
        url = validate_url(url)

        existing = self.analyzer.find_by_url(url)
        if existing is not None:
            logger.info(f"Product already being tracked: {url}")
            return existing, False

        extracted = self.extractor.extract(url)
        result = reconcile(None, extracted, self.clock(), url=url)
        try:
            self.db.save_reconciliation(result)
        except IntegrityError:
            # Registered concurrently between the lookup and the insert
            existing = self.analyzer.find_by_url(url)
            if existing is None:
                raise
            return existing, False

        logger.info(f"Added product: {result.product.title} - Current price: {result.product.current_price}")
        return self.analyzer.product_detail(result.product), True
