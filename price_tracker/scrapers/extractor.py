import logging
from typing import Optional, Sequence

import requests

from price_tracker.config import Settings
from price_tracker.models.schemas import ExtractedRecord
from .mock_data import mock_product_data
from .product_scraper import DEFAULT_STRATEGIES, ExtractionStrategy, ProductScraper

logger = logging.getLogger('scraper.extractor')


class Extractor:
    """Turns a product URL into an ExtractedRecord.

    ``extract`` never raises: network errors, timeouts and pages that do not
    match any extraction strategy all produce the deterministic mock record
    for the URL instead.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
        session: Optional[requests.Session] = None,
    ):
        settings = settings or Settings()
        self.scraper = ProductScraper(
            strategies=strategies,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
            session=session,
        )

    def extract(self, url: str) -> ExtractedRecord:
        try:
            return self.scraper.scrape(url)
        except Exception as e:
            logger.warning(f"Error scraping product details for {url}: {e}")
            return mock_product_data(url)
