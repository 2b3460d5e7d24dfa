import time
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests

from price_tracker.models.schemas import ExtractedRecord

logger = logging.getLogger('scraper')


class BaseScraper(ABC):

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    DEFAULT_HEADERS = {
        "Accept-Language": "en-US,en;q=0.9",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Referer": "https://www.google.com/",
        "Upgrade-Insecure-Requests": "1",
    }

    # Matched against the lowercased body of the robot check interstitial
    BLOCKED_MARKERS = (
        "<title>robot check</title>",
        "/errors/validatecaptcha",
        "enter the characters you see below",
    )

    def __init__(
        self,
        timeout: float = 15.0,
        max_retries: int = 2,
        retry_delay: float = 2.0,
        session: Optional[requests.Session] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.session = session or requests.Session()

        self.headers = dict(self.DEFAULT_HEADERS)
        self.headers["User-Agent"] = self.USER_AGENT
        if headers:
            self.headers.update(headers)

    def _fetch_page(self, url: str) -> str:
        """GET the page body, retrying a bounded number of times.

        Raises the last ``requests.RequestException`` once attempts run out.
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching {url} (Attempt {attempt+1}/{self.max_retries})")
                response = self.session.get(
                    url,
                    headers=self.headers,
                    timeout=self.timeout,
                    allow_redirects=True,
                )
                response.raise_for_status()

                body = response.text.lower()
                if any(marker in body for marker in self.BLOCKED_MARKERS):
                    raise requests.RequestException(f"Bot check page returned for {url}")

                return response.text
            except requests.RequestException as e:
                logger.warning(f"Failed to fetch {url} on attempt {attempt+1}: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay * (attempt + 1))
                else:
                    raise

    @abstractmethod
    def _extract_data(self, html: str) -> ExtractedRecord:
        pass

    def scrape(self, url: str) -> ExtractedRecord:
        logger.info(f"Scraping {url}")
        html = self._fetch_page(url)
        return self._extract_data(html)
