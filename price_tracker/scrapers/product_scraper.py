import re
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from price_tracker.models.schemas import ExtractedRecord
from .base_scraper import BaseScraper

logger = logging.getLogger('scraper.product')

_NON_PRICE_CHARS = re.compile(r'[^\d.]')


@dataclass(frozen=True)
class ExtractionStrategy:
    """Selectors describing where one page layout keeps title, price and image.

    Price and image selectors are candidates tried in order.
    """

    name: str
    title_selector: str
    price_selectors: Tuple[str, ...]
    image_selectors: Tuple[str, ...]
    image_attribute: str = "src"


AMAZON_PRODUCT_PAGE = ExtractionStrategy(
    name="amazon",
    title_selector="#productTitle",
    price_selectors=(
        ".a-price .a-offscreen",
        "#priceblock_ourprice",
        "#priceblock_dealprice",
        ".a-price-whole",
    ),
    image_selectors=("#landingImage", "#imgBlkFront"),
)

DEFAULT_STRATEGIES: Tuple[ExtractionStrategy, ...] = (AMAZON_PRODUCT_PAGE,)


def parse_price(text: Optional[str]) -> Optional[float]:
    """Parse '$1,299.00'-style text into a float, or None if nothing usable is left."""
    if not text:
        return None
    cleaned = _NON_PRICE_CHARS.sub('', text)
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        logger.debug(f"Could not convert price text to float: {cleaned!r}")
        return None


class ProductScraper(BaseScraper):

    def __init__(self, strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES, **kwargs):
        super().__init__(**kwargs)
        self.strategies = tuple(strategies)

    def _extract_title(self, soup: BeautifulSoup, strategy: ExtractionStrategy) -> Optional[str]:
        title_elem = soup.select_one(strategy.title_selector)
        if title_elem:
            title = title_elem.get_text().strip()
            return title or None
        return None

    def _extract_price(self, soup: BeautifulSoup, strategy: ExtractionStrategy) -> Optional[float]:
        """Return the first candidate that parses to a non-zero price.

        A candidate whose text is empty, does not parse, or parses to 0 is
        skipped and the next selector is tried.
        """
        for selector in strategy.price_selectors:
            price_elem = soup.select_one(selector)
            if not price_elem:
                continue
            price_text = price_elem.get_text().strip()
            if not price_text:
                continue
            logger.debug(f"Found price element with selector '{selector}': '{price_text}'")
            price = parse_price(price_text)
            if price:
                return price
        return None

    def _extract_image_url(self, soup: BeautifulSoup, strategy: ExtractionStrategy) -> Optional[str]:
        for selector in strategy.image_selectors:
            img_elem = soup.select_one(selector)
            if img_elem and img_elem.get(strategy.image_attribute):
                return img_elem[strategy.image_attribute]
        return None

    def _extract_data(self, html: str) -> ExtractedRecord:
        soup = BeautifulSoup(html, 'lxml')

        for strategy in self.strategies:
            title = self._extract_title(soup, strategy)
            price = self._extract_price(soup, strategy)
            if not title or price is None:
                logger.debug(f"Strategy '{strategy.name}' did not match (title={title!r}, price={price!r})")
                continue

            logger.info(f"Extracted '{title}' at {price} using strategy '{strategy.name}'")
            return ExtractedRecord(
                title=title,
                price=price,
                image_url=self._extract_image_url(soup, strategy),
            )

        raise ValueError("Could not extract title and price from page")
