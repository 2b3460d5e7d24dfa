"""Deterministic placeholder products used when a page cannot be scraped.

The record is derived from the last path segment of the URL, so the same URL
always yields the same title, price and image. These values are test fixtures;
they are not meant to be configured.
"""
import random
import logging
from typing import NamedTuple, Union

from price_tracker.models.schemas import ExtractedRecord

logger = logging.getLogger('scraper.fallback')


class CannedProduct(NamedTuple):
    title: str
    base_price: float
    spread: int
    image_url: str


CATALOG = (
    CannedProduct(
        title="Amazon Echo Dot (5th Gen) - Smart speaker with Alexa",
        base_price=49.99,
        spread=5,
        image_url="https://images-na.ssl-images-amazon.com/images/I/61MbLLagiVL._AC_SL1000_.jpg",
    ),
    CannedProduct(
        title="Samsung Galaxy S24 Ultra - 256GB - Phantom Black",
        base_price=1199.99,
        spread=100,
        image_url="https://images-na.ssl-images-amazon.com/images/I/81Tf+fVH7xL._AC_SL1500_.jpg",
    ),
    CannedProduct(
        title="Apple AirPods Pro (2nd Generation)",
        base_price=249.99,
        spread=30,
        image_url="https://images-na.ssl-images-amazon.com/images/I/71bhWgQK-cL._AC_SL1500_.jpg",
    ),
    CannedProduct(
        title='Kindle Paperwhite (8 GB) – Now with a 6.8" display',
        base_price=139.99,
        spread=15,
        image_url="https://images-na.ssl-images-amazon.com/images/I/61Ww4abGclL._AC_SL1000_.jpg",
    ),
)


def pseudo_id_for(url: str) -> Union[str, int]:
    """Last '/'-separated segment of the URL, or a random int when it is empty."""
    segment = str(url).split('/')[-1]
    return segment or random.randint(0, 9999)


def _numeric_value(pseudo_id: Union[str, int]) -> int:
    if isinstance(pseudo_id, int):
        return pseudo_id
    return int(pseudo_id) if pseudo_id.isascii() and pseudo_id.isdigit() else 0


def mock_product_data(url: str) -> ExtractedRecord:
    pseudo_id = pseudo_id_for(url)
    index = abs(ord(str(pseudo_id)[0]) % len(CATALOG))
    canned = CATALOG[index]

    price = round(canned.base_price - (_numeric_value(pseudo_id) % canned.spread), 2)

    logger.warning(f"Scraping failed, using mock data for {url}: {canned.title}")
    return ExtractedRecord(title=canned.title, price=price, image_url=canned.image_url)
