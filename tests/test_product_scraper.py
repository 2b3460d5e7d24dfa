# tests/test_product_scraper.py

"""Tests for page fetching and the data-driven extraction strategies."""

import unittest

import requests

from fakes import AMAZON_HTML, UNRELATED_HTML, make_response, make_session
from price_tracker.scrapers.product_scraper import (
    AMAZON_PRODUCT_PAGE,
    DEFAULT_STRATEGIES,
    ExtractionStrategy,
    ProductScraper,
    parse_price,
)


ROBOT_CHECK_HTML = """
<html>
  <head><title>Robot Check</title></head>
  <body>
    <form method="get" action="/errors/validateCaptcha">
      <h4>Enter the characters you see below</h4>
      <input type="text" id="captchacharacters" name="field-keywords">
    </form>
  </body>
</html>
"""


class TestParsePrice(unittest.TestCase):
    """Tests for the price text cleaner."""

    def test_strips_currency_and_thousands(self) -> None:
        """'$1,299.50' parses to 1299.5."""
        self.assertEqual(parse_price("$1,299.50"), 1299.5)

    def test_rupee_text(self) -> None:
        """Non-ASCII currency symbols are dropped."""
        self.assertEqual(parse_price("₹ 2,499"), 2499.0)

    def test_empty_is_none(self) -> None:
        """Empty or missing text yields None."""
        self.assertIsNone(parse_price(""))
        self.assertIsNone(parse_price(None))

    def test_no_digits_is_none(self) -> None:
        """Text without digits yields None."""
        self.assertIsNone(parse_price("Currently unavailable"))

    def test_unparseable_is_none(self) -> None:
        """Multiple decimal points cannot be parsed."""
        self.assertIsNone(parse_price("1.2.3"))


class TestExtraction(unittest.TestCase):
    """Tests for ProductScraper._extract_data."""

    def setUp(self) -> None:
        self.scraper = ProductScraper()

    def test_default_strategies_target_one_layout(self) -> None:
        """The default strategy list holds the product page layout."""
        self.assertEqual(DEFAULT_STRATEGIES, (AMAZON_PRODUCT_PAGE,))

    def test_extracts_title_price_and_image(self) -> None:
        """A matching page yields a complete record."""
        record = self.scraper._extract_data(AMAZON_HTML)
        self.assertEqual(record.title, "Widget Pro 3000")
        self.assertEqual(record.price, 1299.5)
        self.assertEqual(record.image_url, "https://img.example.com/widget.jpg")

    def test_price_candidates_tried_in_order(self) -> None:
        """Empty and unusable candidates fall through to the next selector."""
        html = """
        <span id="productTitle">Gadget</span>
        <span class="a-price"><span class="a-offscreen"></span></span>
        <span id="priceblock_ourprice">Currently unavailable</span>
        <span id="priceblock_dealprice">$19.99</span>
        <span class="a-price-whole">25</span>
        """
        record = self.scraper._extract_data(html)
        self.assertEqual(record.price, 19.99)

    def test_whole_price_fallback(self) -> None:
        """The whole-number price span is the last candidate."""
        html = '<span id="productTitle">Gadget</span><span class="a-price-whole">1,024.</span>'
        record = self.scraper._extract_data(html)
        self.assertEqual(record.price, 1024.0)

    def test_secondary_image_selector(self) -> None:
        """The book cover image is used when there is no landing image."""
        html = """
        <span id="productTitle">A Book</span>
        <span id="priceblock_ourprice">$9.99</span>
        <img id="imgBlkFront" src="https://img.example.com/cover.jpg">
        """
        record = self.scraper._extract_data(html)
        self.assertEqual(record.image_url, "https://img.example.com/cover.jpg")

    def test_missing_image_is_none(self) -> None:
        """No image selector match leaves image_url empty."""
        html = '<span id="productTitle">Gadget</span><span id="priceblock_ourprice">$5</span>'
        self.assertIsNone(self.scraper._extract_data(html).image_url)

    def test_missing_title_raises(self) -> None:
        """A page without the title element is rejected."""
        html = '<span id="priceblock_ourprice">$5</span>'
        with self.assertRaises(ValueError):
            self.scraper._extract_data(html)

    def test_blank_title_raises(self) -> None:
        """A whitespace-only title is treated as missing."""
        html = '<span id="productTitle">   </span><span id="priceblock_ourprice">$5</span>'
        with self.assertRaises(ValueError):
            self.scraper._extract_data(html)

    def test_missing_price_raises(self) -> None:
        """A page without any price candidate is rejected."""
        html = '<span id="productTitle">Gadget</span>'
        with self.assertRaises(ValueError):
            self.scraper._extract_data(html)

    def test_zero_price_raises(self) -> None:
        """A zero price is not a usable price."""
        html = '<span id="productTitle">Gadget</span><span id="priceblock_ourprice">$0.00</span>'
        with self.assertRaises(ValueError):
            self.scraper._extract_data(html)

    def test_zero_candidate_falls_through(self) -> None:
        """A candidate parsing to 0 is skipped for the next selector."""
        html = """
        <span id="productTitle">Gadget</span>
        <span class="a-price"><span class="a-offscreen">$0.00</span></span>
        <span id="priceblock_ourprice">$12.49</span>
        """
        self.assertEqual(self.scraper._extract_data(html).price, 12.49)

    def test_unrelated_page_raises(self) -> None:
        """A page of a different shape is rejected."""
        with self.assertRaises(ValueError):
            self.scraper._extract_data(UNRELATED_HTML)

    def test_additional_strategy_used_after_default(self) -> None:
        """New page shapes are added as data, tried after earlier ones."""
        shop_layout = ExtractionStrategy(
            name="shop",
            title_selector="h1.product-title",
            price_selectors=(".product-price",),
            image_selectors=(".product-image img",),
            image_attribute="data-src",
        )
        scraper = ProductScraper(strategies=(AMAZON_PRODUCT_PAGE, shop_layout))
        html = """
        <h1 class="product-title">Desk Lamp</h1>
        <div class="product-price">€ 34,00</div>
        <div class="product-image"><img data-src="https://img.example.com/lamp.jpg"></div>
        """
        record = scraper._extract_data(html)
        self.assertEqual(record.title, "Desk Lamp")
        self.assertEqual(record.price, 3400.0)
        self.assertEqual(record.image_url, "https://img.example.com/lamp.jpg")


class TestFetchPage(unittest.TestCase):
    """Tests for BaseScraper._fetch_page via ProductScraper."""

    def test_sends_browser_headers_and_timeout(self) -> None:
        """Requests carry UA, language and referer headers plus a timeout."""
        session = make_session(make_response(AMAZON_HTML))
        scraper = ProductScraper(session=session, timeout=7.5)
        scraper.scrape("https://www.amazon.com/dp/B0TEST")

        _, kwargs = session.get.call_args
        headers = kwargs["headers"]
        self.assertIn("Mozilla", headers["User-Agent"])
        self.assertEqual(headers["Accept-Language"], "en-US,en;q=0.9")
        self.assertEqual(headers["Referer"], "https://www.google.com/")
        self.assertEqual(kwargs["timeout"], 7.5)

    def test_retries_after_network_error(self) -> None:
        """A transient failure is retried within the attempt budget."""
        session = make_session(
            requests.ConnectionError("reset"),
            make_response(AMAZON_HTML),
        )
        scraper = ProductScraper(session=session, max_retries=2)
        record = scraper.scrape("https://www.amazon.com/dp/B0TEST")
        self.assertEqual(record.title, "Widget Pro 3000")
        self.assertEqual(session.get.call_count, 2)

    def test_raises_after_last_attempt(self) -> None:
        """Errors propagate once every attempt failed."""
        session = make_session(
            requests.Timeout("slow"),
            requests.Timeout("slow"),
        )
        scraper = ProductScraper(session=session, max_retries=2)
        with self.assertRaises(requests.Timeout):
            scraper.scrape("https://www.amazon.com/dp/B0TEST")
        self.assertEqual(session.get.call_count, 2)

    def test_http_error_status_is_a_failure(self) -> None:
        """A 503 response counts as a failed attempt."""
        session = make_session(make_response("busy", status_code=503))
        scraper = ProductScraper(session=session, max_retries=1)
        with self.assertRaises(requests.HTTPError):
            scraper.scrape("https://www.amazon.com/dp/B0TEST")

    def test_captcha_page_is_a_failure(self) -> None:
        """Robot check pages are retried and then rejected."""
        captcha = make_response(ROBOT_CHECK_HTML)
        session = make_session(captcha, captcha)
        scraper = ProductScraper(session=session, max_retries=2)
        with self.assertRaises(requests.RequestException):
            scraper.scrape("https://www.amazon.com/dp/B0TEST")
        self.assertEqual(session.get.call_count, 2)

    def test_captcha_mention_in_product_page_accepted(self) -> None:
        """Product pages whose scripts mention captcha are not treated as blocked."""
        html = AMAZON_HTML.replace(
            "</body>", "<script>window.captchaConfig = {enabled: false};</script></body>"
        )
        session = make_session(make_response(html))
        scraper = ProductScraper(session=session, max_retries=1)
        record = scraper.scrape("https://www.amazon.com/dp/B0TEST")
        self.assertEqual(record.title, "Widget Pro 3000")
        self.assertEqual(session.get.call_count, 1)


if __name__ == "__main__":
    unittest.main()
