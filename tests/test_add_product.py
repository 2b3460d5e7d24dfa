# tests/test_add_product.py

"""Tests for the add_product command line helper."""

import unittest
from unittest.mock import patch

import add_product
from fakes import StubExtractor
from price_tracker.config import Settings
from price_tracker.models.database import Database


class TestAddProduct(unittest.TestCase):
    """Tests for add_product and list_products."""

    def setUp(self) -> None:
        self.db = Database("sqlite://")
        self.settings = Settings(database_url="sqlite://", log_file=None)
        patcher = patch.object(add_product, "Extractor", return_value=StubExtractor(title="Desk Lamp"))
        self.extractor_cls = patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.db.close()

    def test_add_new_and_existing(self) -> None:
        """Adding twice succeeds both times and keeps one product."""
        self.assertTrue(add_product.add_product(self.db, self.settings, "https://shop/p/lamp"))
        self.assertTrue(add_product.add_product(self.db, self.settings, "https://shop/p/lamp"))
        self.assertEqual(len(self.db.get_all_products()), 1)

    def test_invalid_url(self) -> None:
        """Non-http URLs are refused."""
        with self.assertLogs("add_product", level="ERROR"):
            self.assertFalse(add_product.add_product(self.db, self.settings, "shop/p/lamp"))
        self.assertEqual(self.db.get_all_products(), [])

    def test_list_products(self) -> None:
        """Listing logs one line per product."""
        add_product.add_product(self.db, self.settings, "https://shop/p/lamp")
        with self.assertLogs("add_product", level="INFO") as logs:
            add_product.list_products(self.db)
        self.assertTrue(any("Desk Lamp" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
