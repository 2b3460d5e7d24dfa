import logging
from typing import List, Optional

from price_tracker.errors import ProductNotFoundError
from price_tracker.models.database import Database
from price_tracker.models.schemas import ProductDetail, ProductRecord, ProductView
from price_tracker.services.reconciler import price_change

logger = logging.getLogger('price_analysis')


class PriceAnalyzer:
    """Read-side views: products with their derived price change and history."""

    def __init__(self, db: Database):
        self.db = db

    def product_view(self, product: ProductRecord) -> ProductView:
        change = self.db.calculate_price_change(product.id)
        return ProductView(**product.model_dump(), price_change=change)

    def list_products(self) -> List[ProductView]:
        products = self.db.get_all_products()
        logger.debug(f"Found {len(products)} products in database")
        return [self.product_view(product) for product in products]

    def product_detail(self, product: ProductRecord) -> ProductDetail:
        history = self.db.get_price_history(product.id)
        view = ProductView(**product.model_dump(), price_change=price_change(history))
        return ProductDetail(product=view, price_history=history)

    def get_product_detail(self, product_id: str) -> ProductDetail:
        product = self.db.get_product_by_id(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return self.product_detail(product)

    def find_by_url(self, url: str) -> Optional[ProductDetail]:
        product = self.db.get_product_by_url(url)
        return self.product_detail(product) if product else None
