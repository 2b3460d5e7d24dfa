class ProductNotFoundError(LookupError):
    """Raised when an update is requested for a product that is not tracked."""

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class InvalidTrackingRequest(ValueError):
    """Raised when a tracking request has a missing or malformed URL."""
