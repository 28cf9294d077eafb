from typing import Optional

from core.errors import NotFoundError, StockError
from models.product import Product


class StockValidator:
    """Pre-write availability check for one checkout line.

    This is a read-then-trust check; the binding reservation is the
    conditional decrement made when the order is persisted.
    """

    def validate(self, product_id: int, product: Optional[Product], quantity: int) -> Product:
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        # Inactive products are reported as having nothing left to sell
        available = product.stock_quantity if product.is_active else 0
        if quantity > available:
            raise StockError(product.id, product.name, available, quantity)
        return product
