import structlog

from core.errors import NotFoundError, StockError, ValidationError
from models.cart import CartItem
from repositories.interfaces import CartRepository, ProductRepository
from schemas.cart import CartItemOut, CartOut

logger = structlog.get_logger(__name__)


class CartService:
    def __init__(self, carts: CartRepository, products: ProductRepository):
        self.carts = carts
        self.products = products

    def _available_product(self, product_id: int, quantity: int):
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        if not product.is_active:
            raise ValidationError("Product is not available")
        if quantity > product.stock_quantity:
            raise StockError(product.id, product.name, product.stock_quantity, quantity)
        return product

    def get_cart(self, user_id: int) -> CartOut:
        lines = self.carts.list_for_user(user_id)
        return CartOut(
            user_id=user_id,
            items=[CartItemOut.from_line(line) for line in lines],
            total_quantity=sum(line.quantity for line in lines),
        )

    def add_to_cart(self, user_id: int, product_id: int, quantity: int = 1) -> CartItem:
        """Add a product, or increase the quantity of its existing line."""
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        line = self.carts.get_line(user_id, product_id)
        new_quantity = quantity + (line.quantity if line else 0)
        product = self._available_product(product_id, new_quantity)

        if line is None:
            line = CartItem(user_id=user_id, product_id=product_id, quantity=new_quantity, product=product)
        else:
            line.quantity = new_quantity
        line = self.carts.save(line)
        logger.info("cart_line_saved", user_id=user_id, product_id=product_id, quantity=new_quantity)
        return line

    def set_quantity(self, user_id: int, product_id: int, quantity: int) -> CartItem:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        line = self.carts.get_line(user_id, product_id)
        if line is None:
            raise NotFoundError("Cart item not found")
        self._available_product(product_id, quantity)
        line.quantity = quantity
        return self.carts.save(line)

    def remove_item(self, user_id: int, product_id: int) -> None:
        if not self.carts.delete_line(user_id, product_id):
            raise NotFoundError("Cart item not found")
        logger.info("cart_line_removed", user_id=user_id, product_id=product_id)

    def clear_cart(self, user_id: int) -> int:
        """Empty the whole cart; only ever invoked by the user."""
        deleted = self.carts.clear(user_id)
        logger.info("cart_cleared", user_id=user_id, deleted=deleted)
        return deleted
