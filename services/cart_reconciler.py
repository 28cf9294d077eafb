from typing import Iterable

import structlog

from core.errors import PersistenceError
from repositories.interfaces import CartRepository

logger = structlog.get_logger(__name__)


class CartReconciler:
    """Removes the cart lines of products a user has just ordered.

    Only the given products are touched; emptying the whole cart is the
    user-initiated ``CartService.clear_cart``.
    """

    def __init__(self, carts: CartRepository):
        self.carts = carts

    def delete_lines(self, user_id: int, product_ids: Iterable[int]) -> int:
        """Strict variant; raises PersistenceError so a task can retry it."""
        product_ids = sorted(set(product_ids))
        if not product_ids:
            return 0
        deleted = self.carts.delete_products(user_id, product_ids)
        logger.info("cart_lines_removed", user_id=user_id, product_ids=product_ids, deleted=deleted)
        return deleted

    def reconcile(self, user_id: int, product_ids: Iterable[int]) -> int:
        """Best-effort variant; a store failure is logged and reported as 0 rows."""
        try:
            return self.delete_lines(user_id, product_ids)
        except PersistenceError as exc:
            logger.error("cart_reconcile_failed", user_id=user_id, product_ids=list(product_ids), error=str(exc))
            return 0
