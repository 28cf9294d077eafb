"""Storage contracts the order services depend on.

Services receive these through their constructors. The SQLAlchemy
implementations live next to this module; the test suite ships in-memory
versions with the same behaviour.
"""

from typing import Any, Callable, Iterable, Optional, Protocol

from models.address import UserAddress
from models.cart import CartItem
from models.order import Order
from models.order_item import OrderItem
from models.order_status_history import OrderStatusHistory
from models.product import Product
from models.user import User


class ProductRepository(Protocol):
    def get(self, product_id: int) -> Optional[Product]: ...


class UserRepository(Protocol):
    def get(self, user_id: int) -> Optional[User]: ...

    def get_address(self, address_id: int, user_id: int) -> Optional[UserAddress]:
        """Address lookup scoped to its owner; another user's address is None."""
        ...


class OrderRepository(Protocol):
    def create(self, order: Order) -> Order:
        """Reserve stock for every item and persist the order in one transaction.

        Raises StockError when a conditional decrement fails and
        PersistenceError on store failure. Nothing is written in either case.
        """
        ...

    def get(self, order_id: int) -> Optional[Order]: ...

    def get_by_number(self, order_number: str) -> Optional[Order]: ...

    def list_for_user(self, user_id: int) -> list[Order]: ...

    def list_all(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Order]:
        """Newest first, optionally filtered by status and payment status."""
        ...

    def history(self, order_id: int) -> list[OrderStatusHistory]:
        """Status history rows of one order in the order they were written."""
        ...

    def count_by_number_prefix(self, prefix: str) -> int: ...

    def transition(
        self,
        order: Order,
        expected_status: str,
        new_status: str,
        *,
        note: Optional[str] = None,
        notes: Optional[str] = None,
        changed_by_user: Optional[int] = None,
        changed_by_admin: Optional[int] = None,
        restock: bool = False,
    ) -> bool:
        """Move ``order`` to ``new_status`` only if it is still ``expected_status``.

        Appends a history row, optionally overwrites ``notes`` and returns the
        reserved stock. Returns False without writing when the guard fails.
        """
        ...

    def set_payment_status(self, order: Order, payment_status: str) -> None: ...

    def status_events(self, statuses: Iterable[str]) -> list[tuple[int, str]]:
        """(order_id, new_status) pairs from the history for the given statuses."""
        ...

    def items_for_orders(self, order_ids: Iterable[int]) -> list[OrderItem]: ...


class OrderSequenceRepository(Protocol):
    def next_value(self, key: str, seed: Optional[Callable[[], int]] = None) -> int:
        """Atomically increment the counter for ``key``.

        A missing counter starts at ``seed()`` (or 0), so the first value is
        one more than that. ``seed`` is only called when the counter is created.
        """
        ...


class CartRepository(Protocol):
    def list_for_user(self, user_id: int) -> list[CartItem]: ...

    def get_line(self, user_id: int, product_id: int) -> Optional[CartItem]: ...

    def save(self, line: CartItem) -> CartItem: ...

    def delete_line(self, user_id: int, product_id: int) -> bool: ...

    def delete_products(self, user_id: int, product_ids: Iterable[int]) -> int:
        """Delete the user's lines for exactly these products; returns rows removed."""
        ...

    def clear(self, user_id: int) -> int: ...


class AuditLogRepository(Protocol):
    def append(
        self,
        admin_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None: ...
