from typing import Iterable, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from core.db import persistence_errors, utc_now
from core.errors import StockError
from models.order import Order
from models.order_item import OrderItem
from models.order_status_history import OrderStatusHistory
from models.product import Product

logger = structlog.get_logger(__name__)


class SqlOrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def _select(self):
        return select(Order).options(
            selectinload(Order.items).selectinload(OrderItem.product).selectinload(Product.images)
        )

    def create(self, order: Order) -> Order:
        with persistence_errors(self.db, "create order"):
            for item in order.items:
                # Conditional decrement: succeeds only while enough stock remains
                result = self.db.execute(
                    update(Product)
                    .where(Product.id == item.product_id, Product.stock_quantity >= item.quantity)
                    .values(stock_quantity=Product.stock_quantity - item.quantity)
                    .execution_options(synchronize_session="fetch")
                )
                if result.rowcount != 1:
                    self.db.rollback()
                    available = self.db.scalar(
                        select(Product.stock_quantity).where(Product.id == item.product_id)
                    )
                    logger.warning(
                        "stock_reservation_failed",
                        product_id=item.product_id,
                        requested=item.quantity,
                        available=available,
                    )
                    raise StockError(item.product_id, item.product_name, available or 0, item.quantity)

            order.history.append(
                OrderStatusHistory(
                    old_status=None,
                    new_status=order.status,
                    changed_by_user=order.user_id,
                    note="Order created",
                )
            )
            self.db.add(order)
            self.db.commit()
        return order

    def get(self, order_id: int) -> Optional[Order]:
        with persistence_errors(self.db, "load order"):
            return self.db.scalar(self._select().where(Order.id == order_id))

    def get_by_number(self, order_number: str) -> Optional[Order]:
        with persistence_errors(self.db, "load order"):
            return self.db.scalar(self._select().where(Order.order_number == order_number))

    def list_for_user(self, user_id: int) -> list[Order]:
        with persistence_errors(self.db, "load orders"):
            stmt = self._select().where(Order.user_id == user_id).order_by(Order.ordered_at.desc(), Order.id.desc())
            return list(self.db.scalars(stmt))

    def list_all(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Order]:
        with persistence_errors(self.db, "load orders"):
            stmt = self._select().order_by(Order.ordered_at.desc(), Order.id.desc())
            if status is not None:
                stmt = stmt.where(Order.status == status)
            if payment_status is not None:
                stmt = stmt.where(Order.payment_status == payment_status)
            if offset:
                stmt = stmt.offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(self.db.scalars(stmt))

    def history(self, order_id: int) -> list[OrderStatusHistory]:
        with persistence_errors(self.db, "load status history"):
            stmt = (
                select(OrderStatusHistory)
                .where(OrderStatusHistory.order_id == order_id)
                .order_by(OrderStatusHistory.id)
            )
            return list(self.db.scalars(stmt))

    def count_by_number_prefix(self, prefix: str) -> int:
        with persistence_errors(self.db, "count orders"):
            return self.db.scalar(
                select(func.count(Order.id)).where(Order.order_number.like(f"{prefix}%"))
            ) or 0

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
        values = {"status": new_status, "updated_at": utc_now()}
        if notes is not None:
            values["notes"] = notes

        with persistence_errors(self.db, "update order status"):
            result = self.db.execute(
                update(Order)
                .where(Order.id == order.id, Order.status == expected_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                self.db.refresh(order)
                return False

            if restock:
                for item in order.items:
                    self.db.execute(
                        update(Product)
                        .where(Product.id == item.product_id)
                        .values(stock_quantity=Product.stock_quantity + item.quantity)
                        .execution_options(synchronize_session="fetch")
                    )

            self.db.add(
                OrderStatusHistory(
                    order_id=order.id,
                    old_status=expected_status,
                    new_status=new_status,
                    note=note,
                    changed_by_user=changed_by_user,
                    changed_by_admin=changed_by_admin,
                )
            )
            self.db.commit()
            self.db.refresh(order)
        return True

    def set_payment_status(self, order: Order, payment_status: str) -> None:
        with persistence_errors(self.db, "update payment status"):
            order.payment_status = payment_status
            self.db.commit()

    def status_events(self, statuses: Iterable[str]) -> list[tuple[int, str]]:
        with persistence_errors(self.db, "load status history"):
            rows = self.db.execute(
                select(OrderStatusHistory.order_id, OrderStatusHistory.new_status).where(
                    OrderStatusHistory.new_status.in_(list(statuses))
                )
            )
            return [(order_id, status) for order_id, status in rows]

    def items_for_orders(self, order_ids: Iterable[int]) -> list[OrderItem]:
        ids = list(order_ids)
        if not ids:
            return []
        with persistence_errors(self.db, "load order items"):
            return list(self.db.scalars(select(OrderItem).where(OrderItem.order_id.in_(ids))))
