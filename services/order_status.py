"""Order lifecycle: fulfillment status, cancellation and payment status.

Fulfillment and payment move independently. Confirming a payment never
advances fulfillment; an admin does that through ``update_status``.
"""

from collections import defaultdict
from typing import Iterable, Optional

import structlog

from core.errors import NotFoundError, StateError
from models.enums import AuditAction, OrderStatus, PaymentMethod, PaymentStatus
from models.order import Order
from repositories.interfaces import OrderRepository
from schemas.order import OrderDetailOut, OrderOut
from services.side_effects import SideEffectDispatcher

logger = structlog.get_logger(__name__)


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPING, OrderStatus.CANCELED}),
    OrderStatus.SHIPPING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.RETURNED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
}


def can_transition(current: OrderStatus | str, target: OrderStatus | str) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: OrderStatus | str, target: OrderStatus | str) -> None:
    if not can_transition(current, target):
        raise StateError(OrderStatus(current).value, OrderStatus(target).value)


def count_sold(status_events: Iterable[tuple[int, str]], items: Iterable) -> dict[int, int]:
    """Sum item quantities of orders delivered and never returned.

    A "returned" row vetoes the order no matter where it sits in the history.
    """
    delivered: set[int] = set()
    returned: set[int] = set()
    for order_id, status in status_events:
        if status == OrderStatus.RETURNED.value:
            returned.add(order_id)
        elif status == OrderStatus.DELIVERED.value:
            delivered.add(order_id)

    counted = delivered - returned
    sold: dict[int, int] = defaultdict(int)
    for item in items:
        if item.order_id in counted:
            sold[item.product_id] += item.quantity
    return dict(sold)


class OrderStatusService:
    def __init__(self, orders: OrderRepository, side_effects: SideEffectDispatcher):
        self.orders = orders
        self.side_effects = side_effects

    def _load(self, order_id: int) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        return order

    def cancel_order(self, order_id: int, reason: Optional[str] = None, admin_id: Optional[int] = None) -> None:
        order = self._load(order_id)
        current = order.status
        if current != OrderStatus.PROCESSING.value:
            raise StateError(
                current,
                OrderStatus.CANCELED.value,
                f'Cannot cancel order with status "{current}". Only "processing" orders can be canceled.',
            )

        applied = self.orders.transition(
            order,
            OrderStatus.PROCESSING.value,
            OrderStatus.CANCELED.value,
            note=reason or "Order canceled",
            notes=reason,
            changed_by_user=None if admin_id else order.user_id,
            changed_by_admin=admin_id,
            restock=True,
        )
        if not applied:
            # Lost a race with another status change
            raise StateError(
                order.status,
                OrderStatus.CANCELED.value,
                f'Cannot cancel order with status "{order.status}". Only "processing" orders can be canceled.',
            )

        logger.info("order_canceled", order_id=order_id, order_number=order.order_number, reason=reason or "")
        if admin_id is not None:
            self.side_effects.record_audit(
                admin_id, AuditAction.CANCEL_ORDER, str(order_id), details={"order_id": order_id, "reason": reason}
            )

    def update_status(
        self,
        order_id: int,
        new_status: OrderStatus | str,
        admin_id: int,
        note: Optional[str] = None,
    ) -> Order:
        new_status = OrderStatus(new_status)
        if new_status == OrderStatus.CANCELED:
            self.cancel_order(order_id, reason=note, admin_id=admin_id)
            return self._load(order_id)

        order = self._load(order_id)
        old_status = order.status
        ensure_transition(old_status, new_status)

        if not self.orders.transition(order, old_status, new_status.value, note=note, changed_by_admin=admin_id):
            raise StateError(order.status, new_status.value)

        logger.info(
            "order_status_updated",
            order_id=order_id,
            old_status=old_status,
            new_status=new_status.value,
            admin_id=admin_id,
        )
        self.side_effects.record_audit(
            admin_id,
            AuditAction.UPDATE_ORDER_STATUS,
            str(order_id),
            details={"order_id": order_id, "old_status": old_status, "new_status": new_status.value, "note": note},
        )
        return order

    def confirm_payment(
        self,
        order_id: int,
        status: PaymentStatus | str = PaymentStatus.PAID,
        admin_id: Optional[int] = None,
    ) -> Order:
        status = PaymentStatus(status)
        order = self._load(order_id)
        current = PaymentStatus(order.payment_status)
        log = logger.bind(order_id=order_id, order_number=order.order_number, payment_method=order.payment_method)

        if current == status:
            log.info("payment_status_unchanged", payment_status=status.value)
            return order
        if status not in PAYMENT_TRANSITIONS[current]:
            raise StateError(
                current.value,
                status.value,
                f'Cannot change payment status from "{current.value}" to "{status.value}"',
            )

        self.orders.set_payment_status(order, status.value)
        # Fulfillment status is left for an admin to advance
        log.info("payment_confirmed", payment_status=status.value, status=order.status)

        if admin_id is not None:
            self.side_effects.record_audit(
                admin_id,
                AuditAction.UPDATE_PAYMENT_STATUS,
                str(order_id),
                details={"order_id": order_id, "payment_status": status.value},
            )

        if status == PaymentStatus.PAID and order.payment_method != PaymentMethod.COD.value:
            self.side_effects.clear_cart_lines(order.user_id, order.product_ids)
        return order

    def list_orders(
        self,
        status: Optional[OrderStatus | str] = None,
        payment_status: Optional[PaymentStatus | str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[OrderOut]:
        orders = self.orders.list_all(
            status=OrderStatus(status).value if status is not None else None,
            payment_status=PaymentStatus(payment_status).value if payment_status is not None else None,
            limit=limit,
            offset=offset,
        )
        return [OrderOut.from_order(order) for order in orders]

    def get_order_detail(self, order_id: int) -> OrderDetailOut:
        order = self._load(order_id)
        return OrderDetailOut.from_order_with_history(order, self.orders.history(order_id))

    def sold_counts(self, product_ids: Optional[Iterable[int]] = None) -> dict[int, int]:
        events = self.orders.status_events([OrderStatus.DELIVERED.value, OrderStatus.RETURNED.value])
        order_ids = {order_id for order_id, _ in events}
        sold = count_sold(events, self.orders.items_for_orders(order_ids))
        if product_ids is None:
            return sold
        return {product_id: sold.get(product_id, 0) for product_id in product_ids}
