from datetime import datetime
from typing import Callable, Optional

import structlog

from core.db import utc_now
from core.errors import NotFoundError, ValidationError
from models.enums import PaymentMethod
from repositories.interfaces import OrderRepository, ProductRepository, UserRepository
from schemas.order import CheckoutRequest, OrderItemIn, OrderOut
from services.order_assembler import OrderAssembler
from services.order_numbers import OrderNumberGenerator
from services.pricing import PricingCalculator
from services.side_effects import SideEffectDispatcher
from services.stock import StockValidator

logger = structlog.get_logger(__name__)


def merge_lines(items: list[OrderItemIn]) -> list[tuple[int, int]]:
    """Collapse repeated product ids into one line, keeping first-seen order."""
    merged: dict[int, int] = {}
    for item in items:
        merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity
    return list(merged.items())


class CheckoutService:
    """Creates an order from the cart lines a user explicitly selected.

    Every precondition is checked before the single transactional write in
    ``OrderRepository.create``. Once that write succeeds the order stands;
    cart cleanup afterwards is best-effort and never rolls it back.
    """

    def __init__(
        self,
        products: ProductRepository,
        users: UserRepository,
        orders: OrderRepository,
        order_numbers: OrderNumberGenerator,
        side_effects: SideEffectDispatcher,
        pricing: Optional[PricingCalculator] = None,
        stock: Optional[StockValidator] = None,
        assembler: Optional[OrderAssembler] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.products = products
        self.users = users
        self.orders = orders
        self.order_numbers = order_numbers
        self.side_effects = side_effects
        self.pricing = pricing or PricingCalculator.from_settings()
        self.stock = stock or StockValidator()
        self.assembler = assembler or OrderAssembler()
        self.clock = clock

    def checkout(self, request: CheckoutRequest) -> OrderOut:
        log = logger.bind(user_id=request.user_id, payment_method=request.payment_method.value)
        log.info("checkout_started", items=[(i.product_id, i.quantity) for i in request.items])

        if not request.items:
            raise ValidationError("No products were selected for this order")

        address = self.users.get_address(request.address_id, request.user_id)
        if address is None:
            raise NotFoundError("Address not found")

        user = self.users.get(request.user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not user.phone or not user.phone.strip():
            raise ValidationError("Please add a phone number to your account before placing an order")

        lines = []
        for product_id, quantity in merge_lines(request.items):
            product = self.stock.validate(product_id, self.products.get(product_id), quantity)
            lines.append((product, quantity))

        quote = self.pricing.quote(lines, request.shipping_method, request.shipping_fee)
        if quote.free_shipping:
            log.info("free_shipping_applied", subtotal=str(quote.subtotal))

        order = self.assembler.assemble(
            order_number=self.order_numbers.generate(),
            user=user,
            address=address,
            quote=quote,
            payment_method=request.payment_method,
            notes=request.notes,
            ordered_at=self.clock(),
        )
        order = self.orders.create(order)
        log = log.bind(order_id=order.id, order_number=order.order_number)
        log.info(
            "order_created",
            subtotal=str(quote.subtotal),
            discount_amount=str(quote.discount_amount),
            shipping_fee=str(quote.shipping_fee),
            total_amount=str(quote.total_amount),
        )

        if request.payment_method == PaymentMethod.COD:
            self.side_effects.clear_cart_lines(user.id, order.product_ids)
        else:
            # Prepaid: the cart stays intact until the payment is confirmed
            log.info("cart_clear_deferred", reason="awaiting payment confirmation")

        return OrderOut.from_order(order)

    def get_order_by_number(self, order_number: str) -> Optional[OrderOut]:
        order = self.orders.get_by_number(order_number)
        return OrderOut.from_order(order) if order else None

    def get_user_orders(self, user_id: int) -> list[OrderOut]:
        return [OrderOut.from_order(order) for order in self.orders.list_for_user(user_id)]
