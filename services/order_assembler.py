from datetime import datetime
from typing import Optional

from core.db import utc_now
from models.address import UserAddress
from models.enums import OrderStatus, PaymentMethod, PaymentStatus
from models.order import Order
from models.order_item import OrderItem
from models.user import User
from services.pricing import PriceQuote


def product_sku(product) -> str:
    return product.sku or f"SKU-{product.id}"


class OrderAssembler:
    """Builds the unsaved Order aggregate from validated checkout inputs."""

    def assemble(
        self,
        *,
        order_number: str,
        user: User,
        address: UserAddress,
        quote: PriceQuote,
        payment_method: PaymentMethod,
        notes: Optional[str] = None,
        ordered_at: Optional[datetime] = None,
    ) -> Order:
        items = [
            OrderItem(
                product_id=line.product.id,
                product=line.product,
                product_name=line.product.name,
                product_sku=product_sku(line.product),
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.line_total,
            )
            for line in quote.lines
        ]
        return Order(
            order_number=order_number,
            user_id=user.id,
            status=OrderStatus.PROCESSING.value,
            payment_method=PaymentMethod(payment_method).value,
            payment_status=PaymentStatus.UNPAID.value,
            customer_name=user.full_name,
            customer_email=user.email,
            customer_phone=user.phone.strip(),
            shipping_address=address.full_address,
            shipping_city=address.city,
            subtotal=quote.subtotal,
            shipping_fee=quote.shipping_fee,
            discount_amount=quote.discount_amount,
            total_amount=quote.total_amount,
            notes=notes,
            ordered_at=ordered_at or utc_now(),
            items=items,
        )
