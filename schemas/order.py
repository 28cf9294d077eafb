from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from models.enums import OrderStatus, PaymentMethod, PaymentStatus, ShippingMethod


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    user_id: int
    address_id: int
    payment_method: PaymentMethod
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    shipping_fee: Optional[Decimal] = Field(default=None, ge=0)
    items: List[OrderItemIn]
    notes: Optional[str] = None


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = None
    admin_id: Optional[int] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus
    admin_id: Optional[int] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    admin_id: int
    note: Optional[str] = None


class OrderItemOut(BaseModel):
    order_item_id: int
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price: float
    total_price: float
    image_url: Optional[str] = None


class OrderOut(BaseModel):
    order_id: int
    order_number: str
    user_id: int
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    shipping_city: str
    subtotal: float
    shipping_fee: float
    discount_amount: float
    total_amount: float
    notes: Optional[str] = None
    ordered_at: datetime
    items: List[OrderItemOut]

    @classmethod
    def from_order(cls, order) -> "OrderOut":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            shipping_address=order.shipping_address,
            shipping_city=order.shipping_city,
            subtotal=order.subtotal,
            shipping_fee=order.shipping_fee,
            discount_amount=order.discount_amount,
            total_amount=order.total_amount,
            notes=order.notes,
            ordered_at=order.ordered_at,
            items=[
                OrderItemOut(
                    order_item_id=item.id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_sku=item.product_sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                    image_url=item.image_url,
                )
                for item in order.items
            ],
        )


class OrderStatusHistoryOut(BaseModel):
    history_id: int
    old_status: Optional[OrderStatus] = None
    new_status: OrderStatus
    note: Optional[str] = None
    changed_by_user: Optional[int] = None
    changed_by_admin: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry) -> "OrderStatusHistoryOut":
        return cls(
            history_id=entry.id,
            old_status=entry.old_status,
            new_status=entry.new_status,
            note=entry.note,
            changed_by_user=entry.changed_by_user,
            changed_by_admin=entry.changed_by_admin,
            created_at=entry.created_at,
        )


class OrderDetailOut(OrderOut):
    """Admin view of an order with its full status history."""

    history: List[OrderStatusHistoryOut]

    @classmethod
    def from_order_with_history(cls, order, history) -> "OrderDetailOut":
        base = OrderOut.from_order(order)
        return cls(
            **{name: getattr(base, name) for name in OrderOut.model_fields},
            history=[OrderStatusHistoryOut.from_entry(entry) for entry in history],
        )


class SoldCountOut(BaseModel):
    product_id: int
    sold_count: int
