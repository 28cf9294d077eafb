from typing import List
from fastapi import APIRouter, Depends, HTTPException

from core.dependencies import get_checkout_service, get_order_status_service
from schemas.order import CancelOrderRequest, CheckoutRequest, OrderOut, PaymentStatusUpdate
from services.checkout import CheckoutService
from services.order_status import OrderStatusService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(data: CheckoutRequest, service: CheckoutService = Depends(get_checkout_service)):
    return service.checkout(data)


@router.get("/number/{order_number}", response_model=OrderOut)
def get_order_by_number(order_number: str, service: CheckoutService = Depends(get_checkout_service)):
    order = service.get_order_by_number(order_number)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/user/{user_id}", response_model=List[OrderOut])
def list_user_orders(user_id: int, service: CheckoutService = Depends(get_checkout_service)):
    return service.get_user_orders(user_id)


@router.post("/{order_id}/cancel", status_code=204)
def cancel_order(
    order_id: int,
    data: CancelOrderRequest,
    service: OrderStatusService = Depends(get_order_status_service),
):
    service.cancel_order(order_id, reason=data.reason, admin_id=data.admin_id)
    return None


@router.patch("/{order_id}/payment-status", status_code=204)
def update_payment_status(
    order_id: int,
    data: PaymentStatusUpdate,
    service: OrderStatusService = Depends(get_order_status_service),
):
    service.confirm_payment(order_id, data.payment_status, admin_id=data.admin_id)
    return None
