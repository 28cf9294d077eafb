from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from core.dependencies import get_order_status_service
from models.enums import OrderStatus, PaymentStatus
from schemas.order import OrderDetailOut, OrderOut, OrderStatusUpdate, SoldCountOut
from services.order_status import OrderStatusService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/orders", response_model=List[OrderOut])
def list_orders(
    status: Optional[OrderStatus] = Query(default=None),
    payment_status: Optional[PaymentStatus] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    service: OrderStatusService = Depends(get_order_status_service),
):
    return service.list_orders(status=status, payment_status=payment_status, limit=limit, offset=offset)


@router.get("/orders/{order_id}", response_model=OrderDetailOut)
def get_order(order_id: int, service: OrderStatusService = Depends(get_order_status_service)):
    return service.get_order_detail(order_id)


@router.patch("/orders/{order_id}/status", status_code=204)
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    service: OrderStatusService = Depends(get_order_status_service),
):
    service.update_status(order_id, data.status, admin_id=data.admin_id, note=data.note)
    return None


@router.get("/products/sold-counts", response_model=List[SoldCountOut])
def sold_counts(
    product_ids: Optional[List[int]] = Query(default=None),
    service: OrderStatusService = Depends(get_order_status_service),
):
    counts = service.sold_counts(product_ids)
    return [{"product_id": pid, "sold_count": count} for pid, count in sorted(counts.items())]
