from fastapi import Depends
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db
from repositories import (
    SqlAuditLogRepository,
    SqlCartRepository,
    SqlOrderRepository,
    SqlOrderSequenceRepository,
    SqlProductRepository,
    SqlUserRepository,
)
from services.audit import AuditLogger
from services.cart_reconciler import CartReconciler
from services.cart_service import CartService
from services.checkout import CheckoutService
from services.order_numbers import OrderNumberGenerator
from services.order_status import OrderStatusService
from services.payment_webhook import PaymentWebhookService
from services.pricing import PricingCalculator
from services.side_effects import SideEffectDispatcher


def get_side_effects(db: Session = Depends(get_db)) -> SideEffectDispatcher:
    return SideEffectDispatcher(
        cart_reconciler=CartReconciler(SqlCartRepository(db)),
        audit_logger=AuditLogger(SqlAuditLogRepository(db)),
    )


def get_checkout_service(
    db: Session = Depends(get_db),
    side_effects: SideEffectDispatcher = Depends(get_side_effects),
) -> CheckoutService:
    orders = SqlOrderRepository(db)
    return CheckoutService(
        products=SqlProductRepository(db),
        users=SqlUserRepository(db),
        orders=orders,
        order_numbers=OrderNumberGenerator(
            SqlOrderSequenceRepository(db), orders, prefix=settings.ORDER_NUMBER_PREFIX
        ),
        side_effects=side_effects,
        pricing=PricingCalculator.from_settings(),
    )


def get_order_status_service(
    db: Session = Depends(get_db),
    side_effects: SideEffectDispatcher = Depends(get_side_effects),
) -> OrderStatusService:
    return OrderStatusService(SqlOrderRepository(db), side_effects)


def get_payment_webhook_service(
    db: Session = Depends(get_db),
    status_service: OrderStatusService = Depends(get_order_status_service),
) -> PaymentWebhookService:
    return PaymentWebhookService(
        SqlOrderRepository(db),
        status_service,
        account_number=settings.PAYMENT_ACCOUNT_NUMBER,
        secret=settings.PAYMENT_WEBHOOK_SECRET,
        tolerance=settings.PAYMENT_AMOUNT_TOLERANCE,
        order_prefix=settings.ORDER_NUMBER_PREFIX,
    )


def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(SqlCartRepository(db), SqlProductRepository(db))
