"""Bank transfer confirmation from Sepay webhook callbacks.

A transfer is matched to an order through the order number in its
description. Transfers that cannot be matched are acknowledged and ignored
so the sender does not keep retrying them.
"""

import hashlib
import hmac
import re
from decimal import Decimal
from typing import Optional

import structlog

from core.errors import SignatureError, ValidationError
from models.enums import PaymentStatus
from repositories.interfaces import OrderRepository
from schemas.payment import SepayTransaction, WebhookOutcome, WebhookResult
from services.order_status import OrderStatusService

logger = structlog.get_logger(__name__)


def extract_order_number(description: Optional[str], prefix: str = "ORD") -> Optional[str]:
    """First ``<prefix><8-11 digits>`` in the description, upper-cased."""
    match = re.search(rf"{re.escape(prefix)}\d{{8,11}}", description or "", re.IGNORECASE)
    return match.group(0).upper() if match else None


def sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class PaymentWebhookService:
    def __init__(
        self,
        orders: OrderRepository,
        status_service: OrderStatusService,
        account_number: str,
        secret: str,
        tolerance: Decimal = Decimal("1000"),
        order_prefix: str = "ORD",
    ):
        self.orders = orders
        self.status_service = status_service
        self.account_number = account_number
        self.secret = secret
        self.tolerance = tolerance
        self.order_prefix = order_prefix

    def verify_signature(self, body: bytes, signature: Optional[str]) -> None:
        if not signature:
            logger.warning("payment_webhook_signature_missing")
            raise ValidationError("Missing signature")
        # No configured secret means no request can be trusted
        if not self.secret or not hmac.compare_digest(sign(body, self.secret), signature.lower()):
            logger.warning("payment_webhook_signature_invalid")
            raise SignatureError("Invalid signature")

    def is_valid(self, transaction: SepayTransaction) -> bool:
        return (
            bool(self.account_number)
            and transaction.account_number == self.account_number
            and transaction.amount_in > 0
            and bool(transaction.id)
        )

    def process(self, transaction: SepayTransaction) -> WebhookResult:
        log = logger.bind(transaction_id=transaction.id, amount=str(transaction.amount_in))
        log.info("payment_webhook_received", content=transaction.transaction_content)

        if not self.is_valid(transaction):
            log.warning("payment_webhook_ignored", reason=WebhookOutcome.INVALID.value)
            return WebhookResult(status=WebhookOutcome.INVALID)

        order_number = extract_order_number(transaction.transaction_content, self.order_prefix)
        if order_number is None:
            log.warning("payment_webhook_ignored", reason=WebhookOutcome.NO_ORDER_NUMBER.value)
            return WebhookResult(status=WebhookOutcome.NO_ORDER_NUMBER)

        log = log.bind(order_number=order_number)
        order = self.orders.get_by_number(order_number)
        if order is None:
            log.warning("payment_webhook_ignored", reason=WebhookOutcome.ORDER_NOT_FOUND.value)
            return WebhookResult(status=WebhookOutcome.ORDER_NOT_FOUND, order_number=order_number)

        if order.payment_status == PaymentStatus.PAID.value:
            log.info("payment_webhook_ignored", reason=WebhookOutcome.ALREADY_PAID.value)
            return WebhookResult(status=WebhookOutcome.ALREADY_PAID, order_number=order_number)

        expected = Decimal(str(order.total_amount))
        if abs(transaction.amount_in - expected) > self.tolerance:
            log.warning(
                "payment_webhook_ignored",
                reason=WebhookOutcome.AMOUNT_MISMATCH.value,
                expected=str(expected),
            )
            return WebhookResult(status=WebhookOutcome.AMOUNT_MISMATCH, order_number=order_number)

        self.status_service.confirm_payment(order.id, PaymentStatus.PAID)
        log.info("payment_webhook_confirmed", order_id=order.id)
        return WebhookResult(status=WebhookOutcome.CONFIRMED, order_number=order_number)
