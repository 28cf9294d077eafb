from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError as PayloadError

from core.dependencies import get_payment_webhook_service
from core.errors import ValidationError
from schemas.payment import SepayTransaction, WebhookResult
from services.payment_webhook import PaymentWebhookService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/webhook", response_model=WebhookResult)
async def payment_webhook(
    request: Request,
    x_sepay_signature: Optional[str] = Header(default=None),
    service: PaymentWebhookService = Depends(get_payment_webhook_service),
):
    """Sepay transfer callback; the signature covers the raw request body."""
    body = await request.body()
    service.verify_signature(body, x_sepay_signature)
    try:
        transaction = SepayTransaction.model_validate_json(body)
    except PayloadError:
        raise ValidationError("Invalid webhook payload")
    return service.process(transaction)
