from decimal import Decimal
from enum import Enum
from pydantic import BaseModel, field_validator
from typing import Optional


class WebhookOutcome(str, Enum):
    CONFIRMED = "confirmed"
    INVALID = "invalid"
    NO_ORDER_NUMBER = "no_order_number"
    ORDER_NOT_FOUND = "order_not_found"
    ALREADY_PAID = "already_paid"
    AMOUNT_MISMATCH = "amount_mismatch"


class SepayTransaction(BaseModel):
    """Incoming bank transfer as posted by the Sepay webhook."""

    id: str
    amount_in: Decimal = Decimal("0")
    transaction_content: str = ""
    transaction_date: Optional[str] = None
    account_number: str = ""
    code: Optional[str] = None
    bank_account_id: Optional[str] = None
    reference_number: Optional[str] = None
    bank_brand_name: Optional[str] = None

    @field_validator("id", "account_number", "code", "bank_account_id", "reference_number", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        # Sepay sends ids and account numbers as JSON numbers
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def bank_code(self) -> Optional[str]:
        return self.code or self.bank_account_id


class WebhookResult(BaseModel):
    status: WebhookOutcome
    order_number: Optional[str] = None
