"""Order price computation.

Everything here is pure: the same lines and rule always produce the same
quote, so a stored order can be re-priced from its inputs.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from core.config import settings
from core.errors import ValidationError
from models.enums import ShippingMethod


def to_decimal(value: float | int | Decimal | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class PricedLine:
    product: object
    quantity: int
    unit_price: Decimal
    list_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def original_total(self) -> Decimal:
        return self.list_price * self.quantity


@dataclass(frozen=True)
class PriceQuote:
    lines: list[PricedLine] = field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    original_total: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")
    # Threshold reached; a caller-supplied fee of 0 does not count
    free_shipping: bool = False

    @property
    def total_amount(self) -> Decimal:
        return self.subtotal + self.shipping_fee


class PricingCalculator:
    def __init__(
        self,
        free_shipping_threshold: Decimal,
        standard_fee: Decimal,
        fast_fee: Decimal,
    ):
        self.free_shipping_threshold = to_decimal(free_shipping_threshold)
        self.fees = {
            ShippingMethod.STANDARD: to_decimal(standard_fee),
            ShippingMethod.FAST: to_decimal(fast_fee),
        }

    @classmethod
    def from_settings(cls) -> "PricingCalculator":
        return cls(
            free_shipping_threshold=settings.FREE_SHIPPING_THRESHOLD,
            standard_fee=settings.STANDARD_SHIPPING_FEE,
            fast_fee=settings.FAST_SHIPPING_FEE,
        )

    @staticmethod
    def unit_price(product) -> Decimal:
        """Sale price when the product has one, list price otherwise."""
        if product.sale_price is not None:
            return to_decimal(product.sale_price)
        return to_decimal(product.price)

    def qualifies_for_free_shipping(self, subtotal: Decimal) -> bool:
        return subtotal >= self.free_shipping_threshold

    def shipping_fee(
        self,
        subtotal: Decimal,
        shipping_method: ShippingMethod = ShippingMethod.STANDARD,
        override: Optional[Decimal] = None,
    ) -> Decimal:
        if self.qualifies_for_free_shipping(subtotal):
            return Decimal("0")
        if override is not None:
            override = to_decimal(override)
            if override < 0:
                raise ValidationError("Shipping fee cannot be negative")
            return override
        return self.fees[ShippingMethod(shipping_method)]

    def quote(
        self,
        lines: Iterable[tuple[object, int]],
        shipping_method: ShippingMethod = ShippingMethod.STANDARD,
        shipping_fee: Optional[Decimal] = None,
    ) -> PriceQuote:
        priced = [
            PricedLine(
                product=product,
                quantity=quantity,
                unit_price=self.unit_price(product),
                list_price=to_decimal(product.price),
            )
            for product, quantity in lines
        ]
        subtotal = sum((line.line_total for line in priced), Decimal("0"))
        original_total = sum((line.original_total for line in priced), Decimal("0"))
        return PriceQuote(
            lines=priced,
            subtotal=subtotal,
            original_total=original_total,
            # A sale price above list price never shows up as a negative discount
            discount_amount=max(original_total - subtotal, Decimal("0")),
            shipping_fee=self.shipping_fee(subtotal, shipping_method, shipping_fee),
            free_shipping=self.qualifies_for_free_shipping(subtotal),
        )
