from decimal import Decimal

import pytest

from core.errors import SignatureError, ValidationError
from schemas.order import CheckoutRequest
from schemas.payment import SepayTransaction, WebhookOutcome
from services.payment_webhook import PaymentWebhookService, extract_order_number, sign

ACCOUNT = "0123456789"
SECRET = "webhook-secret"


@pytest.fixture
def webhook(world):
    return PaymentWebhookService(
        world.orders, world.status_service, account_number=ACCOUNT, secret=SECRET, tolerance=Decimal("1000")
    )


@pytest.fixture
def transfer_order(world):
    """A bank transfer order for two discounted mugs (total 175000), with mug and tea in the cart"""
    user = world.add_user()
    address = world.add_address(user)
    mug = world.add_product(1, price=100000, sale_price=80000, stock_quantity=10, name="Ceramic Mug")
    tea = world.add_product(2, price=200000, stock_quantity=5, name="Tea Set")
    world.add_cart_line(user, mug, 2)
    world.add_cart_line(user, tea, 1)
    request = CheckoutRequest(
        user_id=user.id,
        address_id=address.id,
        payment_method="bank_transfer",
        items=[{"product_id": 1, "quantity": 2}],
    )
    return world.orders.get(world.checkout_service.checkout(request).order_id)


def _transfer(content, amount=175000, **fields):
    return SepayTransaction(
        id=fields.pop("id", 92704),
        amount_in=amount,
        transaction_content=content,
        transaction_date="2025-01-31 10:15:00",
        account_number=fields.pop("account_number", ACCOUNT),
        **fields,
    )


class TestExtractOrderNumber:
    """Test cases for reading order numbers from transfer descriptions"""

    def test_found_inside_description(self):
        assert extract_order_number("Thanh toan don hang ORD20250131001 cam on") == "ORD20250131001"

    def test_case_insensitive(self):
        assert extract_order_number("thanh toan ord20250131001") == "ORD20250131001"

    def test_too_few_digits(self):
        assert extract_order_number("ORD2025013") is None

    def test_missing_or_empty(self):
        assert extract_order_number("Chuyen tien") is None
        assert extract_order_number(None) is None

    def test_custom_prefix(self):
        assert extract_order_number("pay SHOP20250131001", prefix="SHOP") == "SHOP20250131001"


class TestSepayTransaction:
    """Test cases for the webhook payload"""

    def test_numeric_ids_become_text(self):
        transaction = SepayTransaction(id=92704, amount_in=175000, account_number=123456, bank_account_id=9)

        assert transaction.id == "92704"
        assert transaction.account_number == "123456"
        assert transaction.bank_code == "9"
        assert transaction.amount_in == Decimal("175000")


class TestWebhookSignature:
    """Test cases for webhook signature checks"""

    def test_valid_signature(self, webhook):
        body = b'{"id": 1}'

        webhook.verify_signature(body, sign(body, SECRET))
        webhook.verify_signature(body, sign(body, SECRET).upper())

    def test_missing_signature(self, webhook):
        with pytest.raises(ValidationError):
            webhook.verify_signature(b"{}", None)

    def test_wrong_signature(self, webhook):
        body = b'{"id": 1}'

        with pytest.raises(SignatureError):
            webhook.verify_signature(body, sign(body, "another-secret"))

    def test_tampered_body(self, webhook):
        with pytest.raises(SignatureError):
            webhook.verify_signature(b'{"id": 2}', sign(b'{"id": 1}', SECRET))

    def test_unconfigured_secret_rejects_everything(self, world):
        service = PaymentWebhookService(world.orders, world.status_service, account_number=ACCOUNT, secret="")

        with pytest.raises(SignatureError):
            service.verify_signature(b"{}", sign(b"{}", ""))


class TestProcessTransfer:
    """Test cases for matching bank transfers to orders"""

    def test_matching_transfer_confirms_payment(self, world, webhook, transfer_order):
        """Test a matching transfer marks the order paid and clears the ordered cart line"""
        user_id = transfer_order.user_id
        assert world.carts.product_ids(user_id) == {1, 2}

        result = webhook.process(_transfer(f"Thanh toan {transfer_order.order_number}"))

        assert result.status == WebhookOutcome.CONFIRMED
        assert result.order_number == transfer_order.order_number
        assert transfer_order.payment_status == "paid"
        assert transfer_order.status == "processing"
        assert world.carts.product_ids(user_id) == {2}

    def test_amount_within_tolerance(self, webhook, transfer_order):
        result = webhook.process(_transfer(transfer_order.order_number, amount=174000))

        assert result.status == WebhookOutcome.CONFIRMED
        assert transfer_order.payment_status == "paid"

    def test_amount_mismatch_ignored(self, world, webhook, transfer_order):
        """Test a transfer for the wrong amount leaves the order unpaid and the cart intact"""
        result = webhook.process(_transfer(transfer_order.order_number, amount=170000))

        assert result.status == WebhookOutcome.AMOUNT_MISMATCH
        assert result.order_number == transfer_order.order_number
        assert transfer_order.payment_status == "unpaid"
        assert world.carts.product_ids(transfer_order.user_id) == {1, 2}

    def test_description_without_order_number(self, world, webhook, transfer_order):
        result = webhook.process(_transfer("Chuyen tien mua hang"))

        assert result.status == WebhookOutcome.NO_ORDER_NUMBER
        assert result.order_number is None
        assert transfer_order.payment_status == "unpaid"
        assert world.carts.product_ids(transfer_order.user_id) == {1, 2}

    def test_order_already_paid(self, world, webhook, transfer_order):
        """Test a second transfer for a paid order changes nothing"""
        world.status_service.confirm_payment(transfer_order.id)
        world.add_cart_line(world.users.get(transfer_order.user_id), world.products.get(1), 1)

        result = webhook.process(_transfer(transfer_order.order_number))

        assert result.status == WebhookOutcome.ALREADY_PAID
        assert transfer_order.payment_status == "paid"
        assert world.carts.product_ids(transfer_order.user_id) == {1, 2}

    def test_unknown_order_number(self, webhook, transfer_order):
        result = webhook.process(_transfer("ORD20250131999"))

        assert result.status == WebhookOutcome.ORDER_NOT_FOUND
        assert result.order_number == "ORD20250131999"
        assert transfer_order.payment_status == "unpaid"

    @pytest.mark.parametrize("fields", [
        {"account_number": "999"},
        {"amount": 0},
        {"id": ""},
    ])
    def test_invalid_transfer_ignored(self, webhook, transfer_order, fields):
        result = webhook.process(_transfer(transfer_order.order_number, **fields))

        assert result.status == WebhookOutcome.INVALID
        assert transfer_order.payment_status == "unpaid"

    def test_unconfigured_account_ignores_everything(self, world, transfer_order):
        service = PaymentWebhookService(world.orders, world.status_service, account_number="", secret=SECRET)

        result = service.process(_transfer(transfer_order.order_number, account_number=""))

        assert result.status == WebhookOutcome.INVALID
        assert transfer_order.payment_status == "unpaid"
