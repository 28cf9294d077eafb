from enum import Enum


class OrderStatus(str, Enum):
    PROCESSING = "processing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    RETURNED = "returned"
    CANCELED = "canceled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class PaymentMethod(str, Enum):
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"
    MOMO = "momo"
    ZALOPAY = "zalopay"
    VNPAY = "vnpay"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    FAST = "fast"


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AuditAction(str, Enum):
    UPDATE_ORDER_STATUS = "UPDATE_ORDER_STATUS"
    UPDATE_PAYMENT_STATUS = "UPDATE_PAYMENT_STATUS"
    CANCEL_ORDER = "CANCEL_ORDER"
