# Import models so that SQLAlchemy metadata includes them on app startup
from .user import User  # noqa: F401
from .address import UserAddress  # noqa: F401
from .product import Product, ProductImage  # noqa: F401
from .cart import CartItem  # noqa: F401
from .order import Order  # noqa: F401
from .order_item import OrderItem  # noqa: F401
from .order_status_history import OrderStatusHistory  # noqa: F401
from .order_sequence import OrderSequence  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
