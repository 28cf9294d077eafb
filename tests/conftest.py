from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from core.db import Base, get_db
from core.errors import PersistenceError, StockError
from models.address import UserAddress
from models.cart import CartItem
from models.order_status_history import OrderStatusHistory
from models.product import Product, ProductImage
from models.user import User
from services.audit import AuditLogger
from services.cart_reconciler import CartReconciler
from services.cart_service import CartService
from services.checkout import CheckoutService
from services.order_numbers import OrderNumberGenerator
from services.order_status import OrderStatusService
from services.pricing import PricingCalculator
from services.side_effects import SideEffectDispatcher


ORDER_DAY = date(2025, 1, 31)


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


class _Ids:
    def __init__(self):
        self.value = 0

    def next(self) -> int:
        self.value += 1
        return self.value


class FakeUserRepository:
    def __init__(self):
        self.users: dict[int, User] = {}
        self.addresses: dict[int, UserAddress] = {}

    def get(self, user_id):
        return self.users.get(user_id)

    def get_address(self, address_id, user_id):
        address = self.addresses.get(address_id)
        if address is None or address.user_id != user_id:
            return None
        return address


class FakeProductRepository:
    def __init__(self):
        self.products: dict[int, Product] = {}

    def get(self, product_id):
        return self.products.get(product_id)


class FakeOrderRepository:
    def __init__(self, products: FakeProductRepository):
        self.products = products
        self.orders: dict[int, Any] = {}
        self.fail_on_create = False
        self._order_ids = _Ids()
        self._item_ids = _Ids()
        self._history_ids = _Ids()

    def create(self, order):
        if self.fail_on_create:
            raise PersistenceError("Failed to create order")
        for item in order.items:
            product = self.products.get(item.product_id)
            if product.stock_quantity < item.quantity:
                raise StockError(product.id, product.name, product.stock_quantity, item.quantity)
        for item in order.items:
            self.products.get(item.product_id).stock_quantity -= item.quantity

        order.id = self._order_ids.next()
        for item in order.items:
            item.id = self._item_ids.next()
            item.order_id = order.id
        order.history.append(
            OrderStatusHistory(
                id=self._history_ids.next(),
                order_id=order.id,
                old_status=None,
                new_status=order.status,
                changed_by_user=order.user_id,
                note="Order created",
            )
        )
        self.orders[order.id] = order
        return order

    def get(self, order_id):
        return self.orders.get(order_id)

    def get_by_number(self, order_number):
        return next((o for o in self.orders.values() if o.order_number == order_number), None)

    def list_for_user(self, user_id):
        found = [o for o in self.orders.values() if o.user_id == user_id]
        return sorted(found, key=lambda o: (o.ordered_at, o.id), reverse=True)

    def list_all(self, status=None, payment_status=None, limit=None, offset=0):
        found = [
            o
            for o in self.orders.values()
            if (status is None or o.status == status)
            and (payment_status is None or o.payment_status == payment_status)
        ]
        found.sort(key=lambda o: (o.ordered_at, o.id), reverse=True)
        end = None if limit is None else offset + limit
        return found[offset:end]

    def history(self, order_id):
        order = self.orders.get(order_id)
        return sorted(order.history, key=lambda entry: entry.id) if order else []

    def count_by_number_prefix(self, prefix):
        return sum(1 for o in self.orders.values() if o.order_number.startswith(prefix))

    def transition(self, order, expected_status, new_status, *, note=None, notes=None,
                   changed_by_user=None, changed_by_admin=None, restock=False):
        if order.status != expected_status:
            return False
        order.status = new_status
        if notes is not None:
            order.notes = notes
        if restock:
            for item in order.items:
                self.products.get(item.product_id).stock_quantity += item.quantity
        order.history.append(
            OrderStatusHistory(
                id=self._history_ids.next(),
                order_id=order.id,
                old_status=expected_status,
                new_status=new_status,
                note=note,
                changed_by_user=changed_by_user,
                changed_by_admin=changed_by_admin,
            )
        )
        return True

    def set_payment_status(self, order, payment_status):
        order.payment_status = payment_status

    def status_events(self, statuses):
        statuses = set(statuses)
        return [
            (entry.order_id, entry.new_status)
            for order in self.orders.values()
            for entry in order.history
            if entry.new_status in statuses
        ]

    def items_for_orders(self, order_ids):
        ids = set(order_ids)
        return [item for order in self.orders.values() if order.id in ids for item in order.items]


class FakeOrderSequenceRepository:
    def __init__(self):
        self.values: dict[str, int] = {}

    def next_value(self, key, seed=None):
        if key not in self.values:
            self.values[key] = seed() if seed else 0
        self.values[key] += 1
        return self.values[key]


class FakeCartRepository:
    def __init__(self, products: FakeProductRepository):
        self.products = products
        self.lines: dict[tuple[int, int], CartItem] = {}
        self.fail_deletes = False
        self._ids = _Ids()

    def _check(self):
        if self.fail_deletes:
            raise PersistenceError("Failed to delete cart lines")

    def list_for_user(self, user_id):
        return [line for (uid, _), line in self.lines.items() if uid == user_id]

    def get_line(self, user_id, product_id):
        return self.lines.get((user_id, product_id))

    def save(self, line):
        if line.id is None:
            line.id = self._ids.next()
        line.product = self.products.get(line.product_id)
        self.lines[(line.user_id, line.product_id)] = line
        return line

    def delete_line(self, user_id, product_id):
        self._check()
        return self.lines.pop((user_id, product_id), None) is not None

    def delete_products(self, user_id, product_ids: Iterable[int]):
        self._check()
        keys = [(user_id, pid) for pid in set(product_ids) if (user_id, pid) in self.lines]
        for key in keys:
            del self.lines[key]
        return len(keys)

    def clear(self, user_id):
        self._check()
        keys = [key for key in self.lines if key[0] == user_id]
        for key in keys:
            del self.lines[key]
        return len(keys)

    def product_ids(self, user_id) -> set[int]:
        return {pid for (uid, pid) in self.lines if uid == user_id}


class FakeAuditLogRepository:
    def __init__(self):
        self.entries: list[dict] = []
        self.fail = False

    def append(self, admin_id, action, resource_type, resource_id, details=None):
        if self.fail:
            raise PersistenceError("Failed to append audit log")
        self.entries.append(
            {
                "admin_id": admin_id,
                "action": action,
                "resource_type": resource_type,
                "resource_id": resource_id,
                "details": details,
            }
        )


class FakeWorld:
    """Services wired to in-memory repositories, plus seeding helpers."""

    def __init__(self):
        self.users = FakeUserRepository()
        self.products = FakeProductRepository()
        self.orders = FakeOrderRepository(self.products)
        self.sequences = FakeOrderSequenceRepository()
        self.carts = FakeCartRepository(self.products)
        self.audit_logs = FakeAuditLogRepository()
        self._ids = _Ids()

        self.side_effects = SideEffectDispatcher(
            CartReconciler(self.carts), AuditLogger(self.audit_logs), use_celery=False
        )
        self.order_numbers = OrderNumberGenerator(
            self.sequences, self.orders, prefix="ORD", today=lambda: ORDER_DAY
        )
        self.checkout_service = CheckoutService(
            products=self.products,
            users=self.users,
            orders=self.orders,
            order_numbers=self.order_numbers,
            side_effects=self.side_effects,
            pricing=PricingCalculator(Decimal("500000"), Decimal("15000"), Decimal("30000")),
            clock=lambda: datetime(2025, 1, 31, 9, 30),
        )
        self.status_service = OrderStatusService(self.orders, self.side_effects)
        self.cart_service = CartService(self.carts, self.products)

    def add_user(self, phone: Optional[str] = "0901234567", **fields) -> User:
        user = User(
            id=fields.pop("id", self._ids.next()),
            full_name=fields.pop("full_name", "Nguyen Van A"),
            email=fields.pop("email", "customer@example.com"),
            phone=phone,
            **fields,
        )
        self.users.users[user.id] = user
        return user

    def add_address(self, user: User, **fields) -> UserAddress:
        address = UserAddress(
            id=fields.pop("id", self._ids.next()),
            user_id=user.id,
            full_address=fields.pop("full_address", "12 Le Loi, District 1"),
            city=fields.pop("city", "Ho Chi Minh City"),
            **fields,
        )
        self.users.addresses[address.id] = address
        return address

    def add_product(self, id: int, price, sale_price=None, stock_quantity: int = 10, **fields) -> Product:
        product = Product(
            id=id,
            name=fields.pop("name", f"Product {id}"),
            sku=fields.pop("sku", None),
            price=Decimal(str(price)),
            sale_price=Decimal(str(sale_price)) if sale_price is not None else None,
            stock_quantity=stock_quantity,
            status=fields.pop("status", "active"),
            **fields,
        )
        self.products.products[id] = product
        return product

    def add_cart_line(self, user: User, product: Product, quantity: int = 1) -> CartItem:
        return self.carts.save(CartItem(user_id=user.id, product_id=product.id, quantity=quantity))


@pytest.fixture()
def world():
    return FakeWorld()


# ---------------------------------------------------------------------------
# SQLite-backed fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_session_override():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()

    def _get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session_override):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def test_user(db_session_override):
    """Create a customer with a phone number."""
    user = User(full_name="Nguyen Van A", email="customer@example.com", phone="0901234567")
    db_session_override.add(user)
    db_session_override.commit()
    db_session_override.refresh(user)
    return user


@pytest.fixture
def test_address(db_session_override, test_user):
    address = UserAddress(
        user_id=test_user.id,
        full_address="12 Le Loi, District 1",
        city="Ho Chi Minh City",
        is_default=True,
    )
    db_session_override.add(address)
    db_session_override.commit()
    db_session_override.refresh(address)
    return address


@pytest.fixture
def test_products(db_session_override):
    """A discounted product with an image and a full-price product."""
    discounted = Product(
        name="Ceramic Mug",
        sku="MUG-001",
        price=Decimal("100000"),
        sale_price=Decimal("80000"),
        stock_quantity=10,
        status="active",
    )
    discounted.images = [
        ProductImage(image_url="https://cdn.example.com/mug-side.jpg", is_primary=False),
        ProductImage(image_url="https://cdn.example.com/mug.jpg", is_primary=True),
    ]
    full_price = Product(name="Tea Set", price=Decimal("200000"), stock_quantity=5, status="active")
    db_session_override.add_all([discounted, full_price])
    db_session_override.commit()
    return discounted, full_price


@pytest.fixture
def test_cart(db_session_override, test_user, test_products):
    discounted, full_price = test_products
    lines = [
        CartItem(user_id=test_user.id, product_id=discounted.id, quantity=2),
        CartItem(user_id=test_user.id, product_id=full_price.id, quantity=1),
    ]
    db_session_override.add_all(lines)
    db_session_override.commit()
    return lines
