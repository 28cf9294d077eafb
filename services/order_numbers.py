from datetime import date, datetime
from typing import Callable, Optional

from repositories.interfaces import OrderRepository, OrderSequenceRepository


class OrderNumberGenerator:
    """Builds numbers like ``ORD20250131007``: prefix, local date, daily sequence.

    The sequence comes from an atomic per-day counter. The first time a day's
    counter is created it is seeded with the number of orders already
    carrying that day's prefix.
    """

    def __init__(
        self,
        sequences: OrderSequenceRepository,
        orders: OrderRepository,
        prefix: str = "ORD",
        today: Callable[[], date] = lambda: datetime.now().date(),
    ):
        self.sequences = sequences
        self.orders = orders
        self.prefix = prefix
        self.today = today

    def day_prefix(self, day: Optional[date] = None) -> str:
        day = day or self.today()
        return f"{self.prefix}{day:%Y%m%d}"

    def generate(self, day: Optional[date] = None) -> str:
        key = self.day_prefix(day)
        sequence = self.sequences.next_value(key, seed=lambda: self.orders.count_by_number_prefix(key))
        # Widens past 999 rather than wrapping
        return f"{key}{sequence:03d}"
