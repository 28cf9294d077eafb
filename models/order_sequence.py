from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


class OrderSequence(Base):
    """Per-day order number counter, keyed by prefix + YYYYMMDD."""

    __tablename__ = "order_sequences"

    key: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0)
