from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.db import persistence_errors
from core.errors import PersistenceError
from models.order_sequence import OrderSequence


class SqlOrderSequenceRepository:
    def __init__(self, db: Session):
        self.db = db

    def next_value(self, key: str, seed: Optional[Callable[[], int]] = None) -> int:
        # The UPDATE holds the row lock until commit, so concurrent callers serialize here
        with persistence_errors(self.db, "allocate order number"):
            for _ in range(2):
                result = self.db.execute(
                    update(OrderSequence)
                    .where(OrderSequence.key == key)
                    .values(last_value=OrderSequence.last_value + 1)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    value = self.db.scalar(select(OrderSequence.last_value).where(OrderSequence.key == key))
                    self.db.commit()
                    return value

                first = (seed() if seed else 0) + 1
                try:
                    self.db.add(OrderSequence(key=key, last_value=first))
                    self.db.commit()
                    return first
                except IntegrityError:
                    # Another worker created today's counter first; increment theirs
                    self.db.rollback()
        raise PersistenceError(f"Failed to allocate order number for {key}")
