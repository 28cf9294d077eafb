from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from core.db import persistence_errors
from models.product import Product


class SqlProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        with persistence_errors(self.db, "load product"):
            return self.db.scalar(
                select(Product).options(selectinload(Product.images)).where(Product.id == product_id)
            )
