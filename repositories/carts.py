from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from core.db import persistence_errors
from models.cart import CartItem
from models.product import Product


class SqlCartRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: int) -> list[CartItem]:
        with persistence_errors(self.db, "load cart"):
            stmt = (
                select(CartItem)
                .options(selectinload(CartItem.product).selectinload(Product.images))
                .where(CartItem.user_id == user_id)
                .order_by(CartItem.added_at, CartItem.id)
            )
            return list(self.db.scalars(stmt))

    def get_line(self, user_id: int, product_id: int) -> Optional[CartItem]:
        with persistence_errors(self.db, "load cart line"):
            return self.db.scalar(
                select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
            )

    def save(self, line: CartItem) -> CartItem:
        with persistence_errors(self.db, "save cart line"):
            self.db.add(line)
            self.db.commit()
            self.db.refresh(line)
        return line

    def delete_line(self, user_id: int, product_id: int) -> bool:
        with persistence_errors(self.db, "delete cart line"):
            result = self.db.execute(
                delete(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
            )
            self.db.commit()
        return result.rowcount > 0

    def delete_products(self, user_id: int, product_ids: Iterable[int]) -> int:
        ids = list(set(product_ids))
        if not ids:
            return 0
        with persistence_errors(self.db, "delete cart lines"):
            result = self.db.execute(
                delete(CartItem).where(CartItem.user_id == user_id, CartItem.product_id.in_(ids))
            )
            self.db.commit()
        return result.rowcount

    def clear(self, user_id: int) -> int:
        with persistence_errors(self.db, "clear cart"):
            result = self.db.execute(delete(CartItem).where(CartItem.user_id == user_id))
            self.db.commit()
        return result.rowcount
