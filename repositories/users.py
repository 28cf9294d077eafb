from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.db import persistence_errors
from models.address import UserAddress
from models.user import User


class SqlUserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        with persistence_errors(self.db, "load user"):
            return self.db.get(User, user_id)

    def get_address(self, address_id: int, user_id: int) -> Optional[UserAddress]:
        with persistence_errors(self.db, "load address"):
            return self.db.scalar(
                select(UserAddress).where(UserAddress.id == address_id, UserAddress.user_id == user_id)
            )
