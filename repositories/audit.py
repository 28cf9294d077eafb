from typing import Any, Optional

from sqlalchemy.orm import Session

from core.db import persistence_errors
from models.audit_log import AuditLog


class SqlAuditLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        admin_id: Optional[int],
        action: str,
        resource_type: str,
        resource_id: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        with persistence_errors(self.db, "append audit log"):
            self.db.add(
                AuditLog(
                    admin_id=admin_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    details=details,
                )
            )
            self.db.commit()
