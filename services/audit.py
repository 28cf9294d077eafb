from typing import Any, Optional

import structlog

from core.errors import PersistenceError
from models.enums import AuditAction
from repositories.interfaces import AuditLogRepository

logger = structlog.get_logger(__name__)


class AuditLogger:
    def __init__(self, audit_logs: AuditLogRepository):
        self.audit_logs = audit_logs

    def append(
        self,
        admin_id: Optional[int],
        action: AuditAction | str,
        resource_id: str,
        resource_type: str = "orders",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        action = AuditAction(action).value
        self.audit_logs.append(admin_id, action, resource_type, resource_id, details)
        logger.info("audit_recorded", admin_id=admin_id, action=action, resource_id=resource_id)

    def record(self, *args, **kwargs) -> bool:
        """Fire-and-forget append; failures are logged and never raised."""
        try:
            self.append(*args, **kwargs)
            return True
        except PersistenceError as exc:
            logger.error("audit_record_failed", error=str(exc), call_args=args, **kwargs)
            return False
