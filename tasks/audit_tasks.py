from typing import Any, Optional

import structlog

from core.celery import celery_app
from core.db import db_session
from core.errors import PersistenceError
from repositories.audit import SqlAuditLogRepository
from services.audit import AuditLogger

logger = structlog.get_logger(__name__)


@celery_app.task(bind=True, max_retries=3)
def record_audit_task(
    self,
    admin_id: Optional[int],
    action: str,
    resource_id: str,
    resource_type: str = "orders",
    details: Optional[dict[str, Any]] = None,
):
    try:
        with db_session() as db:
            AuditLogger(SqlAuditLogRepository(db)).append(
                admin_id, action, resource_id, resource_type=resource_type, details=details
            )
        return {"status": "recorded", "action": action, "resource_id": resource_id}
    except PersistenceError as exc:
        logger.warning("audit_task_retry", action=action, retries=self.request.retries, error=str(exc))
        countdown = min(2 ** self.request.retries, 60)
        raise self.retry(exc=exc, countdown=countdown)
