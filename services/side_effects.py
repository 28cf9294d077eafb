"""Dispatch of best-effort work that must never fail the caller.

With ``USE_CELERY`` the work is queued to a worker, where it is retried on
its own. Without it, or when the broker cannot be reached, it runs inline.
"""

from typing import Any, Iterable, Optional

import structlog

from core.config import settings
from models.enums import AuditAction
from services.audit import AuditLogger
from services.cart_reconciler import CartReconciler
from tasks.audit_tasks import record_audit_task
from tasks.cart_tasks import clear_cart_lines_task

logger = structlog.get_logger(__name__)


class SideEffectDispatcher:
    def __init__(
        self,
        cart_reconciler: CartReconciler,
        audit_logger: AuditLogger,
        use_celery: Optional[bool] = None,
    ):
        self.cart_reconciler = cart_reconciler
        self.audit_logger = audit_logger
        self.use_celery = settings.USE_CELERY if use_celery is None else use_celery

    def _enqueue(self, task, *args) -> bool:
        if not self.use_celery:
            return False
        try:
            task.delay(*args)
            logger.info("side_effect_queued", task=task.name)
            return True
        except Exception as exc:
            logger.warning("side_effect_queue_failed", task=task.name, error=str(exc))
            return False

    def clear_cart_lines(self, user_id: int, product_ids: Iterable[int]) -> None:
        product_ids = sorted(set(product_ids))
        if not product_ids:
            return
        if self._enqueue(clear_cart_lines_task, user_id, product_ids):
            return
        self.cart_reconciler.reconcile(user_id, product_ids)

    def record_audit(
        self,
        admin_id: Optional[int],
        action: AuditAction,
        resource_id: str,
        resource_type: str = "orders",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        action = AuditAction(action).value
        if self._enqueue(record_audit_task, admin_id, action, resource_id, resource_type, details):
            return
        self.audit_logger.record(admin_id, action, resource_id, resource_type=resource_type, details=details)
