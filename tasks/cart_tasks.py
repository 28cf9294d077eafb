import structlog

from core.celery import celery_app
from core.db import db_session
from core.errors import PersistenceError
from repositories.carts import SqlCartRepository
from services.cart_reconciler import CartReconciler

logger = structlog.get_logger(__name__)


@celery_app.task(bind=True, max_retries=3)
def clear_cart_lines_task(self, user_id: int, product_ids: list[int]):
    """
    Remove the ordered products from a user's cart.
    Retries up to 3 times on store failure.
    """
    try:
        with db_session() as db:
            deleted = CartReconciler(SqlCartRepository(db)).delete_lines(user_id, product_ids)
        return {"status": "cleared", "user_id": user_id, "deleted": deleted}
    except PersistenceError as exc:
        logger.warning("cart_task_retry", user_id=user_id, retries=self.request.retries, error=str(exc))
        # Retry with exponential backoff
        countdown = min(2 ** self.request.retries, 60)  # Max 60 seconds
        raise self.retry(exc=exc, countdown=countdown)
