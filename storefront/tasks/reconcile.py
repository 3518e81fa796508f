# storefront/tasks/reconcile.py
from datetime import datetime, timezone, timedelta

from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.order_repo import OrderRepo
from storefront.utils.settings import PAYMENT_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def expire_stale_payments(db: Session, now: datetime | None = None, timeout: int = PAYMENT_TIMEOUT_SECONDS) -> int:
    """
    Gateway orders whose payment never came back are marked failed,
    which makes them retryable from order history.
    Cash on delivery orders stay pending until delivery.
    """
    now = now or datetime.now(timezone.utc)
    repo = OrderRepo(db)

    orders = repo.list_stale_payments("razorpay", now - timedelta(seconds=timeout))
    logger.info(f"Found {len(orders)} stale gateway payments")

    for order in orders:
        order.payment_status = "failed"
        logger.info(f"Order {order.id}: payment expired")

    repo.commit()
    return len(orders)


@celery_app.task(name="storefront.tasks.reconcile.expire_stale_payments_task")
def expire_stale_payments_task():
    logger.info("Expire stale payments task started")

    db = SessionLocal()
    try:
        return expire_stale_payments(db)
    finally:
        db.close()
