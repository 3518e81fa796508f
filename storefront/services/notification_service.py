# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notifications, processed asynchronously by celery.
    """

    @staticmethod
    def send_order_confirmation(user_id: str, order_id: int, payment_method: str):
        send_order_confirmation_task.delay(user_id, order_id, payment_method)


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(user_id: str, order_id: int, payment_method: str):
    """
    Stand-in for the confirmation e-mail, only logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} confirmed ({payment_method})")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}
