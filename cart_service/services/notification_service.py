# cart_service/services/notification_service.py
from cart_service.celery_worker import celery_app
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Sends order notifications through Celery."""

    @staticmethod
    def send_order_placed(user_id: int, order_id: str, total_cost: str):
        send_order_placed_task.delay(user_id, order_id, total_cost)


@celery_app.task(name="cart_service.services.notification_service.send_order_placed_task")
def send_order_placed_task(user_id: int, order_id: str, total_cost: str):
    """
    Celery task. A real deployment would hand this to an email/SMS/push
    gateway; here it only logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} placed, total {total_cost}")

    return {"user_id": user_id, "order_id": order_id, "status": "sent"}
