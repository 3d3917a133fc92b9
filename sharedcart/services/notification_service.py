# sharedcart/services/notification_service.py
from sharedcart.celery_worker import celery_app
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień.
    Używa Celery do asynchronicznego przetwarzania, fire-and-forget:
    błąd wysyłki jest logowany i nigdy nie cofa zmiany stanu koszyka.
    """

    def notify_cart_completed(self, cart_id: int, initiator_id: str, total_amount: int) -> bool:
        try:
            send_cart_completed_notification_task.delay(cart_id, initiator_id, total_amount)
        except Exception as e:
            logger.error(f"Failed to dispatch completion notification for cart {cart_id}: {e}")
            return False
        return True


@celery_app.task(name="sharedcart.services.notification_service.send_cart_completed_notification_task")
def send_cart_completed_notification_task(cart_id: int, initiator_id: str, total_amount: int):
    """
    Celery task - w prawdziwym systemie wysłałby email/SMS/push.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] Shared cart {cart_id} of user {initiator_id} completed, total {total_amount}")

    return {"cart_id": cart_id, "status": "sent"}
