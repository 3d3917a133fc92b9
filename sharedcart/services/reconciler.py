# sharedcart/services/reconciler.py
from datetime import datetime
from typing import Callable, Dict, Any

from sqlalchemy.orm import Session

from sharedcart.domain.errors import CartNotFound
from sharedcart.domain.states import COMPLETED, PAID, PAY_ALL, SPLIT, TERMINAL_STATUSES
from sharedcart.services.base import CartCommandService
from sharedcart.services.notification_service import NotificationService
from sharedcart.utils.logging import get_logger
from sharedcart.utils.retry import conflict_retry

logger = get_logger(__name__)


class PaymentReconciler(CartCommandService):
    """
    Jedyne miejsce ktore przestawia koszyk na completed.

    Wolane dopiero po weryfikacji platnosci w bramce (server-to-server).
    Idempotentne: ten sam event N razy daje ten sam stan co raz,
    bo drugi raz nie ma juz nieoplaconego czlonkostwa i konczymy no-opem.
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationService | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(db, clock)
        self.notifier = notifier or NotificationService()

    def apply_member_payment(
        self,
        cart_id: int,
        user_id: str,
        payment_reference: str,
        amount_paid: int,
    ) -> Dict[str, Any]:
        result = self._apply(cart_id, user_id, payment_reference, amount_paid)

        # dopiero po commicie, dokladnie raz: tylko transakcja ktora zrobila completed
        if result["completed"]:
            self.notifier.notify_cart_completed(cart_id, result["initiator_id"], result["total_amount"])

        return result

    @conflict_retry()
    def _apply(self, cart_id: int, user_id: str, payment_reference: str, amount_paid: int) -> Dict[str, Any]:
        with self.repo.atomic():
            member = self.repo.get_unpaid_member(cart_id, user_id)
            if not member:
                # nie czlonek albo juz oplacony (duplikat webhooka) -> sukces bez zmian
                logger.info(
                    f"No unpaid membership for user {user_id} in cart {cart_id} "
                    f"(ref {payment_reference}), treating as already applied"
                )
                return {"applied": False, "completed": False, "cart_id": cart_id}

            member.payment_status = PAID
            member.payment_reference = payment_reference
            member.amount_paid = amount_paid
            logger.info(f"Payment {payment_reference} ({amount_paid}) recorded for user {user_id} in cart {cart_id}")

            cart = self.repo.get_cart(cart_id)
            if not cart:
                raise CartNotFound()

            initiator_id = cart.initiator_id
            total_amount = cart.total_amount
            complete = False

            if cart.status in TERMINAL_STATUSES:
                # np. anulowany w trakcie placenia - wplata zapisana, stan koncowy bez zmian
                logger.warning(
                    f"Payment {payment_reference} arrived for cart {cart_id} in terminal status '{cart.status}'"
                )
            elif cart.payment_mode == SPLIT:
                # zawsze czytamy caly zbior czlonkow, nie licznik
                members = self.repo.get_members(cart_id)
                complete = all(m.payment_status == PAID for m in members)
                if complete:
                    logger.info(f"All {len(members)} members paid in split cart {cart_id}. Marking as completed.")
            elif cart.payment_mode == PAY_ALL and user_id == initiator_id:
                complete = True
                for m in self.repo.get_members(cart_id):
                    if m.user_id != user_id and m.payment_status != PAID:
                        m.payment_status = PAID
                        m.payment_reference = f"covered_by_{payment_reference}"
                        m.amount_paid = 0
                logger.info(f"Initiator paid for cart {cart_id}. Marking as completed.")

            if complete:
                self._save_cart(cart, status=COMPLETED)
            else:
                self._save_cart(cart)

        return {
            "applied": True,
            "completed": complete,
            "cart_id": cart_id,
            "initiator_id": initiator_id,
            "total_amount": total_amount,
        }
