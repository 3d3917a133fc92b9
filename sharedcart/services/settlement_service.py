# sharedcart/services/settlement_service.py
import secrets
from typing import Dict, Any

from sharedcart.data.models import SharedCartModel
from sharedcart.domain.errors import (
    AuthenticationRequired,
    CartAlreadyClosed,
    CartNotOpen,
    DeliveryZoneRequired,
    EmptyCart,
    MemberAlreadyPaid,
    WrongPaymentMode,
)
from sharedcart.domain.payments import PaymentInitiation, SharedCartPayment
from sharedcart.domain.schemas import Identity
from sharedcart.domain.states import (
    ACTIVE_STATUSES,
    CANCELLED,
    DELIVERY,
    LOCKED,
    OPEN,
    PAID,
    PAY_ALL,
    PAYING,
    SPLIT,
)
from sharedcart.services.base import CartCommandService
from sharedcart.utils.logging import get_logger
from sharedcart.utils.retry import conflict_retry

logger = get_logger(__name__)


def split_amount_due(payable: int, member_count: int) -> int:
    """Udzial na osobe zaokraglony w gore, suma udzialow nigdy nie jest mniejsza niz ``payable``."""
    if member_count <= 0:
        raise ValueError("Cannot split payment with zero members")
    return -(-payable // member_count)


def new_payment_reference(cart_id: int, user_id: str, prefix: str = "sc") -> str:
    return f"{prefix}_{cart_id}_{user_id[:6]}_{secrets.token_hex(4)}"


class SettlementService(CartCommandService):
    """
    Maszyna stanow rozliczenia:
    open -> paying -> completed (split), open -> locked -> completed (payAll),
    open/paying/locked -> cancelled. Do open nigdy nie wracamy.
    Przejscie do completed robi wylacznie PaymentReconciler.
    """

    @staticmethod
    def _require_delivery_details(cart: SharedCartModel) -> None:
        if cart.order_type == DELIVERY and (cart.delivery_zone_id is None or cart.delivery_fee is None):
            raise DeliveryZoneRequired()

    @staticmethod
    def _require_email(identity: Identity) -> str:
        if not identity.email:
            raise AuthenticationRequired("An email address is required to start a payment")
        return identity.email

    @conflict_retry()
    def start_split_payment(self, cart_id: int, identity: Identity) -> PaymentInitiation:
        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            member = self._require_member(cart, identity.user_id)

            if cart.status not in (OPEN, PAYING):
                raise CartNotOpen(f"Cart status is '{cart.status}', cannot start payment")
            if cart.payment_mode != SPLIT:
                raise WrongPaymentMode("Cart is not in split payment mode")
            self._require_delivery_details(cart)
            if member.payment_status == PAID:
                raise MemberAlreadyPaid()
            email = self._require_email(identity)

            if cart.status == OPEN:
                # pierwszy placacy: zamrazamy total i dzielimy na wszystkich czlonkow
                total = self._recompute_total(cart)
                if total <= 0:
                    raise EmptyCart()

                members = self.repo.get_members(cart.id)
                payable = total + (cart.delivery_fee or 0)
                amount_due = split_amount_due(payable, len(members))

                for m in members:
                    m.amount_due = amount_due

                self._save_cart(cart, status=PAYING, total_amount=total)
                logger.info(
                    f"Split payment started for cart {cart_id}: total {total}, payable {payable}, "
                    f"{len(members)} members, {amount_due} each"
                )
            else:
                # koszyk juz w paying, kwota policzona przy pierwszym placacym
                amount_due = member.amount_due
                logger.info(f"Split payment resumed for cart {cart_id}, member {identity.user_id} owes {amount_due}")

        return PaymentInitiation(
            amount=amount_due,
            email=email,
            reference=new_payment_reference(cart_id, identity.user_id),
            metadata=SharedCartPayment(cart_id=cart_id, user_id=identity.user_id, type="shared_cart_split"),
        )

    @conflict_retry()
    def start_pay_all(self, cart_id: int, identity: Identity) -> PaymentInitiation:
        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            self._require_initiator(cart, identity.user_id, "pay for the whole cart")
            self._require_open(cart)
            if cart.payment_mode != PAY_ALL:
                raise WrongPaymentMode("Cart is not in pay-all mode")
            self._require_delivery_details(cart)
            email = self._require_email(identity)

            total = self._recompute_total(cart)
            if total <= 0:
                raise EmptyCart()
            amount = total + (cart.delivery_fee or 0)

            initiator = self._require_member(cart, identity.user_id)
            initiator.amount_due = amount

            self._save_cart(cart, status=LOCKED, total_amount=total)

        logger.info(f"Pay-all started for cart {cart_id}: total {total}, payable {amount}. Cart locked.")
        return PaymentInitiation(
            amount=amount,
            email=email,
            reference=new_payment_reference(cart_id, identity.user_id, prefix="sc_all"),
            metadata=SharedCartPayment(cart_id=cart_id, user_id=identity.user_id, type="shared_cart_payall"),
        )

    @conflict_retry()
    def cancel_cart(self, cart_id: int, identity: Identity) -> Dict[str, Any]:
        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            self._require_initiator(cart, identity.user_id, "cancel the cart")

            if cart.status not in ACTIVE_STATUSES:
                raise CartAlreadyClosed(f"Cannot cancel a cart with status '{cart.status}'")

            previous = cart.status
            # wplaty juz zaksiegowane zostaja bez zmian (brak zwrotow)
            self._save_cart(cart, status=CANCELLED)

        logger.info(f"Shared cart {cart_id} cancelled by initiator (was {previous})")
        return {"cart_id": cart_id, "status": CANCELLED}
