# sharedcart/services/membership_service.py
import secrets
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError

from sharedcart.data.models import SharedCartModel, SharedCartMemberModel
from sharedcart.domain.errors import (
    CartNotJoinable,
    ConcurrencyConflict,
    InvalidInviteCode,
    WrongPaymentMode,
)
from sharedcart.domain.schemas import Identity
from sharedcart.domain.states import OPEN, PENDING, SPLIT, PAY_ALL
from sharedcart.services.base import CartCommandService
from sharedcart.utils.logging import get_logger
from sharedcart.utils.retry import conflict_retry
from sharedcart.utils.settings import INVITE_CODE_LENGTH

logger = get_logger(__name__)

_MAX_INVITE_CODE_ATTEMPTS = 5


def generate_invite_code(length: int = INVITE_CODE_LENGTH) -> str:
    # token_urlsafe(n) daje ~1.3 znaku na bajt, ucinamy do zadanej dlugosci
    return secrets.token_urlsafe(length)[:length]


class MembershipService(CartCommandService):
    """
    Tworzenie koszyka, dolaczanie po kodzie zaproszenia, tryb platnosci.
    """

    def _fresh_invite_code(self) -> str:
        for _ in range(_MAX_INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            if not self.repo.invite_code_exists(code):
                return code
        raise RuntimeError("Could not generate a unique invite code")

    def create_cart(
        self,
        identity: Identity,
        branch_id: str | None,
        payment_mode: str,
        order_type: str,
    ) -> Dict[str, Any]:
        if payment_mode not in (SPLIT, PAY_ALL):
            raise WrongPaymentMode(f"Unknown payment mode '{payment_mode}'")

        with self.repo.atomic():
            invite_code = self._fresh_invite_code()
            now = self.clock()

            cart = self.repo.create_cart(
                SharedCartModel(
                    initiator_id=identity.user_id,
                    branch_id=branch_id,
                    order_type=order_type,
                    status=OPEN,
                    payment_mode=payment_mode,
                    invite_code=invite_code,
                    total_amount=0,
                    version=1,
                    created_at=now,
                )
            )

            #inicjator jest pierwszym czlonkiem
            self.repo.add_member(
                SharedCartMemberModel(
                    cart_id=cart.id,
                    user_id=identity.user_id,
                    user_email=identity.email,
                    payment_status=PENDING,
                    amount_due=0,
                    joined_at=now,
                )
            )
            cart_id = cart.id

        logger.info(f"Created shared cart {cart_id} ({payment_mode}, {order_type}) for user {identity.user_id}")
        return {"cart_id": cart_id, "invite_code": invite_code}

    @conflict_retry()
    def join_cart(self, identity: Identity, invite_code: str) -> Dict[str, Any]:
        with self.repo.atomic():
            cart = self.repo.get_cart_by_invite_code(invite_code)
            if not cart:
                raise InvalidInviteCode()

            if cart.status != OPEN:
                raise CartNotJoinable()

            cart_id = cart.id
            if self.repo.get_member(cart_id, identity.user_id):
                logger.info(f"User {identity.user_id} is already a member of cart {cart_id}")
                return {"cart_id": cart_id, "already_member": True}

            try:
                self.repo.add_member(
                    SharedCartMemberModel(
                        cart_id=cart_id,
                        user_id=identity.user_id,
                        user_email=identity.email,
                        payment_status=PENDING,
                        amount_due=0,
                        joined_at=self.clock(),
                    )
                )
            except IntegrityError:
                # rownolegly join tego samego usera, retry zobaczy istniejace czlonkostwo
                raise ConcurrencyConflict()
            # liczba czlonkow wplywa na podzial kwoty, wiec tez podbijamy wersje
            self._save_cart(cart)

        logger.info(f"User {identity.user_id} joined cart {cart_id}")
        return {"cart_id": cart_id, "already_member": False}

    @conflict_retry()
    def set_payment_mode(self, cart_id: int, identity: Identity, payment_mode: str) -> Dict[str, Any]:
        if payment_mode not in (SPLIT, PAY_ALL):
            raise WrongPaymentMode(f"Unknown payment mode '{payment_mode}'")

        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            self._require_initiator(cart, identity.user_id, "set the payment mode")
            self._require_open(cart)
            self._save_cart(cart, payment_mode=payment_mode)

        logger.info(f"Cart {cart_id} payment mode set to {payment_mode}")
        return {"cart_id": cart_id, "payment_mode": payment_mode}
