# sharedcart/services/base.py
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from sharedcart.data.models import SharedCartModel, SharedCartMemberModel
from sharedcart.domain.errors import (
    CartNotFound,
    CartNotOpen,
    ConcurrencyConflict,
    NotAMember,
    PermissionDenied,
)
from sharedcart.domain.states import OPEN
from sharedcart.repos.cart_repo import SharedCartRepo
from sharedcart.services.cart_totals import calculate_cart_total
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartCommandService:
    """
    Wspolna baza dla komend na koszyku.
    Kazda komenda ktora cos zapisuje podbija shared_carts.version (optimistic locking),
    wiec dwie rownolegle komendy na tym samym koszyku nie przejda obie.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] | None = None):
        self.repo = SharedCartRepo(db)
        self.clock = clock or utcnow

    def _load_cart(self, cart_id: int) -> SharedCartModel:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise CartNotFound()
        return cart

    def _require_member(self, cart: SharedCartModel, user_id: str) -> SharedCartMemberModel:
        member = self.repo.get_member(cart.id, user_id)
        if not member:
            raise NotAMember()
        return member

    @staticmethod
    def _require_initiator(cart: SharedCartModel, user_id: str, action: str) -> None:
        if cart.initiator_id != user_id:
            raise PermissionDenied(f"Only the cart initiator can {action}")

    @staticmethod
    def _require_open(cart: SharedCartModel) -> None:
        if cart.status != OPEN:
            raise CartNotOpen(f"Cart is '{cart.status}', it can no longer be modified")

    def _recompute_total(self, cart: SharedCartModel) -> int:
        # zawsze liczymy od zera z aktualnych pozycji, nigdy przyrostowo
        return calculate_cart_total(cart.id, self.repo.get_cart_items(cart.id))

    def _save_cart(self, cart: SharedCartModel, **changes) -> None:
        old_version = cart.version
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=old_version,
            new_data={**changes, "version": old_version + 1},
        )

        # np w bazie update set version 2 where id 1 and version 1
        if rowcount == 0:
            self.repo.rollback()
            logger.warning(f"Version conflict on cart {cart.id} (expected version {old_version})")
            raise ConcurrencyConflict()
