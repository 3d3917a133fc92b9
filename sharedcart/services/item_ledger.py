# sharedcart/services/item_ledger.py
from datetime import datetime
from typing import Callable, Dict, Any

from sqlalchemy.orm import Session

from sharedcart.data.models import SharedCartItemModel
from sharedcart.domain.errors import (
    CartItemNotFound,
    CartNotFound,
    InvalidQuantity,
    ItemUnavailable,
    PermissionDenied,
)
from sharedcart.domain.schemas import Identity
from sharedcart.services.base import CartCommandService
from sharedcart.services.catalog_client import CatalogClient
from sharedcart.utils.logging import get_logger
from sharedcart.utils.retry import conflict_retry

logger = get_logger(__name__)


class ItemLedgerService(CartCommandService):
    """
    Pozycje wspolnego koszyka: dodawanie, usuwanie, zmiana ilosci.
    Po kazdej zmianie total_amount liczony od nowa z calego zbioru pozycji.
    """

    def __init__(
        self,
        db: Session,
        catalog_client: CatalogClient,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(db, clock)
        self.catalog_client = catalog_client

    @conflict_retry()
    def add_item(self, cart_id: int, identity: Identity, menu_item_id: str, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise InvalidQuantity()

        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            self._require_member(cart, identity.user_id)
            self._require_open(cart)

            # cena tylko z katalogu
            logger.info(f"Fetching menu item {menu_item_id} for cart {cart_id}")
            menu_item = self.catalog_client.fetch_menu_item(menu_item_id)
            if not menu_item or not menu_item.get("is_available", False):
                raise ItemUnavailable()

            item = self.repo.add_cart_item(
                SharedCartItemModel(
                    cart_id=cart.id,
                    user_id=identity.user_id,
                    menu_item_id=menu_item_id,
                    item_name=menu_item.get("name"),
                    quantity=quantity,
                    unit_price=int(menu_item["price"]),
                    added_at=self.clock(),
                )
            )
            item_id = item.id

            total = self._recompute_total(cart)
            self._save_cart(cart, total_amount=total)

        logger.info(f"User {identity.user_id} added {quantity} x {menu_item_id} to cart {cart_id}, total {total}")
        return {"cart_id": cart_id, "item_id": item_id, "total_amount": total}

    @conflict_retry()
    def remove_item(self, item_id: int, identity: Identity) -> Dict[str, Any]:
        with self.repo.atomic():
            item = self.repo.get_cart_item(item_id)
            if not item:
                # podwojne klikniecie: pozycji juz nie ma, to nie jest blad
                logger.info(f"Item {item_id} already removed, nothing to do")
                return {"removed": False, "cart_id": None, "total_amount": None}

            cart = self.repo.get_cart(item.cart_id)
            if not cart:
                raise CartNotFound()

            self._require_open(cart)

            if item.user_id != identity.user_id and cart.initiator_id != identity.user_id:
                raise PermissionDenied("You do not have permission to remove this item")

            cart_id = cart.id
            self.repo.delete_cart_item(item)

            total = self._recompute_total(cart)
            self._save_cart(cart, total_amount=total)

        logger.info(f"Item {item_id} removed from cart {cart_id} by {identity.user_id}, total {total}")
        return {"removed": True, "cart_id": cart_id, "total_amount": total}

    @conflict_retry()
    def adjust_item(self, cart_id: int, identity: Identity, menu_item_id: str, delta: int) -> Dict[str, Any]:
        if delta == 0:
            raise InvalidQuantity("Quantity change must not be 0")

        with self.repo.atomic():
            cart = self._load_cart(cart_id)
            self._require_member(cart, identity.user_id)
            self._require_open(cart)

            item = self.repo.get_member_item(cart.id, identity.user_id, menu_item_id)
            if not item:
                raise CartItemNotFound()

            new_quantity = item.quantity + delta
            if new_quantity <= 0:
                logger.info(f"Quantity of {menu_item_id} in cart {cart_id} dropped to {new_quantity}, removing row")
                self.repo.delete_cart_item(item)
            else:
                item.quantity = new_quantity

            total = self._recompute_total(cart)
            self._save_cart(cart, total_amount=total)

        return {"cart_id": cart_id, "quantity": max(new_quantity, 0), "total_amount": total}
