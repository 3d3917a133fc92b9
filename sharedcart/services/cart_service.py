# sharedcart/services/cart_service.py
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from sharedcart.data.models import SharedCartModel
from sharedcart.domain.errors import CartNotFound, NotAMember
from sharedcart.domain.schemas import Identity
from sharedcart.domain.states import ACTIVE_STATUSES
from sharedcart.repos.cart_repo import SharedCartRepo
from sharedcart.utils.logging import get_logger

logger = get_logger(__name__)


class CartQueryService:
    """Odczyty koszyka, bez zapisow i bez podbijania wersji."""

    def __init__(self, db: Session):
        self.repo = SharedCartRepo(db)

    @staticmethod
    def _cart_to_dict(cart: SharedCartModel) -> Dict[str, Any]:
        return {
            "cart_id": cart.id,
            "initiator_id": cart.initiator_id,
            "branch_id": cart.branch_id,
            "order_type": cart.order_type,
            "status": cart.status,
            "payment_mode": cart.payment_mode,
            "invite_code": cart.invite_code,
            "total_amount": cart.total_amount,
            "delivery_zone_id": cart.delivery_zone_id,
            "delivery_fee": cart.delivery_fee,
            "delivery_street": cart.delivery_street,
            "delivery_phone": cart.delivery_phone,
            "created_at": cart.created_at,
        }

    def get_cart(self, cart_id: int, identity: Identity) -> Dict[str, Any]:
        cart = self.repo.get_cart(cart_id)
        if not cart:
            raise CartNotFound()

        members = self.repo.get_members(cart_id)
        if not any(m.user_id == identity.user_id for m in members):
            raise NotAMember()

        items = self.repo.get_cart_items(cart_id)

        return {
            **self._cart_to_dict(cart),
            "members": [
                {
                    "user_id": m.user_id,
                    "payment_status": m.payment_status,
                    "amount_due": m.amount_due,
                    "amount_paid": m.amount_paid,
                    "payment_reference": m.payment_reference,
                    "is_initiator": m.user_id == cart.initiator_id,
                }
                for m in members
            ],
            "items": [
                {
                    "id": i.id,
                    "user_id": i.user_id,
                    "menu_item_id": i.menu_item_id,
                    "name": i.item_name,
                    "quantity": i.quantity,
                    "unit_price": i.unit_price,
                }
                for i in items
            ],
        }

    def list_user_carts(self, identity: Identity) -> List[Dict[str, Any]]:
        memberships = self.repo.get_memberships_for_user(identity.user_id)
        if not memberships:
            return []

        carts = self.repo.get_carts({m.cart_id for m in memberships}, ACTIVE_STATUSES)
        logger.info(f"User {identity.user_id} has {len(carts)} active shared carts")

        return [
            {
                "cart_id": c.id,
                "initiator_id": c.initiator_id,
                "status": c.status,
                "payment_mode": c.payment_mode,
                "order_type": c.order_type,
                "total_amount": c.total_amount,
                "created_at": c.created_at,
            }
            for c in carts
        ]
