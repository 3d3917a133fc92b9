# sharedcart/repos/cart_repo.py
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from sharedcart.data.models import SharedCartModel, SharedCartMemberModel, SharedCartItemModel
from sharedcart.domain.states import PAID


class SharedCartRepo:
    def __init__(self, db: Session):
        self.db = db

    # =====================================================
    # CARTS
    # =====================================================
    def get_cart(self, cart_id: int) -> SharedCartModel | None:
        return self.db.get(SharedCartModel, cart_id)

    def get_cart_by_invite_code(self, invite_code: str) -> SharedCartModel | None:
        return self.db.execute(
            select(SharedCartModel).where(SharedCartModel.invite_code == invite_code)
        ).scalar_one_or_none()

    def invite_code_exists(self, invite_code: str) -> bool:
        return self.get_cart_by_invite_code(invite_code) is not None

    def create_cart(self, cart: SharedCartModel) -> SharedCartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_carts(self, cart_ids: Iterable[int], statuses: Iterable[str]) -> List[SharedCartModel]:
        return list(
            self.db.execute(
                select(SharedCartModel)
                .where(
                    SharedCartModel.id.in_(list(cart_ids)),
                    SharedCartModel.status.in_(list(statuses)),
                )
                .order_by(SharedCartModel.created_at.desc())
            ).scalars()
        )

    def get_stale_carts(self, statuses: Iterable[str], created_before: datetime) -> List[SharedCartModel]:
        return list(
            self.db.execute(
                select(SharedCartModel).where(
                    SharedCartModel.status.in_(list(statuses)),
                    SharedCartModel.created_at < created_before,
                )
            ).scalars()
        )

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # UPDATE shared_carts SET ..., version = old + 1 WHERE id = :id AND version = :old
        result = self.db.execute(
            update(SharedCartModel)
            .where(
                SharedCartModel.id == cart_id,
                SharedCartModel.version == old_version,
            )
            .values(**new_data)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    # =====================================================
    # MEMBERS
    # =====================================================
    def get_member(self, cart_id: int, user_id: str) -> SharedCartMemberModel | None:
        return self.db.execute(
            select(SharedCartMemberModel).where(
                SharedCartMemberModel.cart_id == cart_id,
                SharedCartMemberModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def get_unpaid_member(self, cart_id: int, user_id: str) -> SharedCartMemberModel | None:
        return self.db.execute(
            select(SharedCartMemberModel).where(
                SharedCartMemberModel.cart_id == cart_id,
                SharedCartMemberModel.user_id == user_id,
                SharedCartMemberModel.payment_status != PAID,
            )
        ).scalar_one_or_none()

    def get_members(self, cart_id: int) -> List[SharedCartMemberModel]:
        return list(
            self.db.execute(
                select(SharedCartMemberModel)
                .where(SharedCartMemberModel.cart_id == cart_id)
                .order_by(SharedCartMemberModel.id)
            ).scalars()
        )

    def get_memberships_for_user(self, user_id: str) -> List[SharedCartMemberModel]:
        return list(
            self.db.execute(
                select(SharedCartMemberModel).where(SharedCartMemberModel.user_id == user_id)
            ).scalars()
        )

    def add_member(self, member: SharedCartMemberModel) -> SharedCartMemberModel:
        self.db.add(member)
        self.db.flush()
        return member

    # =====================================================
    # ITEMS
    # =====================================================
    def get_cart_item(self, item_id: int) -> SharedCartItemModel | None:
        return self.db.get(SharedCartItemModel, item_id)

    def get_member_item(self, cart_id: int, user_id: str, menu_item_id: str) -> SharedCartItemModel | None:
        return self.db.execute(
            select(SharedCartItemModel)
            .where(
                SharedCartItemModel.cart_id == cart_id,
                SharedCartItemModel.user_id == user_id,
                SharedCartItemModel.menu_item_id == menu_item_id,
            )
            .order_by(SharedCartItemModel.id)
            .limit(1)
        ).scalar_one_or_none()

    def get_cart_items(self, cart_id: int) -> List[SharedCartItemModel]:
        self.db.flush()
        return list(
            self.db.execute(
                select(SharedCartItemModel)
                .where(SharedCartItemModel.cart_id == cart_id)
                .order_by(SharedCartItemModel.id)
            ).scalars()
        )

    def add_cart_item(self, item: SharedCartItemModel) -> SharedCartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: SharedCartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    # =====================================================
    # TRANSACTIONS
    # =====================================================
    @contextmanager
    def atomic(self):
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self):
        self.db.rollback()
