# sharedcart/data/models/cart_item.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Index
from sqlalchemy.orm import relationship

from sharedcart.data.database import Base


class SharedCartItemModel(Base):
    __tablename__ = "shared_cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("shared_carts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    menu_item_id = Column(String(64), nullable=False)
    item_name = Column(String(255), nullable=True)

    quantity = Column(Integer, nullable=False)
    # cena z katalogu w momencie dodania, nigdy od klienta
    unit_price = Column(Integer, nullable=False)

    added_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    cart = relationship("SharedCartModel", back_populates="items")

    __table_args__ = (
        Index("ix_cart_user_menu_item", "cart_id", "user_id", "menu_item_id"),
    )
