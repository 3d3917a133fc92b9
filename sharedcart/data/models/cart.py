# sharedcart/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from sharedcart.data.database import Base


class SharedCartModel(Base):
    __tablename__ = "shared_carts"

    id = Column(Integer, primary_key=True)
    initiator_id = Column(String(64), nullable=False, index=True)
    branch_id = Column(String(64), nullable=True)
    order_type = Column(String(16), nullable=False)

    status = Column(String(16), nullable=False, default="open", index=True)
    payment_mode = Column(String(16), nullable=False)
    invite_code = Column(String(32), nullable=False, unique=True, index=True)
    total_amount = Column(Integer, nullable=False, default=0)

    # tylko dla Delivery
    delivery_zone_id = Column(String(64), nullable=True)
    delivery_fee = Column(Integer, nullable=True)
    delivery_street = Column(String(255), nullable=True)
    delivery_phone = Column(String(32), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    members = relationship(
        "SharedCartMemberModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="SharedCartMemberModel.id",
    )
    items = relationship(
        "SharedCartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="SharedCartItemModel.id",
    )
