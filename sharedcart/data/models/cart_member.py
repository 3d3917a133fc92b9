# sharedcart/data/models/cart_member.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from sharedcart.data.database import Base


class SharedCartMemberModel(Base):
    __tablename__ = "shared_cart_members"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("shared_carts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    user_email = Column(String(255), nullable=True)

    payment_status = Column(String(16), nullable=False, default="pending")
    amount_due = Column(Integer, nullable=False, default=0)
    payment_reference = Column(String(128), nullable=True)
    amount_paid = Column(Integer, nullable=True)

    joined_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    cart = relationship("SharedCartModel", back_populates="members")

    __table_args__ = (UniqueConstraint("cart_id", "user_id", name="u_cart_member"),)
