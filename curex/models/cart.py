# FILE: curex/models/cart.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.medication import Money


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="CASCADE"),
                     unique=True,
                     nullable=False)

    subtotal = Column(Money, default=0, nullable=False)
    tax_amount = Column(Money, default=0, nullable=False)
    shipping_cost = Column(Money, default=0, nullable=False)
    total_amount = Column(Money, default=0, nullable=False)
    currency = Column(String(3), default="DZD", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    items = relationship("CartItem",
                         back_populates="cart",
                         cascade="all, delete-orphan",
                         order_by="CartItem.id")
    user = relationship("User")

    @property
    def items_count(self) -> int:
        return sum(i.quantity or 0 for i in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("cart_id",
                                       "medication_id",
                                       name="uq_cart_item_medication"), )

    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer,
                     ForeignKey("carts.id", ondelete="CASCADE"),
                     nullable=False,
                     index=True)
    medication_id = Column(Integer,
                           ForeignKey("medications.id", ondelete="CASCADE"),
                           nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    cart = relationship("Cart", back_populates="items")
    medication = relationship("Medication", lazy="joined")
