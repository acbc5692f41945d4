# FILE: curex/models/order.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON, Index,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.medication import Money

ORDER_PENDING = "pending"
ORDER_CONFIRMED = "confirmed"
ORDER_PREPARING = "preparing"
ORDER_READY = "ready"
ORDER_COMPLETED = "completed"
ORDER_CANCELLED = "cancelled"
ORDER_STATUSES = (
    ORDER_PENDING,
    ORDER_CONFIRMED,
    ORDER_PREPARING,
    ORDER_READY,
    ORDER_COMPLETED,
    ORDER_CANCELLED,
)
CANCELLABLE_STATUSES = (ORDER_PENDING, ORDER_CONFIRMED)

DELIVERY_PICKUP = "pickup"
DELIVERY_DELIVERY = "delivery"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_user_status", "user_id", "status"),
        Index("ix_orders_pharmacy_status", "pharmacy_id", "status"),
        Index("ix_orders_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(40), unique=True, nullable=False)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False)
    pharmacy_id = Column(Integer,
                         ForeignKey("pharmacies.id", ondelete="SET NULL"),
                         nullable=True)

    status = Column(String(20), default=ORDER_PENDING, nullable=False)
    type = Column(String(20), default="online", nullable=False)

    subtotal = Column(Money, default=0, nullable=False)
    tax_amount = Column(Money, default=0, nullable=False)
    discount_amount = Column(Money, default=0, nullable=False)
    total_amount = Column(Money, default=0, nullable=False)
    currency = Column(String(3), default="DZD", nullable=False)

    notes = Column(Text)
    pharmacy_notes = Column(Text)
    delivery_address = Column(JSON)
    delivery_method = Column(String(20), default=DELIVERY_PICKUP, nullable=False)
    delivery_fee = Column(Money, default=0, nullable=False)

    estimated_ready_at = Column(DateTime)
    ready_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String(255))
    cancelled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    processed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))

    requires_prescription = Column(Boolean, default=False, nullable=False)
    prescription_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    processor = relationship("User", foreign_keys=[processed_by])
    pharmacy = relationship("Pharmacy", back_populates="orders")
    items = relationship("OrderItem",
                         back_populates="order",
                         cascade="all, delete-orphan",
                         order_by="OrderItem.id")

    @property
    def can_be_cancelled(self) -> bool:
        return self.status in CANCELLABLE_STATUSES


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer,
                      ForeignKey("orders.id", ondelete="CASCADE"),
                      nullable=False,
                      index=True)
    medication_id = Column(Integer,
                           ForeignKey("medications.id"),
                           nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Money, nullable=False)
    total_price = Column(Money, nullable=False)
    dosage_instructions = Column(Text)
    pharmacist_notes = Column(Text)
    substitution_allowed = Column(Boolean, default=False, nullable=False)
    is_fulfilled = Column(Boolean, default=False, nullable=False)
    fulfilled_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    order = relationship("Order", back_populates="items")
    medication = relationship("Medication", lazy="joined")
