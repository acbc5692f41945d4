# FILE: curex/models/inventory.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, Text, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.medication import Money

TXN_IN = "in"
TXN_OUT = "out"
TXN_ADJUSTMENT = "adjustment"
TXN_TYPES = (TXN_IN, TXN_OUT, TXN_ADJUSTMENT)


class InventoryTransaction(Base):
    """
    Append-only stock ledger row.
    quantity_after == quantity_before + quantity_change always holds.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        Index("ix_inv_txn_med_type", "medication_id", "type"),
        Index("ix_inv_txn_pharmacy_created", "pharmacy_id", "created_at"),
        Index("ix_inv_txn_reference", "reference_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer,
                           ForeignKey("medications.id", ondelete="CASCADE"),
                           nullable=False)
    pharmacy_id = Column(Integer,
                         ForeignKey("pharmacies.id", ondelete="CASCADE"),
                         nullable=True)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="SET NULL"),
                     nullable=True)

    type = Column(SAEnum(*TXN_TYPES, name="inventory_txn_type"),
                  nullable=False)
    quantity_change = Column(Integer, nullable=False)  # +in / -out
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)

    unit_cost = Column(Money)
    total_cost = Column(Money)

    reference_type = Column(String(50))  # order / prescription / manual ...
    reference_id = Column(Integer)

    notes = Column(Text)
    expiry_date = Column(Date)
    batch_number = Column(String(100))
    supplier = Column(String(255))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    medication = relationship("Medication", back_populates="transactions")
    pharmacy = relationship("Pharmacy")
    user = relationship("User")
