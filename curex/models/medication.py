# FILE: curex/models/medication.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric, ForeignKey,
    Text, Index,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.user import TABLE_ARGS

Money = Numeric(12, 2)

STOCK_IN = "in_stock"
STOCK_LOW = "low_stock"
STOCK_OUT = "out_of_stock"


class Medication(Base):
    __tablename__ = "medications"
    __table_args__ = (
        Index("ix_medications_category_active", "category", "is_active"),
        TABLE_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    generic_name = Column(String(255), index=True)
    brand = Column(String(255))
    description = Column(Text)
    dosage = Column(String(100))
    form = Column(String(50))
    category = Column(String(100))
    strength = Column(String(100))

    price = Column(Money, default=0, nullable=False)
    currency = Column(String(3), default="DZD")

    stock = Column(Integer, default=0, nullable=False)
    min_stock = Column(Integer, default=0, nullable=False)
    max_stock = Column(Integer)

    requires_prescription = Column(Boolean, default=False, nullable=False)
    manufacturer = Column(String(255))
    barcode = Column(String(64), index=True)
    batch_number = Column(String(100))
    expiry_date = Column(Date)
    image_url = Column(String(500))
    storage_conditions = Column(String(255))

    is_active = Column(Boolean, default=True, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    transactions = relationship("InventoryTransaction",
                                back_populates="medication",
                                cascade="all, delete-orphan")

    @property
    def stock_status(self) -> str:
        stock = self.stock or 0
        if stock <= 0:
            return STOCK_OUT
        if stock <= (self.min_stock or 0):
            return STOCK_LOW
        return STOCK_IN

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0
