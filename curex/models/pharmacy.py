# FILE: curex/models/pharmacy.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Numeric, ForeignKey,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.user import TABLE_ARGS


class Pharmacy(Base):
    __tablename__ = "pharmacies"
    __table_args__ = TABLE_ARGS

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    license_number = Column(String(100))
    registration_number = Column(String(100))
    phone = Column(String(50))
    email = Column(String(191))
    website = Column(String(255))

    address_street = Column(String(255))
    address_city = Column(String(100), index=True)
    address_state = Column(String(100))
    address_postal_code = Column(String(20))
    address_country = Column(String(100), default="Algeria")
    latitude = Column(Numeric(10, 8))
    longitude = Column(Numeric(11, 8))

    accepts_insurance = Column(Boolean, default=False, nullable=False)
    delivery_available = Column(Boolean, default=False, nullable=False)
    delivery_radius = Column(Numeric(8, 2))
    delivery_fee = Column(Numeric(10, 2))
    pickup_available = Column(Boolean, default=True, nullable=False)

    rating = Column(Numeric(4, 2))
    total_orders_processed = Column(Integer, default=0, nullable=False)
    total_prescriptions_filled = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_24_hours = Column(Boolean, default=False, nullable=False)
    emergency_services = Column(Boolean, default=False, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    orders = relationship("Order", back_populates="pharmacy")
    prescriptions = relationship("Prescription", back_populates="pharmacy")
