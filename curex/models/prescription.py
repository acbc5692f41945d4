# FILE: curex/models/prescription.py
from datetime import datetime, date

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text, Index,
)
from sqlalchemy.orm import relationship

from curex.db.base import Base
from curex.models.medication import Money

RX_PENDING = "pending"
RX_VERIFIED = "verified"
RX_PARTIALLY_FILLED = "partially_filled"
RX_FILLED = "filled"
RX_EXPIRED = "expired"
RX_CANCELLED = "cancelled"
RX_STATUSES = (
    RX_PENDING,
    RX_VERIFIED,
    RX_PARTIALLY_FILLED,
    RX_FILLED,
    RX_EXPIRED,
    RX_CANCELLED,
)
FILLABLE_STATUSES = (RX_VERIFIED, RX_PARTIALLY_FILLED)

ITEM_PENDING = "pending"
ITEM_PARTIALLY_FILLED = "partially_filled"
ITEM_FILLED = "filled"
ITEM_REFUSED = "refused"
ITEM_OUT_OF_STOCK = "out_of_stock"

MAX_REFILLS = 12


class Prescription(Base):
    __tablename__ = "prescriptions"
    __table_args__ = (
        Index("ix_rx_user_status", "user_id", "status"),
        Index("ix_rx_pharmacy_status", "pharmacy_id", "status"),
        Index("ix_rx_status_expiry", "status", "expiry_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    prescription_number = Column(String(40), unique=True, nullable=False)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False)
    pharmacy_id = Column(Integer,
                         ForeignKey("pharmacies.id", ondelete="SET NULL"),
                         nullable=True)

    doctor_name = Column(String(255), nullable=False)
    doctor_license = Column(String(100))
    doctor_phone = Column(String(50))
    doctor_address = Column(Text)

    patient_name = Column(String(255), nullable=False)
    patient_dob = Column(Date)
    patient_phone = Column(String(50))
    diagnosis = Column(Text)

    status = Column(String(20), default=RX_PENDING, nullable=False)
    prescribed_date = Column(Date, nullable=False)
    expiry_date = Column(Date)
    refills_allowed = Column(Integer, default=0, nullable=False)
    refills_used = Column(Integer, default=0, nullable=False)
    is_emergency = Column(Boolean, default=False, nullable=False)
    is_controlled = Column(Boolean, default=False, nullable=False)
    special_instructions = Column(Text)

    verified_at = Column(DateTime)
    verified_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    verification_notes = Column(Text)
    filled_at = Column(DateTime)
    filled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    cancelled_at = Column(DateTime)
    cancellation_reason = Column(String(255))
    cancelled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    pharmacy = relationship("Pharmacy", back_populates="prescriptions")
    items = relationship("PrescriptionItem",
                         back_populates="prescription",
                         cascade="all, delete-orphan",
                         order_by="PrescriptionItem.id")

    @property
    def is_expired(self) -> bool:
        return self.expiry_date is not None and self.expiry_date < date.today()

    @property
    def refills_remaining(self) -> int:
        return max(0, (self.refills_allowed or 0) - (self.refills_used or 0))


class PrescriptionItem(Base):
    __tablename__ = "prescription_items"

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer,
                             ForeignKey("prescriptions.id", ondelete="CASCADE"),
                             nullable=False,
                             index=True)
    medication_id = Column(Integer,
                           ForeignKey("medications.id", ondelete="SET NULL"),
                           nullable=True)
    medication_name = Column(String(255), nullable=False)
    strength = Column(String(100))
    dosage_form = Column(String(100))
    dosage_instructions = Column(Text, nullable=False)
    frequency = Column(String(100), nullable=False)
    quantity_prescribed = Column(Integer, nullable=False)
    quantity_dispensed = Column(Integer, default=0, nullable=False)
    days_supply = Column(Integer)
    unit_price = Column(Money)
    total_price = Column(Money)
    generic_substitution_allowed = Column(Boolean, default=True, nullable=False)
    substituted_medication_id = Column(Integer,
                                       ForeignKey("medications.id",
                                                  ondelete="SET NULL"))
    substitution_reason = Column(String(255))
    special_instructions = Column(Text)
    pharmacist_notes = Column(Text)
    status = Column(String(20), default=ITEM_PENDING, nullable=False)
    filled_at = Column(DateTime)
    filled_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    prescription = relationship("Prescription", back_populates="items")
    medication = relationship("Medication", foreign_keys=[medication_id])
    substituted_medication = relationship(
        "Medication", foreign_keys=[substituted_medication_id])

    @property
    def remaining_quantity(self) -> int:
        return max(0,
                   (self.quantity_prescribed or 0) - (self.quantity_dispensed or 0))

    @property
    def is_complete(self) -> bool:
        return self.remaining_quantity == 0
