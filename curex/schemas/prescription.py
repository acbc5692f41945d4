# FILE: curex/schemas/prescription.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import (BaseModel, ConfigDict, Field, field_validator,
                      model_validator)

from curex.models.prescription import MAX_REFILLS
from curex.schemas.common import reject_null


class PrescriptionItemIn(BaseModel):
    medication_id: Optional[int] = None
    medication_name: str = Field(..., min_length=1, max_length=255)
    strength: Optional[str] = Field(None, max_length=100)
    dosage_form: Optional[str] = Field(None, max_length=100)
    dosage_instructions: str = Field(..., min_length=1, max_length=1000)
    frequency: str = Field(..., min_length=1, max_length=100)
    quantity_prescribed: int = Field(..., ge=1)
    days_supply: Optional[int] = Field(None, ge=1)
    special_instructions: Optional[str] = Field(None, max_length=500)
    generic_substitution_allowed: bool = True


class PrescriptionFields(BaseModel):
    pharmacy_id: Optional[int] = None
    doctor_name: str = Field(..., min_length=1, max_length=255)
    doctor_license: Optional[str] = Field(None, max_length=100)
    doctor_phone: Optional[str] = Field(None, max_length=20)
    doctor_address: Optional[str] = Field(None, max_length=500)
    patient_name: str = Field(..., min_length=1, max_length=255)
    patient_dob: Optional[date] = None
    patient_phone: Optional[str] = Field(None, max_length=20)
    diagnosis: Optional[str] = Field(None, max_length=1000)
    prescribed_date: date
    expiry_date: Optional[date] = None
    refills_allowed: int = Field(0, ge=0, le=MAX_REFILLS)
    is_emergency: bool = False
    is_controlled: bool = False
    special_instructions: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _expiry_after_prescribed(self):
        if self.expiry_date and self.expiry_date <= self.prescribed_date:
            raise ValueError(
                "The expiry date must be a date after prescribed date.")
        return self


class PrescriptionCreate(PrescriptionFields):
    items: List[PrescriptionItemIn] = Field(..., min_length=1)


class PrescriptionUpdate(BaseModel):
    pharmacy_id: Optional[int] = None
    doctor_name: Optional[str] = Field(None, min_length=1, max_length=255)
    doctor_license: Optional[str] = Field(None, max_length=100)
    doctor_phone: Optional[str] = Field(None, max_length=20)
    doctor_address: Optional[str] = Field(None, max_length=500)
    patient_name: Optional[str] = Field(None, min_length=1, max_length=255)
    patient_dob: Optional[date] = None
    patient_phone: Optional[str] = Field(None, max_length=20)
    diagnosis: Optional[str] = Field(None, max_length=1000)
    prescribed_date: Optional[date] = None
    expiry_date: Optional[date] = None
    refills_allowed: Optional[int] = Field(None, ge=0, le=MAX_REFILLS)
    is_emergency: Optional[bool] = None
    is_controlled: Optional[bool] = None
    special_instructions: Optional[str] = Field(None, max_length=1000)
    items: Optional[List[PrescriptionItemIn]] = None

    @field_validator("doctor_name", "patient_name", "prescribed_date",
                     "refills_allowed", "is_emergency", "is_controlled",
                     "items")
    @classmethod
    def _not_null(cls, v, info):
        return reject_null(v, info)


class VerifyIn(BaseModel):
    verification_notes: Optional[str] = Field(None, max_length=1000)


class DispenseItemIn(BaseModel):
    prescription_item_id: int
    quantity_dispensed: int = Field(..., ge=1)
    pharmacist_notes: Optional[str] = Field(None, max_length=500)
    substituted_medication_id: Optional[int] = None
    substitution_reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _reason_with_substitute(self):
        if self.substituted_medication_id and not self.substitution_reason:
            raise ValueError(
                "The substitution reason is required when a substitute is given.")
        return self


class FillIn(BaseModel):
    items: List[DispenseItemIn] = Field(..., min_length=1)


class CancelIn(BaseModel):
    cancellation_reason: str = Field(..., min_length=1, max_length=500)


class PrescriptionItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: Optional[int] = None
    medication_name: str
    strength: Optional[str] = None
    dosage_form: Optional[str] = None
    dosage_instructions: str
    frequency: str
    quantity_prescribed: int
    quantity_dispensed: int
    remaining_quantity: int
    days_supply: Optional[int] = None
    unit_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    generic_substitution_allowed: bool
    substituted_medication_id: Optional[int] = None
    substitution_reason: Optional[str] = None
    special_instructions: Optional[str] = None
    pharmacist_notes: Optional[str] = None
    status: str
    filled_at: Optional[datetime] = None


class PrescriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prescription_number: str
    user_id: int
    pharmacy_id: Optional[int] = None
    doctor_name: str
    doctor_license: Optional[str] = None
    doctor_phone: Optional[str] = None
    doctor_address: Optional[str] = None
    patient_name: str
    patient_dob: Optional[date] = None
    patient_phone: Optional[str] = None
    diagnosis: Optional[str] = None
    status: str
    prescribed_date: date
    expiry_date: Optional[date] = None
    refills_allowed: int
    refills_used: int
    refills_remaining: int
    is_emergency: bool
    is_controlled: bool
    is_expired: bool
    special_instructions: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    verification_notes: Optional[str] = None
    filled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    items: List[PrescriptionItemOut] = []
