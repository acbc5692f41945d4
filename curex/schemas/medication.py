# FILE: curex/schemas/medication.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from curex.schemas.common import reject_null


class MedicationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    generic_name: Optional[str] = Field(None, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    dosage: Optional[str] = Field(None, max_length=100)
    form: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    strength: Optional[str] = Field(None, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field("DZD", min_length=3, max_length=3)
    min_stock: int = Field(0, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    requires_prescription: bool = False
    manufacturer: Optional[str] = Field(None, max_length=255)
    barcode: Optional[str] = Field(None, max_length=64)
    batch_number: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None
    image_url: Optional[str] = Field(None, max_length=500)
    storage_conditions: Optional[str] = Field(None, max_length=255)

    @field_validator("name", "generic_name", "brand", "category", "form")
    @classmethod
    def _trim(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v


class MedicationCreate(MedicationBase):
    stock: int = Field(0, ge=0)


class MedicationUpdate(BaseModel):
    # all optional for partial update
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    generic_name: Optional[str] = Field(None, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    dosage: Optional[str] = Field(None, max_length=100)
    form: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    strength: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    stock: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    requires_prescription: Optional[bool] = None
    manufacturer: Optional[str] = Field(None, max_length=255)
    barcode: Optional[str] = Field(None, max_length=64)
    batch_number: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None
    image_url: Optional[str] = Field(None, max_length=500)
    storage_conditions: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None

    @field_validator("name", "price", "currency", "min_stock",
                     "requires_prescription", "is_active")
    @classmethod
    def _not_null(cls, v, info):
        return reject_null(v, info)


class MedicationBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    generic_name: Optional[str] = None
    brand: Optional[str] = None
    strength: Optional[str] = None
    form: Optional[str] = None
    category: Optional[str] = None
    price: Decimal
    stock: int
    image_url: Optional[str] = None
    requires_prescription: bool = False


class MedicationOut(MedicationBrief):
    description: Optional[str] = None
    dosage: Optional[str] = None
    currency: Optional[str] = None
    min_stock: int = 0
    max_stock: Optional[int] = None
    manufacturer: Optional[str] = None
    barcode: Optional[str] = None
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    storage_conditions: Optional[str] = None
    is_active: bool
    is_available: bool
    stock_status: str
    in_stock: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
