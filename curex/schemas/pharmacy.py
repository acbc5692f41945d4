# FILE: curex/schemas/pharmacy.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from curex.schemas.common import reject_null


class PharmacyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    license_number: Optional[str] = Field(None, max_length=100)
    registration_number: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    address_street: Optional[str] = Field(None, max_length=255)
    address_city: Optional[str] = Field(None, max_length=100)
    address_state: Optional[str] = Field(None, max_length=100)
    address_postal_code: Optional[str] = Field(None, max_length=20)
    address_country: Optional[str] = Field("Algeria", max_length=100)
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    accepts_insurance: bool = False
    delivery_available: bool = False
    delivery_radius: Optional[Decimal] = Field(None, ge=0)
    delivery_fee: Optional[Decimal] = Field(None, ge=0)
    pickup_available: bool = True
    is_24_hours: bool = False
    emergency_services: bool = False


class PharmacyCreate(PharmacyBase):
    pass


class PharmacyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    license_number: Optional[str] = Field(None, max_length=100)
    registration_number: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)
    address_street: Optional[str] = Field(None, max_length=255)
    address_city: Optional[str] = Field(None, max_length=100)
    address_state: Optional[str] = Field(None, max_length=100)
    address_postal_code: Optional[str] = Field(None, max_length=20)
    address_country: Optional[str] = Field(None, max_length=100)
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    accepts_insurance: Optional[bool] = None
    delivery_available: Optional[bool] = None
    delivery_radius: Optional[Decimal] = Field(None, ge=0)
    delivery_fee: Optional[Decimal] = Field(None, ge=0)
    pickup_available: Optional[bool] = None
    is_24_hours: Optional[bool] = None
    emergency_services: Optional[bool] = None
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None

    @field_validator("name", "accepts_insurance", "delivery_available",
                     "pickup_available", "is_24_hours", "emergency_services",
                     "is_active", "is_verified")
    @classmethod
    def _not_null(cls, v, info):
        return reject_null(v, info)


class PharmacyOut(PharmacyBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: Optional[str] = None
    rating: Optional[Decimal] = None
    total_orders_processed: int = 0
    total_prescriptions_filled: int = 0
    is_active: bool
    is_verified: bool
    created_at: Optional[datetime] = None
