# FILE: curex/schemas/order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from curex.schemas.medication import MedicationBrief

OrderStatus = Literal["pending", "confirmed", "preparing", "ready", "completed",
                      "cancelled"]


class DeliveryAddress(BaseModel):
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    phone: str = Field(..., min_length=1, max_length=30)


class OrderItemIn(BaseModel):
    medication_id: int
    quantity: int = Field(..., ge=1)
    dosage_instructions: Optional[str] = Field(None, max_length=500)
    substitution_allowed: bool = False


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(..., min_length=1)
    pharmacy_id: Optional[int] = None
    delivery_method: Literal["pickup", "delivery"]
    delivery_address: Optional[DeliveryAddress] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _address_for_delivery(self):
        if self.delivery_method == "delivery" and self.delivery_address is None:
            raise ValueError(
                "The delivery address is required when delivery method is delivery.")
        return self


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=1000)
    estimated_ready_at: Optional[datetime] = None


class OrderCancelIn(BaseModel):
    cancellation_reason: str = Field(..., min_length=1, max_length=500)


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: int
    medication: Optional[MedicationBrief] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    dosage_instructions: Optional[str] = None
    substitution_allowed: bool = False
    is_fulfilled: bool = False
    fulfilled_at: Optional[datetime] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    user_id: int
    pharmacy_id: Optional[int] = None
    status: str
    type: str
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    currency: str
    notes: Optional[str] = None
    pharmacy_notes: Optional[str] = None
    delivery_method: str
    delivery_address: Optional[dict] = None
    delivery_fee: Decimal
    estimated_ready_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    processed_by: Optional[int] = None
    requires_prescription: bool = False
    can_be_cancelled: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []
