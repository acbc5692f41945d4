# FILE: curex/schemas/cart.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from curex.schemas.medication import MedicationBrief
from curex.schemas.order import DeliveryAddress


class CartItemAdd(BaseModel):
    medication_id: int
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=500)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=500)


class CheckoutIn(BaseModel):
    delivery_method: Literal["pickup", "delivery"] = "pickup"
    delivery_address: Optional[DeliveryAddress] = None
    pharmacy_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _address_for_delivery(self):
        if self.delivery_method == "delivery" and self.delivery_address is None:
            raise ValueError(
                "The delivery address is required when delivery method is delivery.")
        return self


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: int
    medication: Optional[MedicationBrief] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    notes: Optional[str] = None
    added_at: Optional[datetime] = Field(None, validation_alias="created_at")


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    items: List[CartItemOut] = []
    items_count: int = 0
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    currency: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
