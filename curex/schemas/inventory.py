# FILE: curex/schemas/inventory.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from curex.schemas.medication import MedicationBrief


class AddStockIn(BaseModel):
    medication_id: int
    quantity: int = Field(..., ge=1)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = Field(None, max_length=100)
    supplier: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class RemoveStockIn(BaseModel):
    medication_id: int
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=1000)


class AdjustStockIn(BaseModel):
    medication_id: int
    new_quantity: int = Field(..., ge=0)
    notes: str = Field(..., min_length=1, max_length=1000)


class InventoryTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: int
    pharmacy_id: Optional[int] = None
    user_id: Optional[int] = None
    type: str
    quantity_change: int
    quantity_before: int
    quantity_after: int
    unit_cost: Optional[Decimal] = None
    total_cost: Optional[Decimal] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = None
    supplier: Optional[str] = None
    created_at: datetime
    medication: Optional[MedicationBrief] = None
