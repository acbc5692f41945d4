# curex/schemas/favorite.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from curex.schemas.medication import MedicationOut


class FavoriteCreate(BaseModel):
    medication_id: int


class FavoriteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    medication_id: int
    times_ordered: int
    last_ordered: Optional[datetime] = None
    created_at: datetime
    medication: Optional[MedicationOut] = None
