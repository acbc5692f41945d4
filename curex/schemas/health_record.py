# curex/schemas/health_record.py
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from curex.schemas.common import reject_null

RecordType = Literal["prescription", "lab_result", "imaging", "consultation",
                     "vaccination", "other"]


class HealthRecordCreate(BaseModel):
    type: RecordType
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    provider_id: Optional[str] = Field(None, max_length=100)
    provider_name: Optional[str] = Field(None, max_length=255)
    record_date: date
    is_private: bool = True
    metadata: Optional[Dict[str, Any]] = None


class HealthRecordUpdate(BaseModel):
    type: Optional[RecordType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    provider_id: Optional[str] = Field(None, max_length=100)
    provider_name: Optional[str] = Field(None, max_length=255)
    record_date: Optional[date] = None
    is_private: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("type", "title", "record_date", "is_private")
    @classmethod
    def _not_null(cls, v, info):
        return reject_null(v, info)


class HealthRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str
    title: str
    description: Optional[str] = None
    provider_id: Optional[str] = None
    provider_name: Optional[str] = None
    record_date: date
    is_private: bool
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra")
    created_at: datetime
    updated_at: Optional[datetime] = None
