# FILE: curex/models/health_record.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text, JSON,
    Index, Enum as SAEnum,
)

from curex.db.base import Base

RECORD_TYPES = (
    "prescription",
    "lab_result",
    "imaging",
    "consultation",
    "vaccination",
    "other",
)


class HealthRecord(Base):
    __tablename__ = "health_records"
    __table_args__ = (
        Index("ix_health_records_user_type", "user_id", "type"),
        Index("ix_health_records_user_date", "user_id", "record_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False)
    type = Column(SAEnum(*RECORD_TYPES, name="health_record_type"),
                  nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    extra = Column("metadata", JSON)
    provider_id = Column(String(100))
    provider_name = Column(String(255))
    record_date = Column(Date, nullable=False)
    is_private = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)
