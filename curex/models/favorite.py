# FILE: curex/models/favorite.py
from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from curex.db.base import Base


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id",
                                       "medication_id",
                                       name="uq_favorite_user_medication"), )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer,
                     ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False,
                     index=True)
    medication_id = Column(Integer,
                           ForeignKey("medications.id", ondelete="CASCADE"),
                           nullable=False)
    times_ordered = Column(Integer, default=0, nullable=False)
    last_ordered = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    medication = relationship("Medication", lazy="joined")
