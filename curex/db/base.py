# curex/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All CureX tables inherit from this."""
    pass
