# curex/services/id_gen.py
from __future__ import annotations

import secrets
import string
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

_ALPHABET = string.ascii_uppercase + string.digits


def _suffix(n: int = 8) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(n))


def make_number(prefix: str, when: Optional[datetime] = None) -> str:
    """PREFIX-YYYYMMDD-XXXXXXXX"""
    when = when or datetime.utcnow()
    return f"{prefix}-{when.strftime('%Y%m%d')}-{_suffix()}"


def unique_number(db: Session, model, column, prefix: str) -> str:
    # collisions are astronomically rare; retry a few times anyway
    for _ in range(5):
        candidate = make_number(prefix)
        if not db.query(model.id).filter(column == candidate).first():
            return candidate
    raise RuntimeError(f"Could not allocate a unique {prefix} number")


def next_order_number(db: Session) -> str:
    from curex.models.order import Order
    return unique_number(db, Order, Order.order_number, "ORD")


def next_prescription_number(db: Session) -> str:
    from curex.models.prescription import Prescription
    return unique_number(db, Prescription, Prescription.prescription_number,
                         "RX")
