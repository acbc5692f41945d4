# FILE: curex/services/inventory_ledger.py
"""
Stock ledger: every change to Medication.stock goes through here so the
InventoryTransaction history always explains the current number.

Callers own the transaction boundary (commit / rollback). Each helper locks
the medication row FOR UPDATE before reading stock.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from curex.core.config import settings
from curex.core.errors import InsufficientStockError, NotFoundError
from curex.models.inventory import (
    InventoryTransaction,
    TXN_ADJUSTMENT,
    TXN_IN,
    TXN_OUT,
)
from curex.models.medication import Medication

logger = logging.getLogger(__name__)

REF_MANUAL = "manual_adjustment"
REF_ORDER = "order"
REF_ORDER_CANCELLATION = "order_cancellation"
REF_PRESCRIPTION = "prescription"
REF_MEDICATION_UPDATE = "medication_update"

_OPTION_KEYS = (
    "pharmacy_id",
    "user_id",
    "reference_type",
    "reference_id",
    "notes",
    "expiry_date",
    "batch_number",
    "supplier",
)


class MedicationNotFound(NotFoundError):
    pass


def _d(x) -> Decimal:
    try:
        return Decimal(str(x or 0))
    except Exception:
        return Decimal("0")


def lock_medication(db: Session, medication_id: int) -> Medication:
    med = (db.query(Medication).filter(
        Medication.id == medication_id).with_for_update().first())
    if not med:
        raise MedicationNotFound(f"Medication {medication_id} not found")
    return med


def lock_medications(db: Session,
                     medication_ids: Iterable[int]) -> Dict[int, Medication]:
    """Lock several medication rows. Locks are taken in ascending id order."""
    return {mid: lock_medication(db, mid) for mid in sorted(set(medication_ids))}


def _record(
    db: Session,
    med: Medication,
    txn_type: str,
    change: int,
    unit_cost: Optional[Decimal] = None,
    **opts: Any,
) -> InventoryTransaction:
    before = int(med.stock or 0)
    after = before + int(change)

    total_cost = None
    if unit_cost is not None:
        unit_cost = _d(unit_cost)
        total_cost = unit_cost * abs(int(change))

    txn = InventoryTransaction(
        medication_id=med.id,
        type=txn_type,
        quantity_change=int(change),
        quantity_before=before,
        quantity_after=after,
        unit_cost=unit_cost,
        total_cost=total_cost,
        **{k: opts.get(k) for k in _OPTION_KEYS},
    )
    db.add(txn)

    med.stock = after
    med.is_available = after > 0
    db.flush()

    logger.info(
        "Stock %s med=%s change=%+d %d->%d ref=%s:%s",
        txn_type,
        med.id,
        change,
        before,
        after,
        opts.get("reference_type"),
        opts.get("reference_id"),
    )
    return txn


def stock_in(db: Session,
             medication_id: int,
             quantity: int,
             unit_cost: Optional[Decimal] = None,
             **opts: Any) -> InventoryTransaction:
    if quantity is None or int(quantity) < 1:
        raise ValueError("Quantity must be at least 1")
    med = lock_medication(db, medication_id)
    return _record(db, med, TXN_IN, int(quantity), unit_cost, **opts)


def stock_out(db: Session, medication_id: int, quantity: int,
              **opts: Any) -> InventoryTransaction:
    if quantity is None or int(quantity) < 1:
        raise ValueError("Quantity must be at least 1")
    med = lock_medication(db, medication_id)
    available = int(med.stock or 0)
    if int(quantity) > available:
        raise InsufficientStockError(available, int(quantity))
    return _record(db, med, TXN_OUT, -int(quantity), **opts)


def adjust(db: Session, medication_id: int, new_quantity: int,
           **opts: Any) -> InventoryTransaction:
    if new_quantity is None or int(new_quantity) < 0:
        raise ValueError("New quantity cannot be negative")
    med = lock_medication(db, medication_id)
    change = int(new_quantity) - int(med.stock or 0)
    return _record(db, med, TXN_ADJUSTMENT, change, **opts)


# ============================================================
# Read side
# ============================================================
def summary(db: Session) -> Dict[str, Any]:
    meds = db.query(Medication).filter(Medication.is_active.is_(True)).all()
    threshold = settings.LOW_STOCK_THRESHOLD

    categories: Dict[str, Dict[str, Any]] = defaultdict(lambda: {
        "count": 0,
        "total_stock": 0,
        "total_value": Decimal("0"),
    })
    total_value = Decimal("0")
    for m in meds:
        value = _d(m.price) * int(m.stock or 0)
        total_value += value
        c = categories[m.category or "Uncategorized"]
        c["count"] += 1
        c["total_stock"] += int(m.stock or 0)
        c["total_value"] += value

    return {
        "total_medications": len(meds),
        "low_stock_medications": sum(1 for m in meds
                                     if (m.stock or 0) <= threshold),
        "out_of_stock_medications": sum(1 for m in meds if (m.stock or 0) <= 0),
        "total_stock_value": total_value,
        "categories": dict(categories),
    }


def low_stock_query(db: Session, threshold: Optional[int] = None):
    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD
    return (db.query(Medication).filter(
        Medication.stock <= threshold,
        Medication.is_active.is_(True),
    ).order_by(Medication.stock.asc(), Medication.id.asc()))


def low_stock(db: Session, threshold: Optional[int] = None, limit: int = 50):
    return low_stock_query(db, threshold).limit(limit).all()


def transactions_between(db: Session,
                         from_date: date,
                         to_date: date,
                         pharmacy_id: Optional[int] = None):
    q = db.query(InventoryTransaction).filter(
        InventoryTransaction.created_at >= datetime.combine(from_date, time.min),
        InventoryTransaction.created_at < datetime.combine(
            to_date + timedelta(days=1), time.min),
    )
    if pharmacy_id:
        q = q.filter(InventoryTransaction.pharmacy_id == pharmacy_id)
    return q.order_by(InventoryTransaction.created_at.asc()).all()


def report(db: Session,
           from_date: Optional[date] = None,
           to_date: Optional[date] = None,
           pharmacy_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Movement report for [from_date, to_date], both inclusive.
    Defaults to the last 30 days.
    """
    to_date = to_date or date.today()
    from_date = from_date or (to_date - timedelta(days=30))
    txns = transactions_between(db, from_date, to_date, pharmacy_id)

    by_type: Dict[str, Dict[str, Any]] = {}
    by_med: Dict[int, Dict[str, Any]] = {}
    for t in txns:
        bt = by_type.setdefault(t.type, {
            "count": 0,
            "total_quantity": 0,
            "total_cost": Decimal("0"),
        })
        bt["count"] += 1
        bt["total_quantity"] += t.quantity_change
        bt["total_cost"] += _d(t.total_cost)

        bm = by_med.setdefault(
            t.medication_id, {
                "medication_id": t.medication_id,
                "medication_name": t.medication.name if t.medication else "",
                "transactions_count": 0,
                "net_quantity_change": 0,
                "total_cost": Decimal("0"),
            })
        bm["transactions_count"] += 1
        bm["net_quantity_change"] += t.quantity_change
        bm["total_cost"] += _d(t.total_cost)

    return {
        "period": {
            "from": from_date.isoformat(),
            "to": to_date.isoformat()
        },
        "summary": {
            "total_transactions": len(txns),
            "stock_in": sum(t.quantity_change for t in txns if t.type == TXN_IN),
            "stock_out": abs(
                sum(t.quantity_change for t in txns if t.type == TXN_OUT)),
            "adjustments": sum(1 for t in txns if t.type == TXN_ADJUSTMENT),
            "total_cost": sum((_d(t.total_cost) for t in txns), Decimal("0")),
        },
        "by_type": by_type,
        "by_medication": list(by_med.values()),
    }


def latest_transaction(db: Session,
                       medication_id: int) -> Optional[InventoryTransaction]:
    return (db.query(InventoryTransaction).filter(
        InventoryTransaction.medication_id == medication_id).order_by(
            InventoryTransaction.id.desc()).first())
