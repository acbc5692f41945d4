# FILE: curex/services/dashboard_service.py
from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from curex.core.config import settings
from curex.core.rbac import (
    ROLE_ADMIN,
    ROLE_GOVERNMENT,
    ROLE_INSURANCE,
    ROLE_PATIENT,
    ROLE_PHARMACIST,
)
from curex.models.inventory import TXN_IN, TXN_OUT
from curex.models.medication import Medication
from curex.models.order import Order, ORDER_CANCELLED, ORDER_COMPLETED
from curex.models.pharmacy import Pharmacy
from curex.models.prescription import (
    Prescription,
    RX_PARTIALLY_FILLED,
    RX_PENDING,
    RX_VERIFIED,
)
from curex.models.user import User
from curex.schemas.medication import MedicationBrief
from curex.schemas.order import OrderOut
from curex.schemas.prescription import PrescriptionOut
from curex.services import inventory_ledger as ledger

# ---------- Helpers: time range ----------


def _dt_range(d_from: date, d_to: date) -> Tuple[datetime, datetime]:
    """
    Convert date range [date_from, date_to] into datetime range [start, end).
    """
    start = datetime.combine(d_from, time.min)
    end = datetime.combine(d_to + timedelta(days=1), time.min)  # exclusive
    return start, end


def _dec(val: Any) -> Decimal:
    return Decimal(str(val or 0))


def _dump(schema, rows) -> List[dict]:
    return [schema.model_validate(r).model_dump() for r in rows]


# ---------- Scoping ----------


def _orders_for(db: Session, user: User) -> Query:
    q = db.query(Order)
    role = user.role
    if role == ROLE_PATIENT:
        q = q.filter(Order.user_id == user.id)
    elif role == ROLE_PHARMACIST and user.pharmacy_id:
        q = q.filter(Order.pharmacy_id == user.pharmacy_id)
    return q


def _prescriptions_for(db: Session, user: User) -> Query:
    q = db.query(Prescription)
    role = user.role
    if role == ROLE_PATIENT:
        q = q.filter(Prescription.user_id == user.id)
    elif role == ROLE_PHARMACIST and user.pharmacy_id:
        q = q.filter(Prescription.pharmacy_id == user.pharmacy_id)
    return q


def _revenue(q: Query) -> Decimal:
    v = q.filter(Order.status != ORDER_CANCELLED).with_entities(
        func.coalesce(func.sum(Order.total_amount), 0)).scalar()
    return _dec(v)


def _count_status(q: Query, model, status: str) -> int:
    return q.filter(model.status == status).count()


def _low_stock(db: Session, limit: int) -> List[dict]:
    return _dump(MedicationBrief, ledger.low_stock(db, limit=limit))


# ---------- Per-role dashboards ----------


def patient_dashboard(db: Session, user: User) -> Dict[str, Any]:
    orders = _orders_for(db, user)
    rxs = _prescriptions_for(db, user)
    stats = {
        "total_orders": orders.count(),
        "pending_orders": _count_status(orders, Order, "pending"),
        "completed_orders": _count_status(orders, Order, ORDER_COMPLETED),
        "total_prescriptions": rxs.count(),
        "active_prescriptions": rxs.filter(
            Prescription.status.in_(
                (RX_PENDING, RX_VERIFIED, RX_PARTIALLY_FILLED))).count(),
        "total_spent": _revenue(orders),
    }
    return {
        "stats": stats,
        "recent_orders": _dump(
            OrderOut,
            orders.order_by(Order.created_at.desc(), Order.id.desc()).limit(5)),
        "recent_prescriptions": _dump(
            PrescriptionOut,
            rxs.order_by(Prescription.created_at.desc(),
                         Prescription.id.desc()).limit(5)),
        "low_stock_medications": _low_stock(db, 5),
        "quick_actions": {
            "create_order": True,
            "upload_prescription": True,
            "view_medications": True,
            "contact_pharmacist": True,
        },
    }


def pharmacist_dashboard(db: Session, user: User) -> Dict[str, Any]:
    orders = _orders_for(db, user)
    rxs = _prescriptions_for(db, user)
    stats = {
        "total_orders": orders.count(),
        "pending_orders": _count_status(orders, Order, "pending"),
        "processing_orders": orders.filter(
            Order.status.in_(("confirmed", "preparing"))).count(),
        "ready_orders": _count_status(orders, Order, "ready"),
        "total_prescriptions": rxs.count(),
        "pending_prescriptions": _count_status(rxs, Prescription, RX_PENDING),
        "verified_prescriptions": _count_status(rxs, Prescription, RX_VERIFIED),
        "total_revenue": _revenue(orders),
    }
    return {
        "stats": stats,
        "recent_orders": _dump(
            OrderOut,
            orders.order_by(Order.created_at.desc(), Order.id.desc()).limit(10)),
        "recent_prescriptions": _dump(
            PrescriptionOut,
            rxs.order_by(Prescription.created_at.desc(),
                         Prescription.id.desc()).limit(10)),
        "low_stock_medications": _low_stock(db, 10),
        "inventory_summary": ledger.summary(db),
        "quick_actions": {
            "process_orders": True,
            "verify_prescriptions": True,
            "manage_inventory": True,
            "view_analytics": True,
        },
    }


def _recent_activities(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
    acts: List[Dict[str, Any]] = []
    for o in db.query(Order).order_by(Order.created_at.desc()).limit(5):
        who = o.user.name if o.user else "Unknown"
        acts.append({
            "type": "order",
            "message": f"New order #{o.order_number} from {who}",
            "timestamp": o.created_at,
            "status": o.status,
        })
    for rx in db.query(Prescription).order_by(
            Prescription.created_at.desc()).limit(5):
        acts.append({
            "type": "prescription",
            "message": (f"New prescription #{rx.prescription_number} "
                        f"from Dr. {rx.doctor_name}"),
            "timestamp": rx.created_at,
            "status": rx.status,
        })
    acts.sort(key=lambda a: a["timestamp"], reverse=True)
    return acts[:limit]


def government_dashboard(db: Session, user: User) -> Dict[str, Any]:
    stats = {
        "total_pharmacies": db.query(Pharmacy).count(),
        "total_medications": db.query(Medication).count(),
        "total_orders": db.query(Order).count(),
        "total_prescriptions": db.query(Prescription).count(),
        "active_users": db.query(User).filter(User.is_active.is_(True)).count(),
        "total_revenue": _revenue(db.query(Order)),
    }

    order_counts = (db.query(Order.pharmacy_id, func.count(Order.id)).filter(
        Order.pharmacy_id.isnot(None)).group_by(Order.pharmacy_id).all())
    rx_counts = dict(
        db.query(Prescription.pharmacy_id, func.count(Prescription.id)).filter(
            Prescription.pharmacy_id.isnot(None)).group_by(
                Prescription.pharmacy_id).all())
    top = sorted(order_counts, key=lambda r: r[1], reverse=True)[:10]
    names = dict(
        db.query(Pharmacy.id, Pharmacy.name).filter(
            Pharmacy.id.in_([pid for pid, _ in top])).all()) if top else {}
    pharmacy_stats = [{
        "pharmacy_id": pid,
        "name": names.get(pid, ""),
        "orders_count": n,
        "prescriptions_count": int(rx_counts.get(pid, 0)),
    } for pid, n in top]

    return {
        "stats": stats,
        "pharmacy_stats": pharmacy_stats,
        "recent_activities": _recent_activities(db),
        "quick_actions": {
            "view_pharmacies": True,
            "view_medications": True,
            "view_orders": True,
            "view_prescriptions": True,
        },
    }


def insurance_dashboard(db: Session, user: User) -> Dict[str, Any]:
    # claims are not modelled yet; the shape is kept for the client
    return {
        "stats": {
            "total_claims": 0,
            "pending_claims": 0,
            "approved_claims": 0,
            "rejected_claims": 0,
            "total_payout": 0,
            "average_claim_amount": 0,
        },
        "recent_claims": [],
        "claim_statistics": {
            "by_status": {
                "pending": 0,
                "approved": 0,
                "rejected": 0
            },
            "by_month": [],
            "by_category": [],
        },
        "quick_actions": {
            "view_claims": True,
            "process_claims": True,
            "view_statistics": True,
            "manage_policies": True,
        },
    }


DASHBOARDS = {
    ROLE_PATIENT: patient_dashboard,
    ROLE_PHARMACIST: pharmacist_dashboard,
    ROLE_ADMIN: pharmacist_dashboard,
    ROLE_GOVERNMENT: government_dashboard,
    ROLE_INSURANCE: insurance_dashboard,
}


def build_dashboard(db: Session, user: User) -> Dict[str, Any]:
    builder = DASHBOARDS.get(user.role, patient_dashboard)
    data = builder(db, user)
    data["role"] = user.role
    return data


# ---------- Analytics ----------


def _by_day(rows, value=None) -> Dict[str, Any]:
    out: Dict[str, Any] = defaultdict(int) if value is None else defaultdict(Decimal)
    for r in rows:
        key = r.created_at.date().isoformat()
        out[key] += 1 if value is None else _dec(value(r))
    return dict(sorted(out.items()))


def analytics(db: Session, user: User, period_days: int = 30) -> Dict[str, Any]:
    period_days = max(1, min(int(period_days or 30), 365))
    d_to = date.today()
    d_from = d_to - timedelta(days=period_days)
    start, end = _dt_range(d_from, d_to)

    orders = (_orders_for(db, user).filter(Order.created_at >= start,
                                           Order.created_at < end).all())
    rxs = (_prescriptions_for(db, user).filter(
        Prescription.created_at >= start, Prescription.created_at < end).all())
    paid = [o for o in orders if o.status != ORDER_CANCELLED]

    pharmacy_id: Optional[int] = None
    if user.role == ROLE_PHARMACIST:
        pharmacy_id = user.pharmacy_id
    txns = [] if user.role == ROLE_PATIENT else ledger.transactions_between(
        db, d_from, d_to, pharmacy_id)

    revenue = sum((_dec(o.total_amount) for o in paid), Decimal("0"))
    return {
        "period": {
            "days": period_days,
            "from": d_from.isoformat(),
            "to": d_to.isoformat(),
            "currency": settings.CURRENCY,
        },
        "orders": {
            "total": len(orders),
            "by_status": dict(Counter(o.status for o in orders)),
            "by_day": _by_day(orders),
            "total_revenue": sum((_dec(o.total_amount) for o in orders),
                                 Decimal("0")),
        },
        "prescriptions": {
            "total": len(rxs),
            "by_status": dict(Counter(r.status for r in rxs)),
            "by_day": _by_day(rxs),
        },
        "revenue": {
            "total_revenue": revenue,
            "by_day": _by_day(paid, value=lambda o: o.total_amount),
            "average_order_value": (revenue / len(paid)).quantize(
                Decimal("0.01")) if paid else Decimal("0"),
        },
        "inventory": {
            "total_transactions": len(txns),
            "stock_in": sum(t.quantity_change for t in txns if t.type == TXN_IN),
            "stock_out": abs(
                sum(t.quantity_change for t in txns if t.type == TXN_OUT)),
            "by_type": dict(Counter(t.type for t in txns)),
        },
    }
