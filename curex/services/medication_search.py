# FILE: curex/services/medication_search.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session

from curex.models.medication import Medication

SEARCH_COLUMNS = (
    Medication.name,
    Medication.generic_name,
    Medication.brand,
    Medication.description,
    Medication.category,
    Medication.dosage,
    Medication.form,
)

SORT_FIELDS = {
    "name": Medication.name,
    "price": Medication.price,
    "created_at": Medication.created_at,
    "stock": Medication.stock,
}


def _like(term: str) -> str:
    return f"%{term.lower()}%"


def apply_search(q: Query, search: Optional[str], columns=SEARCH_COLUMNS) -> Query:
    """
    Every whitespace-separated term must match at least one column,
    case-insensitively.
    """
    terms = [t for t in (search or "").split() if t]
    if not terms:
        return q
    clauses = [
        or_(*[func.lower(c).like(_like(t)) for c in columns]) for t in terms
    ]
    return q.filter(and_(*clauses))


def catalogue_query(
    db: Session,
    *,
    category: Optional[str] = None,
    form: Optional[str] = None,
    available: Optional[bool] = None,
    search: Optional[str] = None,
    prescription_required: Optional[bool] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    sort_by: str = "name",
    sort_order: str = "asc",
) -> Query:
    q = db.query(Medication).filter(Medication.is_active.is_(True))
    if category:
        q = q.filter(Medication.category == category)
    if form:
        q = q.filter(Medication.form == form)
    if available:
        q = q.filter(Medication.is_available.is_(True), Medication.stock > 0)
    q = apply_search(q, search)
    if prescription_required is not None:
        q = q.filter(Medication.requires_prescription.is_(prescription_required))
    if min_price is not None:
        q = q.filter(Medication.price >= min_price)
    if max_price is not None:
        q = q.filter(Medication.price <= max_price)

    col = SORT_FIELDS.get(sort_by, Medication.name)
    q = q.order_by(col.desc() if sort_order == "desc" else col.asc(),
                   Medication.id.asc())
    return q


def quick_search(db: Session,
                 search: str,
                 *,
                 category: Optional[str] = None,
                 form: Optional[str] = None,
                 prescription_required: Optional[bool] = None,
                 limit: int = 20):
    like = _like(search.strip())
    q = db.query(Medication).filter(
        Medication.is_active.is_(True),
        or_(
            func.lower(Medication.name).like(like),
            func.lower(Medication.generic_name).like(like),
            func.lower(Medication.brand).like(like),
        ),
    )
    if category:
        q = q.filter(Medication.category == category)
    if form:
        q = q.filter(Medication.form == form)
    if prescription_required is not None:
        q = q.filter(Medication.requires_prescription.is_(prescription_required))
    return q.order_by(Medication.name.asc()).limit(limit).all()


def alternatives(db: Session, med: Medication, limit: int = 10):
    """In-stock medications sharing the generic name or, failing that, the category."""
    same = []
    if med.generic_name:
        same.append(Medication.generic_name == med.generic_name)
    if med.category:
        same.append(Medication.category == med.category)
    if not same:
        return []
    return (db.query(Medication).filter(
        Medication.id != med.id,
        Medication.is_active.is_(True),
        Medication.stock > 0,
        or_(*same),
    ).order_by(
        (Medication.generic_name == med.generic_name).desc(),
        Medication.price.asc(),
    ).limit(limit).all())
