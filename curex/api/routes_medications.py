# FILE: curex/api/routes_medications.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db, staff_user
from curex.models.medication import Medication
from curex.models.user import User
from curex.schemas.medication import (
    MedicationBrief,
    MedicationCreate,
    MedicationOut,
    MedicationUpdate,
)
from curex.services import inventory_ledger as ledger
from curex.services import medication_search
from curex.utils.resp import ok, ok_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medications", tags=["Medications"])


def _out(m: Medication) -> dict:
    return MedicationOut.model_validate(m).model_dump()


def _get_active(db: Session, medication_id: int) -> Medication:
    med = db.get(Medication, medication_id)
    if not med or not med.is_active:
        raise HTTPException(status_code=404, detail="Medication not found")
    return med


# ============================================================
# Public catalogue
# ============================================================
@router.get("")
def list_medications(
        request: Request,
        category: Optional[str] = Query(None),
        form: Optional[str] = Query(None),
        available: Optional[bool] = Query(None),
        search: Optional[str] = Query(None),
        prescription_required: Optional[bool] = Query(None),
        min_price: Optional[Decimal] = Query(None, ge=0),
        max_price: Optional[Decimal] = Query(None, ge=0),
        sort_by: Literal["name", "price", "created_at", "stock"] = Query("name"),
        sort_order: Literal["asc", "desc"] = Query("asc"),
        page: int = Query(1, ge=1),
        per_page: int = Query(20, ge=1),
        db: Session = Depends(get_db),
):
    q = medication_search.catalogue_query(
        db,
        category=category,
        form=form,
        available=available,
        search=search,
        prescription_required=prescription_required,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=min(per_page, 100),
                   message="Medications retrieved successfully")


@router.get("/search")
def search_medications(
        search: str = Query(..., min_length=2),
        category: Optional[str] = Query(None),
        form: Optional[str] = Query(None),
        prescription_required: Optional[bool] = Query(None),
        limit: int = Query(20, ge=1, le=50),
        db: Session = Depends(get_db),
):
    rows = medication_search.quick_search(
        db,
        search,
        category=category,
        form=form,
        prescription_required=prescription_required,
        limit=limit,
    )
    return ok([_out(m) for m in rows],
              "Search completed successfully",
              meta={
                  "query": search,
                  "total_results": len(rows),
                  "limit": limit
              })


@router.get("/barcode/{barcode}")
def get_by_barcode(barcode: str, db: Session = Depends(get_db)):
    med = (db.query(Medication).filter(Medication.barcode == barcode,
                                       Medication.is_active.is_(True)).first())
    if not med:
        raise HTTPException(status_code=404,
                            detail="Medication not found with this barcode")
    return ok(_out(med), "Medication retrieved successfully")


@router.get("/{medication_id}")
def show_medication(medication_id: int, db: Session = Depends(get_db)):
    return ok(_out(_get_active(db, medication_id)),
              "Medication retrieved successfully")


# ============================================================
# Authenticated
# ============================================================
@router.get("/{medication_id}/alternatives")
def medication_alternatives(
        medication_id: int,
        limit: int = Query(10, ge=1, le=50),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    med = _get_active(db, medication_id)
    rows = medication_search.alternatives(db, med, limit=limit)
    return ok([MedicationBrief.model_validate(m).model_dump() for m in rows],
              "Alternatives retrieved")


@router.get("/{medication_id}/stock")
def medication_stock(
        medication_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    med = _get_active(db, medication_id)
    last = ledger.latest_transaction(db, med.id)
    return ok(
        {
            "medication_id": med.id,
            "stock": med.stock,
            "min_stock": med.min_stock,
            "max_stock": med.max_stock,
            "stock_status": med.stock_status,
            "is_available": med.is_available,
            "last_movement_at": last.created_at if last else None,
        }, "Medication stock retrieved")


# ============================================================
# Pharmacist / admin
# ============================================================
@router.post("", status_code=201)
def create_medication(
        payload: MedicationCreate,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    data = payload.model_dump()
    opening_stock = data.pop("stock", 0)
    med = Medication(**data,
                     stock=0,
                     is_active=True,
                     is_available=False,
                     created_by=user.id,
                     updated_by=user.id)
    db.add(med)
    db.flush()
    if opening_stock:
        ledger.stock_in(db,
                        med.id,
                        opening_stock,
                        user_id=user.id,
                        pharmacy_id=user.pharmacy_id,
                        reference_type=ledger.REF_MEDICATION_UPDATE,
                        reference_id=med.id,
                        notes="Opening stock")
    db.commit()
    db.refresh(med)
    logger.info("Medication %s created by user=%s", med.id, user.id)
    return ok(_out(med), "Medication created successfully", status_code=201)


@router.put("/{medication_id}")
def update_medication(
        medication_id: int,
        payload: MedicationUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    med = db.get(Medication, medication_id)
    if not med:
        raise HTTPException(status_code=404, detail="Medication not found")

    data = payload.model_dump(exclude_unset=True)
    new_stock = data.pop("stock", None)
    for k, v in data.items():
        setattr(med, k, v)
    med.updated_by = user.id

    if new_stock is not None and new_stock != med.stock:
        ledger.adjust(db,
                      med.id,
                      new_stock,
                      user_id=user.id,
                      pharmacy_id=user.pharmacy_id,
                      reference_type=ledger.REF_MEDICATION_UPDATE,
                      reference_id=med.id,
                      notes="Stock edited on medication record")
    # availability follows stock; a deactivated record stays unavailable
    med.is_available = bool(med.is_active and med.stock > 0)
    db.commit()
    db.refresh(med)
    return ok(_out(med), "Medication updated successfully")


@router.delete("/{medication_id}")
def delete_medication(
        medication_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    med = db.get(Medication, medication_id)
    if not med or not med.is_active:
        raise HTTPException(status_code=404, detail="Medication not found")
    med.is_active = False
    med.is_available = False
    med.updated_by = user.id
    db.commit()
    logger.info("Medication %s deactivated by user=%s", med.id, user.id)
    return ok(None, "Medication deleted successfully")
