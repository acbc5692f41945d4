# FILE: curex/api/routes_inventory.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from io import BytesIO
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from curex.api.deps import get_db, staff_user
from curex.core.config import settings
from curex.core.rbac import is_admin_user
from curex.models.inventory import InventoryTransaction
from curex.models.user import User
from curex.schemas.inventory import (
    AddStockIn,
    AdjustStockIn,
    InventoryTransactionOut,
    RemoveStockIn,
)
from curex.schemas.medication import MedicationBrief
from curex.services import inventory_ledger as ledger
from curex.services.excel_export import build_inventory_report_excel
from curex.utils.resp import ok, ok_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def _scope(user: User) -> Optional[int]:
    # admins see every pharmacy; pharmacists only their own
    return None if is_admin_user(user) else user.pharmacy_id


def _txn_out(t: InventoryTransaction) -> dict:
    return InventoryTransactionOut.model_validate(t).model_dump()


def _check_range(from_date: Optional[date], to_date: Optional[date]) -> None:
    if from_date and to_date and to_date < from_date:
        raise HTTPException(status_code=400,
                            detail="to_date must be on or after from_date")


@router.get("/transactions")
def list_transactions(
        request: Request,
        medication_id: Optional[int] = Query(None),
        type: Optional[Literal["in", "out", "adjustment"]] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    _check_range(from_date, to_date)
    q = db.query(InventoryTransaction)
    pharmacy_id = _scope(user)
    if pharmacy_id:
        q = q.filter(InventoryTransaction.pharmacy_id == pharmacy_id)
    if medication_id:
        q = q.filter(InventoryTransaction.medication_id == medication_id)
    if type:
        q = q.filter(InventoryTransaction.type == type)
    if from_date:
        q = q.filter(
            InventoryTransaction.created_at >= datetime.combine(from_date, time.min))
    if to_date:
        q = q.filter(InventoryTransaction.created_at < datetime.combine(
            to_date + timedelta(days=1), time.min))
    q = q.order_by(InventoryTransaction.created_at.desc(),
                   InventoryTransaction.id.desc())
    return ok_page(q,
                   request,
                   _txn_out,
                   page=page,
                   per_page=per_page,
                   message="Inventory transactions retrieved successfully")


@router.get("/summary")
def inventory_summary(
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    return ok(ledger.summary(db), "Inventory summary retrieved successfully")


@router.get("/low-stock")
def low_stock(
        threshold: int = Query(settings.LOW_STOCK_THRESHOLD, ge=0),
        limit: int = Query(50, ge=1, le=200),
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    rows = ledger.low_stock(db, threshold, limit)
    return ok([MedicationBrief.model_validate(m).model_dump() for m in rows],
              "Low stock medications retrieved successfully",
              meta={
                  "threshold": threshold,
                  "count": len(rows)
              })


@router.post("/add-stock", status_code=201)
def add_stock(
        payload: AddStockIn,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    txn = ledger.stock_in(db,
                          payload.medication_id,
                          payload.quantity,
                          payload.unit_cost,
                          user_id=user.id,
                          pharmacy_id=user.pharmacy_id,
                          reference_type=ledger.REF_MANUAL,
                          notes=payload.notes,
                          expiry_date=payload.expiry_date,
                          batch_number=payload.batch_number,
                          supplier=payload.supplier)
    db.commit()
    db.refresh(txn)
    return ok(_txn_out(txn), "Stock added successfully", status_code=201)


@router.post("/remove-stock", status_code=201)
def remove_stock(
        payload: RemoveStockIn,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    txn = ledger.stock_out(db,
                           payload.medication_id,
                           payload.quantity,
                           user_id=user.id,
                           pharmacy_id=user.pharmacy_id,
                           reference_type=ledger.REF_MANUAL,
                           notes=payload.notes)
    db.commit()
    db.refresh(txn)
    return ok(_txn_out(txn), "Stock removed successfully", status_code=201)


@router.post("/adjust-stock", status_code=201)
def adjust_stock(
        payload: AdjustStockIn,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    txn = ledger.adjust(db,
                        payload.medication_id,
                        payload.new_quantity,
                        user_id=user.id,
                        pharmacy_id=user.pharmacy_id,
                        reference_type=ledger.REF_MANUAL,
                        notes=payload.notes)
    db.commit()
    db.refresh(txn)
    return ok(_txn_out(txn), "Stock adjusted successfully", status_code=201)


@router.get("/reports")
def inventory_report(
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    _check_range(from_date, to_date)
    data = ledger.report(db, from_date, to_date, _scope(user))
    return ok(data, "Inventory report generated successfully")


@router.get("/reports/export", response_class=StreamingResponse)
def export_inventory_report(
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    _check_range(from_date, to_date)
    pharmacy_id = _scope(user)
    data = ledger.report(db, from_date, to_date, pharmacy_id)
    period = data["period"]
    txns = ledger.transactions_between(db,
                                       date.fromisoformat(period["from"]),
                                       date.fromisoformat(period["to"]),
                                       pharmacy_id)

    buf = BytesIO()
    build_inventory_report_excel(buf, data, txns)
    buf.seek(0)

    filename = f"inventory_report_{period['from']}_{period['to']}.xlsx"
    logger.info("Inventory report exported by user=%s (%s rows)", user.id,
                len(txns))
    return StreamingResponse(
        buf,
        media_type=
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
