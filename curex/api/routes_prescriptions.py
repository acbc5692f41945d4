# FILE: curex/api/routes_prescriptions.py
from __future__ import annotations

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db, staff_user
from curex.core.rbac import is_admin_user, is_staff_user
from curex.models.prescription import Prescription
from curex.models.user import User
from curex.schemas.prescription import (
    CancelIn,
    FillIn,
    PrescriptionCreate,
    PrescriptionItemOut,
    PrescriptionOut,
    PrescriptionUpdate,
    VerifyIn,
)
from curex.services import prescriptions as rx_svc
from curex.utils.resp import ok, ok_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])

RxStatus = Literal["pending", "verified", "partially_filled", "filled",
                   "cancelled", "expired"]


def _out(rx: Prescription) -> dict:
    data = PrescriptionOut.model_validate(rx).model_dump()
    data["fill_percentage"] = rx_svc.fill_percentage(rx)
    return data


def _visible(db: Session, user: User):
    q = db.query(Prescription)
    if not is_staff_user(user):
        q = q.filter(Prescription.user_id == user.id)
    return q


def _get_rx(db: Session, user: User, rx_id: int) -> Prescription:
    rx = _visible(db, user).filter(Prescription.id == rx_id).first()
    if not rx:
        raise HTTPException(status_code=404, detail="Prescription not found")
    return rx


@router.post("", status_code=201)
def create_prescription(
        payload: PrescriptionCreate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    data = payload.model_dump(exclude={"items"})
    items = [i.model_dump() for i in payload.items]
    rx = rx_svc.create_prescription(db, user, data, items)
    db.commit()
    db.refresh(rx)
    return ok(_out(rx), "Prescription uploaded successfully", status_code=201)


@router.get("")
def list_prescriptions(
        request: Request,
        status: Optional[RxStatus] = Query(None),
        is_emergency: Optional[bool] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    q = _visible(db, user)
    if status:
        q = q.filter(Prescription.status == status)
    if is_emergency is not None:
        q = q.filter(Prescription.is_emergency.is_(is_emergency))
    q = q.order_by(Prescription.created_at.desc(), Prescription.id.desc())
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=per_page,
                   message="Prescriptions retrieved successfully")


@router.get("/history")
def prescription_history(
        request: Request,
        search: Optional[str] = Query(None),
        status: Optional[RxStatus] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    q = db.query(Prescription).filter(Prescription.user_id == user.id)
    if status:
        q = q.filter(Prescription.status == status)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(
            or_(
                func.lower(Prescription.prescription_number).like(like),
                func.lower(Prescription.doctor_name).like(like),
                func.lower(Prescription.diagnosis).like(like),
            ))
    q = q.order_by(Prescription.prescribed_date.desc(), Prescription.id.desc())
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=per_page,
                   message="Prescription history retrieved successfully")


@router.get("/statistics")
def prescription_statistics(
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    q = db.query(Prescription)
    if not is_admin_user(user) and user.pharmacy_id:
        q = q.filter(Prescription.pharmacy_id == user.pharmacy_id)
    return ok(rx_svc.statistics(q, from_date, to_date),
              "Prescription statistics retrieved successfully")


@router.get("/{rx_id}")
def show_prescription(
        rx_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    return ok(_out(_get_rx(db, user, rx_id)),
              "Prescription retrieved successfully")


@router.get("/{rx_id}/medications")
def prescription_medications(
        rx_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    rx = _get_rx(db, user, rx_id)
    return ok([PrescriptionItemOut.model_validate(i).model_dump() for i in rx.items],
              "Prescription medications retrieved successfully")


@router.put("/{rx_id}")
def update_prescription(
        rx_id: int,
        payload: PrescriptionUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    rx = _get_rx(db, user, rx_id)
    if rx.user_id != user.id and not is_staff_user(user):
        raise HTTPException(status_code=403,
                            detail="Unauthorized. Insufficient permissions.")
    data = payload.model_dump(exclude_unset=True, exclude={"items"})
    items = ([i.model_dump() for i in payload.items]
             if payload.items is not None else None)
    rx_svc.update_prescription(db, rx, data, items)
    db.commit()
    db.refresh(rx)
    return ok(_out(rx), "Prescription updated successfully")


@router.post("/{rx_id}/verify")
def verify_prescription(
        rx_id: int,
        payload: VerifyIn,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    rx = _get_rx(db, user, rx_id)
    rx_svc.verify_prescription(db, rx, user, payload.verification_notes)
    db.commit()
    db.refresh(rx)
    return ok(_out(rx), "Prescription verified successfully")


@router.post("/{rx_id}/fill")
def fill_prescription(
        rx_id: int,
        payload: FillIn,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    rx = _get_rx(db, user, rx_id)
    lines = [rx_svc.DispenseLine(**i.model_dump()) for i in payload.items]
    filled = rx_svc.fill_prescription(db, rx, user, lines)
    db.commit()
    db.refresh(rx)
    return ok(
        {
            "prescription": _out(rx),
            "filled_items": filled,
        }, "Prescription filled successfully")


@router.post("/{rx_id}/cancel")
def cancel_prescription(
        rx_id: int,
        payload: CancelIn,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    rx = _get_rx(db, user, rx_id)
    rx_svc.cancel_prescription(db, rx, user, payload.cancellation_reason)
    db.commit()
    db.refresh(rx)
    return ok(_out(rx), "Prescription cancelled successfully")
