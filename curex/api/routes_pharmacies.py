# FILE: curex/api/routes_pharmacies.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from curex.api.deps import admin_user, get_db, staff_user
from curex.models.pharmacy import Pharmacy
from curex.models.user import User
from curex.schemas.pharmacy import PharmacyCreate, PharmacyOut, PharmacyUpdate
from curex.utils.resp import ok, ok_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pharmacies", tags=["Pharmacies"])


def _out(p: Pharmacy) -> dict:
    return PharmacyOut.model_validate(p).model_dump()


@router.get("")
def list_pharmacies(
        request: Request,
        city: Optional[str] = Query(None),
        delivery_available: Optional[bool] = Query(None),
        is_24_hours: Optional[bool] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
):
    q = db.query(Pharmacy).filter(Pharmacy.is_active.is_(True))
    if city:
        q = q.filter(func.lower(Pharmacy.address_city) == city.strip().lower())
    if delivery_available is not None:
        q = q.filter(Pharmacy.delivery_available.is_(delivery_available))
    if is_24_hours is not None:
        q = q.filter(Pharmacy.is_24_hours.is_(is_24_hours))
    q = q.order_by(Pharmacy.name.asc(), Pharmacy.id.asc())
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=per_page,
                   message="Pharmacies retrieved successfully")


@router.get("/search")
def search_pharmacies(
        q: str = Query(..., min_length=1),
        limit: int = Query(20, ge=1, le=50),
        db: Session = Depends(get_db),
):
    like = f"%{q.strip().lower()}%"
    rows = (db.query(Pharmacy).filter(
        Pharmacy.is_active.is_(True),
        or_(
            func.lower(Pharmacy.name).like(like),
            func.lower(Pharmacy.address_city).like(like),
            func.lower(Pharmacy.address_street).like(like),
        ),
    ).order_by(Pharmacy.name.asc()).limit(limit).all())
    return ok([_out(p) for p in rows], "Pharmacies retrieved successfully")


@router.get("/{pharmacy_id}")
def show_pharmacy(pharmacy_id: int, db: Session = Depends(get_db)):
    p = db.get(Pharmacy, pharmacy_id)
    if not p or not p.is_active:
        raise HTTPException(status_code=404, detail="Pharmacy not found")
    return ok(_out(p), "Pharmacy retrieved successfully")


@router.post("", status_code=201)
def create_pharmacy(
        payload: PharmacyCreate,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    p = Pharmacy(**payload.model_dump(),
                 is_active=True,
                 is_verified=False,
                 created_by=user.id,
                 updated_by=user.id)
    db.add(p)
    db.commit()
    db.refresh(p)
    logger.info("Pharmacy %s created by user=%s", p.id, user.id)
    return ok(_out(p), "Pharmacy created successfully", status_code=201)


@router.put("/{pharmacy_id}")
def update_pharmacy(
        pharmacy_id: int,
        payload: PharmacyUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(staff_user),
):
    p = db.get(Pharmacy, pharmacy_id)
    if not p:
        raise HTTPException(status_code=404, detail="Pharmacy not found")
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(p, k, v)
    p.updated_by = user.id
    db.commit()
    db.refresh(p)
    return ok(_out(p), "Pharmacy updated successfully")


@router.delete("/{pharmacy_id}")
def delete_pharmacy(
        pharmacy_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(admin_user),
):
    p = db.get(Pharmacy, pharmacy_id)
    if not p or not p.is_active:
        raise HTTPException(status_code=404, detail="Pharmacy not found")
    p.is_active = False
    p.updated_by = user.id
    db.commit()
    logger.info("Pharmacy %s deactivated by user=%s", p.id, user.id)
    return ok(None, "Pharmacy deleted successfully")
