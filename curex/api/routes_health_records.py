# FILE: curex/api/routes_health_records.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db
from curex.models.health_record import HealthRecord
from curex.models.user import User
from curex.schemas.health_record import (
    HealthRecordCreate,
    HealthRecordOut,
    HealthRecordUpdate,
    RecordType,
)
from curex.utils.resp import ok, ok_page

router = APIRouter(prefix="/health-records", tags=["Health Records"])


def _out(r: HealthRecord) -> dict:
    return HealthRecordOut.model_validate(r).model_dump()


def _own_record(db: Session, user: User, record_id: int) -> HealthRecord:
    rec = (db.query(HealthRecord).filter(HealthRecord.id == record_id,
                                         HealthRecord.user_id == user.id).first())
    if not rec:
        raise HTTPException(status_code=404, detail="Health record not found")
    return rec


def _apply(rec: HealthRecord, data: dict) -> None:
    # "metadata" is reserved on declarative models; the attribute is "extra"
    if "metadata" in data:
        rec.extra = data.pop("metadata")
    for k, v in data.items():
        setattr(rec, k, v)


@router.get("")
def list_records(
        request: Request,
        type: Optional[RecordType] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    q = db.query(HealthRecord).filter(HealthRecord.user_id == user.id)
    if type:
        q = q.filter(HealthRecord.type == type)
    q = q.order_by(HealthRecord.record_date.desc(), HealthRecord.id.desc())
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=per_page,
                   message="Health records retrieved successfully")


@router.post("", status_code=201)
def create_record(
        payload: HealthRecordCreate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    rec = HealthRecord(user_id=user.id)
    _apply(rec, payload.model_dump())
    db.add(rec)
    db.commit()
    db.refresh(rec)
    return ok(_out(rec), "Health record created successfully", status_code=201)


@router.get("/{record_id}")
def show_record(
        record_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    return ok(_out(_own_record(db, user, record_id)),
              "Health record retrieved successfully")


@router.put("/{record_id}")
def update_record(
        record_id: int,
        payload: HealthRecordUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    rec = _own_record(db, user, record_id)
    _apply(rec, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(rec)
    return ok(_out(rec), "Health record updated successfully")


@router.delete("/{record_id}")
def delete_record(
        record_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    rec = _own_record(db, user, record_id)
    db.delete(rec)
    db.commit()
    return ok(None, "Health record deleted successfully")
