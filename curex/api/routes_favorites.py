# FILE: curex/api/routes_favorites.py
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db
from curex.models.favorite import Favorite
from curex.models.medication import Medication
from curex.models.user import User
from curex.schemas.favorite import FavoriteCreate, FavoriteOut
from curex.services.medication_search import apply_search
from curex.utils.resp import err, ok, ok_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["Favorites"])

SORT_FIELDS = {
    "created_at": Favorite.created_at,
    "times_ordered": Favorite.times_ordered,
    "name": Medication.name,
    "price": Medication.price,
}

ALREADY_FAVORITE = "Medication is already in favorites"


def _fav_out(f: Favorite) -> dict:
    return FavoriteOut.model_validate(f).model_dump()


@router.get("")
def list_favorites(
        request: Request,
        category: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
        sort_by: Literal["created_at", "name", "price",
                         "times_ordered"] = Query("created_at"),
        sort_order: Literal["asc", "desc"] = Query("desc"),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    q = (db.query(Favorite).join(
        Medication, Medication.id == Favorite.medication_id).filter(
            Favorite.user_id == user.id))
    if category:
        q = q.filter(Medication.category == category)
    q = apply_search(q, search, (Medication.name, Medication.generic_name,
                                 Medication.brand))
    col = SORT_FIELDS[sort_by]
    q = q.order_by(col.desc() if sort_order == "desc" else col.asc(),
                   Favorite.id.desc())
    return ok_page(q,
                   request,
                   _fav_out,
                   page=page,
                   per_page=min(per_page, 50),
                   message="Favorites retrieved successfully")


@router.post("", status_code=201)
def add_favorite(
        payload: FavoriteCreate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    med = db.get(Medication, payload.medication_id)
    if not med or not med.is_active:
        raise HTTPException(status_code=404, detail="Medication not found")

    exists = (db.query(Favorite.id).filter(
        Favorite.user_id == user.id,
        Favorite.medication_id == med.id).first())
    if exists:
        return err(ALREADY_FAVORITE, status_code=409)

    fav = Favorite(user_id=user.id, medication_id=med.id, times_ordered=0)
    db.add(fav)
    try:
        db.commit()
    except IntegrityError:
        # concurrent insert of the same pair
        db.rollback()
        return err(ALREADY_FAVORITE, status_code=409)
    db.refresh(fav)
    return ok(_fav_out(fav), "Medication added to favorites", status_code=201)


@router.delete("/{medication_id}")
def remove_favorite(
        medication_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    fav = (db.query(Favorite).filter(
        Favorite.user_id == user.id,
        Favorite.medication_id == medication_id).first())
    if not fav:
        raise HTTPException(status_code=404,
                            detail="Medication not found in favorites")
    db.delete(fav)
    db.commit()
    return ok(None, "Medication removed from favorites")


@router.get("/check/{medication_id}")
def check_favorite(
        medication_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    fav = (db.query(Favorite).filter(
        Favorite.user_id == user.id,
        Favorite.medication_id == medication_id).first())
    return ok(
        {
            "medication_id": medication_id,
            "is_favorite": fav is not None,
            "favorite_id": fav.id if fav else None,
        }, "Favorite status retrieved")


@router.get("/summary")
def favorites_summary(
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    base = (db.query(Favorite).join(
        Medication, Medication.id == Favorite.medication_id).filter(
            Favorite.user_id == user.id))
    total = base.count()
    in_stock = base.filter(Medication.stock > 0,
                           Medication.is_available.is_(True)).count()
    ordered = base.filter(Favorite.times_ordered > 0).count()
    categories = (base.with_entities(func.count(func.distinct(
        Medication.category))).scalar() or 0)
    return ok(
        {
            "total_favorites": total,
            "in_stock": in_stock,
            "out_of_stock": total - in_stock,
            "previously_ordered": ordered,
            "categories": int(categories),
        }, "Favorites summary retrieved")
