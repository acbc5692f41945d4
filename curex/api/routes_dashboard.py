# FILE: curex/api/routes_dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db
from curex.models.user import User
from curex.services import dashboard_service
from curex.utils.resp import ok

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
def dashboard(
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    return ok(dashboard_service.build_dashboard(db, user),
              "Dashboard data retrieved successfully")


@router.get("/analytics")
def analytics(
        period: int = Query(30, ge=1, le=365),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    return ok(dashboard_service.analytics(db, user, period),
              "Analytics data retrieved successfully")
