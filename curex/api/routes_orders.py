# FILE: curex/api/routes_orders.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db
from curex.core.rbac import is_staff_user
from curex.models.medication import Medication
from curex.models.order import Order, OrderItem
from curex.models.user import User
from curex.schemas.order import (
    OrderCancelIn,
    OrderCreate,
    OrderItemOut,
    OrderOut,
    OrderStatus,
    OrderStatusUpdate,
)
from curex.services import orders as order_svc
from curex.utils.resp import ok, ok_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def _out(o: Order) -> dict:
    return OrderOut.model_validate(o).model_dump()


def _visible(db: Session, user: User):
    q = db.query(Order)
    if not is_staff_user(user):
        q = q.filter(Order.user_id == user.id)
    return q


def _get_order(db: Session, user: User, order_id: int) -> Order:
    order = _visible(db, user).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _filter_dates(q, from_date: Optional[date], to_date: Optional[date]):
    if from_date:
        q = q.filter(Order.created_at >= datetime.combine(from_date, time.min))
    if to_date:
        q = q.filter(Order.created_at < datetime.combine(
            to_date + timedelta(days=1), time.min))
    return q


@router.post("", status_code=201)
def create_order(
        payload: OrderCreate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    req = order_svc.OrderRequest(
        items=[
            order_svc.OrderLine(
                medication_id=i.medication_id,
                quantity=i.quantity,
                dosage_instructions=i.dosage_instructions,
                substitution_allowed=i.substitution_allowed,
            ) for i in payload.items
        ],
        delivery_method=payload.delivery_method,
        delivery_address=payload.delivery_address.model_dump()
        if payload.delivery_address else None,
        pharmacy_id=payload.pharmacy_id,
        notes=payload.notes,
    )
    order = order_svc.place_order(db, user, req)
    db.commit()
    db.refresh(order)
    return ok(
        {
            "order": _out(order),
            "summary": order_svc.order_summary(order),
        },
        "Order created successfully",
        status_code=201)


@router.get("")
def list_orders(
        request: Request,
        status: Optional[OrderStatus] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    q = _visible(db, user)
    if status:
        q = q.filter(Order.status == status)
    q = _filter_dates(q, from_date, to_date)
    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=per_page,
                   message="Orders retrieved successfully")


@router.get("/history")
def order_history(
        request: Request,
        search: Optional[str] = Query(None),
        status: Optional[OrderStatus] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        page: int = Query(1, ge=1),
        per_page: int = Query(15, ge=1, le=100),
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    # history is always the caller's own orders
    q = db.query(Order).filter(Order.user_id == user.id)
    if status:
        q = q.filter(Order.status == status)
    if search:
        like = f"%{search.strip().lower()}%"
        matching = (select(OrderItem.order_id).join(
            Medication, Medication.id == OrderItem.medication_id).where(
                func.lower(Medication.name).like(like)))
        q = q.filter(
            or_(func.lower(Order.order_number).like(like),
                Order.id.in_(matching)))
    q = _filter_dates(q, from_date, to_date)
    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    return ok_page(q,
                   request,
                   _out,
                   page=page,
                   per_page=per_page,
                   message="Order history retrieved successfully")


@router.get("/{order_id}")
def show_order(
        order_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    order = _get_order(db, user, order_id)
    return ok(
        {
            "order": _out(order),
            "summary": order_svc.order_summary(order),
        }, "Order retrieved successfully")


@router.get("/{order_id}/items")
def order_items(
        order_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    order = _get_order(db, user, order_id)
    return ok([OrderItemOut.model_validate(i).model_dump() for i in order.items],
              "Order items retrieved successfully")


@router.put("/{order_id}/status")
def update_order_status(
        order_id: int,
        payload: OrderStatusUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    staff = is_staff_user(user)
    order = _get_order(db, user, order_id)
    # patients may only cancel their own orders
    if not staff and payload.status != "cancelled":
        raise HTTPException(status_code=403,
                            detail="Unauthorized. Insufficient permissions.")

    old_status = order_svc.update_status(
        db,
        order,
        user,
        payload.status,
        is_staff=staff,
        notes=payload.notes,
        estimated_ready_at=payload.estimated_ready_at,
    )
    db.commit()
    db.refresh(order)
    return ok(
        {
            "order": _out(order),
            "previous_status": old_status,
        }, "Order status updated successfully")


@router.delete("/{order_id}")
def cancel_order(
        order_id: int,
        payload: OrderCancelIn,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    order = _get_order(db, user, order_id)
    order_svc.cancel_order(db, order, user, payload.cancellation_reason)
    db.commit()
    db.refresh(order)
    return ok(_out(order), "Order cancelled successfully")
