# FILE: curex/services/orders.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from curex.core.config import settings
from curex.core.errors import InsufficientStockError, InvalidStateError
from curex.models.favorite import Favorite
from curex.models.order import (
    Order,
    OrderItem,
    CANCELLABLE_STATUSES,
    DELIVERY_DELIVERY,
    ORDER_CANCELLED,
    ORDER_COMPLETED,
    ORDER_CONFIRMED,
    ORDER_PENDING,
    ORDER_PREPARING,
    ORDER_READY,
)
from curex.services import inventory_ledger as ledger
from curex.services.cart_pricing import ZERO, clear_cart, money
from curex.services.id_gen import next_order_number

logger = logging.getLogger(__name__)

PREPARATION_TIME = timedelta(hours=2)
PROCESSING_STATUSES = (ORDER_CONFIRMED, ORDER_PREPARING, ORDER_READY)
FINAL_STATUSES = (ORDER_COMPLETED, ORDER_CANCELLED)


@dataclass
class OrderLine:
    medication_id: int
    quantity: int
    dosage_instructions: Optional[str] = None
    substitution_allowed: bool = False
    # price quoted to the customer (cart line); None uses the current price
    unit_price: Optional[Decimal] = None


@dataclass
class OrderRequest:
    items: List[OrderLine]
    delivery_method: str
    delivery_address: Optional[dict] = None
    pharmacy_id: Optional[int] = None
    notes: Optional[str] = None
    order_type: str = "online"


def _bump_favorites(db: Session, user_id: int, medication_ids: Iterable[int],
                    when: datetime) -> None:
    ids = set(medication_ids)
    if not ids:
        return
    favs = (db.query(Favorite).filter(Favorite.user_id == user_id,
                                      Favorite.medication_id.in_(ids)).all())
    for fav in favs:
        fav.times_ordered = (fav.times_ordered or 0) + 1
        fav.last_ordered = when


def place_order(db: Session, user, req: OrderRequest) -> Order:
    """
    Creates the order, decrements stock through the ledger for every line,
    and prices it: 19% tax on the subtotal plus the delivery fee.
    Raises InsufficientStockError / LookupError; caller commits or rolls back.
    """
    if not req.items:
        raise InvalidStateError("Order must contain at least one item")

    now = datetime.utcnow()
    is_delivery = req.delivery_method == DELIVERY_DELIVERY
    order = Order(
        order_number=next_order_number(db),
        user_id=user.id,
        pharmacy_id=req.pharmacy_id,
        status=ORDER_PENDING,
        type=req.order_type,
        delivery_method=req.delivery_method,
        delivery_address=req.delivery_address if is_delivery else None,
        delivery_fee=money(settings.DELIVERY_FEE) if is_delivery else ZERO,
        currency=settings.CURRENCY,
        notes=req.notes,
    )
    db.add(order)
    db.flush()

    subtotal = ZERO
    requires_rx = False
    locked = ledger.lock_medications(db, (l.medication_id for l in req.items))
    for line in req.items:
        med = locked[line.medication_id]
        if not med.is_active or not med.is_available or (med.stock or 0) < line.quantity:
            raise InsufficientStockError(
                int(med.stock or 0), line.quantity,
                f"Medication {med.name} is not available in requested quantity")
        requires_rx = requires_rx or bool(med.requires_prescription)

        unit_price = money(
            med.price if line.unit_price is None else line.unit_price)
        total_price = unit_price * line.quantity
        subtotal += total_price
        db.add(
            OrderItem(
                order_id=order.id,
                medication_id=med.id,
                quantity=line.quantity,
                unit_price=unit_price,
                total_price=total_price,
                dosage_instructions=line.dosage_instructions,
                substitution_allowed=line.substitution_allowed,
            ))
        ledger.stock_out(
            db,
            med.id,
            line.quantity,
            user_id=user.id,
            pharmacy_id=req.pharmacy_id,
            reference_type=ledger.REF_ORDER,
            reference_id=order.id,
            notes=f"Order {order.order_number}",
        )

    tax_amount = money(subtotal * settings.TAX_RATE)
    order.subtotal = subtotal
    order.tax_amount = tax_amount
    order.total_amount = subtotal + tax_amount + money(order.delivery_fee)
    order.requires_prescription = requires_rx
    order.estimated_ready_at = now + PREPARATION_TIME

    _bump_favorites(db, user.id, (l.medication_id for l in req.items), now)
    db.flush()
    logger.info("Order %s placed by user=%s total=%s", order.order_number,
                user.id, order.total_amount)
    return order


def _restock(db: Session, order: Order, user) -> None:
    for item in order.items:
        if item.is_fulfilled:
            continue
        ledger.stock_in(
            db,
            item.medication_id,
            item.quantity,
            user_id=getattr(user, "id", None),
            pharmacy_id=order.pharmacy_id,
            reference_type=ledger.REF_ORDER_CANCELLATION,
            reference_id=order.id,
            notes=f"Cancelled order {order.order_number}",
        )


def cancel_order(db: Session,
                 order: Order,
                 user,
                 reason: Optional[str] = None,
                 allowed_from: Iterable[str] = CANCELLABLE_STATUSES) -> Order:
    if order.status not in tuple(allowed_from):
        raise InvalidStateError("Order cannot be cancelled at this stage")

    _restock(db, order, user)
    now = datetime.utcnow()
    order.status = ORDER_CANCELLED
    order.cancelled_at = now
    order.cancelled_by = getattr(user, "id", None)
    if reason:
        order.cancellation_reason = reason
    db.flush()
    logger.info("Order %s cancelled by user=%s", order.order_number,
                getattr(user, "id", None))
    return order


def update_status(db: Session,
                  order: Order,
                  user,
                  new_status: str,
                  *,
                  is_staff: bool,
                  notes: Optional[str] = None,
                  estimated_ready_at: Optional[datetime] = None) -> str:
    """
    Moves the order to new_status and stamps the matching timestamp.
    Cancelling goes through cancel_order so stock is returned.
    Returns the previous status.
    """
    old_status = order.status
    if old_status in FINAL_STATUSES:
        raise InvalidStateError(f"Order is already {old_status}")

    if new_status == ORDER_CANCELLED:
        allowed = (ORDER_PENDING, ORDER_CONFIRMED, ORDER_PREPARING,
                   ORDER_READY) if is_staff else CANCELLABLE_STATUSES
        cancel_order(db, order, user, notes, allowed_from=allowed)
        return old_status

    now = datetime.utcnow()
    order.status = new_status
    if notes is not None:
        order.pharmacy_notes = notes
    if estimated_ready_at is not None:
        order.estimated_ready_at = estimated_ready_at

    if new_status == ORDER_READY:
        order.ready_at = now
    elif new_status == ORDER_COMPLETED:
        order.completed_at = now
        if not order.ready_at:
            order.ready_at = now
        for item in order.items:
            item.is_fulfilled = True
            item.fulfilled_at = now

    if is_staff and new_status in PROCESSING_STATUSES:
        order.processed_by = user.id

    db.flush()
    logger.info("Order %s status %s -> %s by user=%s", order.order_number,
                old_status, new_status, user.id)
    return old_status


def order_summary(order: Order) -> dict:
    return {
        "order_number": order.order_number,
        "status": order.status,
        "items_count": len(order.items),
        "total_quantity": sum(i.quantity for i in order.items),
        "subtotal": order.subtotal,
        "tax_amount": order.tax_amount,
        "delivery_fee": order.delivery_fee,
        "total_amount": order.total_amount,
        "estimated_ready_at": order.estimated_ready_at,
        "requires_prescription": order.requires_prescription,
        "can_be_cancelled": order.can_be_cancelled,
    }


def checkout_cart(db: Session, user, cart, *, delivery_method: str,
                  delivery_address: Optional[dict], pharmacy_id: Optional[int],
                  notes: Optional[str]) -> Order:
    if not cart or not cart.items:
        raise InvalidStateError("Cart is empty")
    req = OrderRequest(
        items=[
            OrderLine(medication_id=i.medication_id,
                      quantity=i.quantity,
                      dosage_instructions=i.notes,
                      unit_price=i.unit_price) for i in cart.items
        ],
        delivery_method=delivery_method,
        delivery_address=delivery_address,
        pharmacy_id=pharmacy_id,
        notes=notes,
    )
    order = place_order(db, user, req)
    clear_cart(db, cart)
    return order
