# FILE: curex/services/cart_pricing.py
"""
Cart totals. Recomputed from the line items on every cart mutation.

  tax_amount    = subtotal * TAX_RATE, rounded half-up to cents
  shipping_cost = 0 when subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_COST
  total_amount  = subtotal + tax_amount + shipping_cost

An empty cart carries all-zero totals (no shipping charge).
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from sqlalchemy.orm import Session

from curex.core.config import settings
from curex.core.errors import InsufficientStockError
from curex.models.cart import Cart, CartItem
from curex.models.medication import Medication

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(x) -> Decimal:
    return Decimal(str(x or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def price_cart(subtotal) -> Dict[str, Decimal]:
    subtotal = money(subtotal)
    tax_amount = money(subtotal * settings.TAX_RATE)
    if subtotal > settings.FREE_SHIPPING_THRESHOLD:
        shipping_cost = ZERO
    else:
        shipping_cost = money(settings.SHIPPING_COST)
    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "shipping_cost": shipping_cost,
        "total_amount": subtotal + tax_amount + shipping_cost,
    }


def empty_totals() -> Dict[str, Decimal]:
    return {
        "subtotal": ZERO,
        "tax_amount": ZERO,
        "shipping_cost": ZERO,
        "total_amount": ZERO,
    }


def recalculate_cart(db: Session, cart: Cart) -> Cart:
    db.flush()
    db.refresh(cart, attribute_names=["items"])
    if cart.items:
        totals = price_cart(sum((money(i.total_price) for i in cart.items), ZERO))
    else:
        totals = empty_totals()
    for k, v in totals.items():
        setattr(cart, k, v)
    db.flush()
    return cart


def get_cart(db: Session, user_id: int) -> Optional[Cart]:
    return db.query(Cart).filter(Cart.user_id == user_id).first()


def get_or_create_cart(db: Session, user_id: int) -> Cart:
    cart = get_cart(db, user_id)
    if cart:
        return cart
    cart = Cart(user_id=user_id, currency=settings.CURRENCY, **empty_totals())
    db.add(cart)
    db.flush()
    return cart


def check_stock(med: Medication, quantity: int) -> None:
    available = int(med.stock or 0)
    if quantity > available:
        raise InsufficientStockError(
            available, quantity, f"Insufficient stock. Available: {available}")


def add_item(db: Session,
             cart: Cart,
             med: Medication,
             quantity: int,
             notes: Optional[str] = None) -> CartItem:
    """
    Adds a line, or merges into the existing line for the same medication.
    The merged quantity must still fit the current stock.
    """
    check_stock(med, quantity)

    item = (db.query(CartItem).filter(CartItem.cart_id == cart.id,
                                      CartItem.medication_id == med.id).first())
    if item:
        new_qty = item.quantity + quantity
        check_stock(med, new_qty)
        item.quantity = new_qty
        item.total_price = money(item.unit_price) * new_qty
        if notes is not None:
            item.notes = notes
    else:
        item = CartItem(
            cart_id=cart.id,
            medication_id=med.id,
            quantity=quantity,
            unit_price=money(med.price),
            total_price=money(med.price) * quantity,
            notes=notes,
        )
        db.add(item)

    recalculate_cart(db, cart)
    return item


def update_item(db: Session,
                cart: Cart,
                item: CartItem,
                quantity: int,
                notes: Optional[str] = None) -> CartItem:
    check_stock(item.medication, quantity)
    item.quantity = quantity
    item.total_price = money(item.unit_price) * quantity
    if notes is not None:
        item.notes = notes
    recalculate_cart(db, cart)
    return item


def remove_item(db: Session, cart: Cart, item: CartItem) -> None:
    db.delete(item)
    recalculate_cart(db, cart)


def clear_cart(db: Session, cart: Cart) -> None:
    for item in list(cart.items):
        db.delete(item)
    recalculate_cart(db, cart)
