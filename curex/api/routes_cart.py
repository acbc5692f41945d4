# FILE: curex/api/routes_cart.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from curex.api.deps import current_user, get_db
from curex.models.cart import Cart, CartItem
from curex.models.medication import Medication
from curex.models.user import User
from curex.schemas.cart import CartItemAdd, CartItemOut, CartItemUpdate, CartOut, CheckoutIn
from curex.schemas.order import OrderOut
from curex.services import cart_pricing as cart_svc
from curex.services.orders import checkout_cart, order_summary
from curex.utils.resp import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_out(cart: Cart) -> dict:
    return CartOut.model_validate(cart).model_dump()


def _own_item(db: Session, cart: Cart, item_id: int) -> CartItem:
    item = db.get(CartItem, item_id)
    if not item or item.cart_id != cart.id:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return item


@router.get("")
def show_cart(
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    cart = cart_svc.get_or_create_cart(db, user.id)
    db.commit()
    db.refresh(cart)
    return ok(_cart_out(cart), "Cart retrieved successfully")


@router.post("/items", status_code=201)
def add_cart_item(
        payload: CartItemAdd,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    med = db.get(Medication, payload.medication_id)
    if not med or not med.is_active:
        raise HTTPException(status_code=404, detail="Medication not found")
    # short stock reports the available quantity, even at zero
    cart_svc.check_stock(med, payload.quantity)
    if not med.is_available:
        raise HTTPException(status_code=400,
                            detail="Medication is not available")

    cart = cart_svc.get_or_create_cart(db, user.id)
    item = cart_svc.add_item(db, cart, med, payload.quantity, payload.notes)
    db.commit()
    db.refresh(item)
    db.refresh(cart)
    return ok(
        {
            "item": CartItemOut.model_validate(item).model_dump(),
            "cart": _cart_out(cart),
        },
        "Item added to cart successfully",
        status_code=201)


@router.put("/items/{item_id}")
def update_cart_item(
        item_id: int,
        payload: CartItemUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    cart = cart_svc.get_or_create_cart(db, user.id)
    item = _own_item(db, cart, item_id)
    cart_svc.update_item(db, cart, item, payload.quantity, payload.notes)
    db.commit()
    db.refresh(item)
    db.refresh(cart)
    return ok(
        {
            "item": CartItemOut.model_validate(item).model_dump(),
            "cart": _cart_out(cart),
        }, "Cart item updated successfully")


@router.delete("/items/{item_id}")
def remove_cart_item(
        item_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    cart = cart_svc.get_or_create_cart(db, user.id)
    item = _own_item(db, cart, item_id)
    cart_svc.remove_item(db, cart, item)
    db.commit()
    db.refresh(cart)
    return ok(_cart_out(cart), "Item removed from cart successfully")


@router.delete("")
def clear_cart(
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    cart = cart_svc.get_or_create_cart(db, user.id)
    cart_svc.clear_cart(db, cart)
    db.commit()
    db.refresh(cart)
    return ok(_cart_out(cart), "Cart cleared successfully")


@router.get("/summary")
def cart_summary(
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    cart = cart_svc.get_or_create_cart(db, user.id)
    db.commit()
    db.refresh(cart)
    return ok(
        {
            "items_count": cart.items_count,
            "total_quantity": sum(i.quantity for i in cart.items),
            "subtotal": cart.subtotal,
            "tax_amount": cart.tax_amount,
            "shipping_cost": cart.shipping_cost,
            "total_amount": cart.total_amount,
            "currency": cart.currency,
            "is_empty": cart.is_empty,
            "requires_prescription": any(
                i.medication.requires_prescription for i in cart.items
                if i.medication),
        }, "Cart summary retrieved successfully")


@router.post("/checkout", status_code=201)
def checkout(
        payload: CheckoutIn,
        db: Session = Depends(get_db),
        user: User = Depends(current_user),
):
    cart = cart_svc.get_cart(db, user.id)
    address = payload.delivery_address.model_dump() if payload.delivery_address else None
    order = checkout_cart(db,
                          user,
                          cart,
                          delivery_method=payload.delivery_method,
                          delivery_address=address,
                          pharmacy_id=payload.pharmacy_id,
                          notes=payload.notes)
    db.commit()
    db.refresh(order)
    logger.info("Cart checked out into order %s by user=%s", order.order_number,
                user.id)
    return ok(
        {
            "order": OrderOut.model_validate(order).model_dump(),
            "summary": order_summary(order),
        },
        "Order placed successfully",
        status_code=201)
