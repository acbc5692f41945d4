# tests/test_cart.py
from decimal import Decimal

import pytest

from curex.services.cart_pricing import money, price_cart


@pytest.mark.parametrize(
    "subtotal, tax, shipping",
    [
        ("100.00", "19.00", "200.00"),
        ("1000.00", "190.00", "200.00"),
        ("1000.01", "190.00", "0.00"),
        ("33.33", "6.33", "200.00"),
        ("0.50", "0.10", "200.00"),
    ],
)
def test_price_cart(subtotal, tax, shipping):
    out = price_cart(Decimal(subtotal))
    assert out["tax_amount"] == Decimal(tax)
    assert out["shipping_cost"] == Decimal(shipping)
    assert out["total_amount"] == (out["subtotal"] + out["tax_amount"] +
                                   out["shipping_cost"])


def test_money_rounds_half_up():
    assert money("2.675") == Decimal("2.68")
    assert money(None) == Decimal("0.00")


# ---------- HTTP ----------


def test_get_cart_creates_empty_cart(client, patient_headers):
    r = client.get("/api/v1/cart", headers=patient_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["items"] == []
    assert data["currency"] == "DZD"
    assert Decimal(str(data["total_amount"])) == 0
    assert Decimal(str(data["shipping_cost"])) == 0


def test_add_item_beyond_stock_is_rejected(client, patient_headers,
                                           make_medication):
    med = make_medication(stock=5)
    r = client.post("/api/v1/cart/items",
                    json={
                        "medication_id": med.id,
                        "quantity": 10
                    },
                    headers=patient_headers)
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Insufficient stock. Available: 5"

    empty = make_medication(stock=0)
    r = client.post("/api/v1/cart/items",
                    json={
                        "medication_id": empty.id,
                        "quantity": 1
                    },
                    headers=patient_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Insufficient stock. Available: 0"


def test_add_item_prices_cart(client, patient_headers, make_medication):
    med = make_medication(stock=10, price="150.00")
    r = client.post("/api/v1/cart/items",
                    json={
                        "medication_id": med.id,
                        "quantity": 2
                    },
                    headers=patient_headers)
    assert r.status_code == 201
    cart = r.json()["data"]["cart"]
    assert Decimal(str(cart["subtotal"])) == Decimal("300.00")
    assert Decimal(str(cart["tax_amount"])) == Decimal("57.00")
    assert Decimal(str(cart["shipping_cost"])) == Decimal("200.00")
    assert Decimal(str(cart["total_amount"])) == Decimal("557.00")


def test_merging_a_line_rechecks_combined_quantity(client, patient_headers,
                                                   make_medication):
    med = make_medication(stock=5)
    payload = {"medication_id": med.id, "quantity": 3}
    assert client.post("/api/v1/cart/items", json=payload,
                       headers=patient_headers).status_code == 201

    r = client.post("/api/v1/cart/items", json=payload, headers=patient_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Insufficient stock. Available: 5"

    cart = client.get("/api/v1/cart", headers=patient_headers).json()["data"]
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3


def test_update_and_remove_item(client, patient_headers, make_medication):
    med = make_medication(stock=20, price="600.00")
    item = client.post("/api/v1/cart/items",
                       json={
                           "medication_id": med.id,
                           "quantity": 1
                       },
                       headers=patient_headers).json()["data"]["item"]

    r = client.put(f"/api/v1/cart/items/{item['id']}",
                   json={"quantity": 2},
                   headers=patient_headers)
    assert r.status_code == 200
    cart = r.json()["data"]["cart"]
    # above the free shipping threshold
    assert Decimal(str(cart["shipping_cost"])) == 0
    assert Decimal(str(cart["total_amount"])) == Decimal("1428.00")

    r = client.delete(f"/api/v1/cart/items/{item['id']}",
                      headers=patient_headers)
    assert r.status_code == 200
    cart = r.json()["data"]
    assert cart["items"] == []
    assert Decimal(str(cart["total_amount"])) == 0


def test_cannot_touch_another_users_item(client, make_user, auth_headers,
                                         patient_headers, make_medication):
    med = make_medication(stock=20)
    item = client.post("/api/v1/cart/items",
                       json={
                           "medication_id": med.id,
                           "quantity": 1
                       },
                       headers=patient_headers).json()["data"]["item"]

    other = auth_headers(make_user())
    r = client.delete(f"/api/v1/cart/items/{item['id']}", headers=other)
    assert r.status_code == 404


def test_clear_cart_and_summary(client, patient_headers, make_medication):
    med = make_medication(stock=20)
    client.post("/api/v1/cart/items",
                json={
                    "medication_id": med.id,
                    "quantity": 4
                },
                headers=patient_headers)

    summary = client.get("/api/v1/cart/summary", headers=patient_headers).json()
    assert summary["data"]["items_count"] == 1
    assert summary["data"]["total_quantity"] == 4

    r = client.delete("/api/v1/cart", headers=patient_headers)
    assert r.status_code == 200
    assert r.json()["data"]["items"] == []


def test_checkout_turns_cart_into_order(client, db, patient_headers,
                                        make_medication):
    med = make_medication(stock=10, price="200.00")
    client.post("/api/v1/cart/items",
                json={
                    "medication_id": med.id,
                    "quantity": 3
                },
                headers=patient_headers)

    r = client.post("/api/v1/cart/checkout",
                    json={"delivery_method": "pickup"},
                    headers=patient_headers)
    assert r.status_code == 201
    order = r.json()["data"]["order"]
    assert order["order_number"].startswith("ORD-")
    assert Decimal(str(order["total_amount"])) == Decimal("714.00")

    db.refresh(med)
    assert med.stock == 7
    cart = client.get("/api/v1/cart", headers=patient_headers).json()["data"]
    assert cart["items"] == []


def test_checkout_keeps_cart_line_price(client, db, patient_headers,
                                        make_medication):
    med = make_medication(stock=10, price="200.00")
    client.post("/api/v1/cart/items",
                json={
                    "medication_id": med.id,
                    "quantity": 1
                },
                headers=patient_headers)
    med.price = Decimal("260.00")
    db.commit()

    r = client.post("/api/v1/cart/checkout",
                    json={"delivery_method": "pickup"},
                    headers=patient_headers)
    assert r.status_code == 201
    order = r.json()["data"]["order"]
    assert Decimal(str(order["items"][0]["unit_price"])) == Decimal("200.00")
    assert Decimal(str(order["subtotal"])) == Decimal("200.00")

def test_checkout_empty_cart(client, patient_headers):
    r = client.post("/api/v1/cart/checkout",
                    json={"delivery_method": "pickup"},
                    headers=patient_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Cart is empty"


def test_cart_requires_auth(client):
    r = client.get("/api/v1/cart")
    assert r.status_code == 401
    assert r.json()["message"] == "Unauthenticated."
