# tests/test_orders.py
import re
from decimal import Decimal

from curex.models.inventory import InventoryTransaction


def _place(client, headers, items, **extra):
    payload = {"items": items, "delivery_method": "pickup"}
    payload.update(extra)
    return client.post("/api/v1/orders", json=payload, headers=headers)


def test_place_order_decrements_stock_through_ledger(client, db, patient_headers,
                                                     make_medication):
    med = make_medication(stock=10, price="250.00")
    r = _place(client, patient_headers, [{"medication_id": med.id, "quantity": 4}])
    assert r.status_code == 201
    order = r.json()["data"]["order"]

    assert re.match(r"^ORD-\d{8}-[A-Z0-9]{8}$", order["order_number"])
    assert order["status"] == "pending"
    assert Decimal(str(order["subtotal"])) == Decimal("1000.00")
    assert Decimal(str(order["tax_amount"])) == Decimal("190.00")
    assert Decimal(str(order["total_amount"])) == Decimal("1190.00")
    assert order["estimated_ready_at"] is not None

    db.refresh(med)
    assert med.stock == 6
    txn = (db.query(InventoryTransaction).filter(
        InventoryTransaction.medication_id == med.id).one())
    assert txn.reference_type == "order"
    assert txn.reference_id == order["id"]
    assert txn.quantity_change == -4


def test_delivery_adds_fee_and_needs_address(client, patient_headers,
                                             make_medication):
    med = make_medication(stock=10, price="100.00")
    items = [{"medication_id": med.id, "quantity": 1}]

    r = _place(client, patient_headers, items, delivery_method="delivery")
    assert r.status_code == 422

    r = _place(client,
               patient_headers,
               items,
               delivery_method="delivery",
               delivery_address={
                   "street": "5 Rue Larbi Ben M'hidi",
                   "city": "Oran",
                   "postal_code": "31000",
                   "phone": "0550000000"
               })
    assert r.status_code == 201
    order = r.json()["data"]["order"]
    assert Decimal(str(order["delivery_fee"])) == Decimal("500.00")
    assert Decimal(str(order["total_amount"])) == Decimal("619.00")


def test_unavailable_quantity_rolls_back(client, db, patient_headers,
                                         make_medication):
    ok_med = make_medication(stock=10)
    short = make_medication(stock=1, name="Ventoline")
    r = _place(client, patient_headers, [
        {
            "medication_id": ok_med.id,
            "quantity": 2
        },
        {
            "medication_id": short.id,
            "quantity": 3
        },
    ])
    assert r.status_code == 400
    assert r.json()["message"] == (
        "Medication Ventoline is not available in requested quantity")

    db.refresh(ok_med)
    assert ok_med.stock == 10
    assert db.query(InventoryTransaction).count() == 0


def test_cancel_restocks(client, db, patient_headers, make_medication):
    med = make_medication(stock=5)
    order = _place(client, patient_headers,
                   [{"medication_id": med.id, "quantity": 5}]).json()["data"]["order"]

    r = client.request("DELETE",
                       f"/api/v1/orders/{order['id']}",
                       json={"cancellation_reason": "Changed my mind"},
                       headers=patient_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "cancelled"
    assert r.json()["data"]["cancellation_reason"] == "Changed my mind"

    db.refresh(med)
    assert med.stock == 5
    refs = [t.reference_type for t in db.query(InventoryTransaction).all()]
    assert refs == ["order", "order_cancellation"]


def test_cannot_cancel_once_preparing(client, patient_headers,
                                      pharmacist_headers, make_medication):
    med = make_medication(stock=5)
    order = _place(client, patient_headers,
                   [{"medication_id": med.id, "quantity": 1}]).json()["data"]["order"]

    r = client.put(f"/api/v1/orders/{order['id']}/status",
                   json={"status": "preparing"},
                   headers=pharmacist_headers)
    assert r.status_code == 200

    r = client.request("DELETE",
                       f"/api/v1/orders/{order['id']}",
                       json={"cancellation_reason": "Too slow"},
                       headers=patient_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Order cannot be cancelled at this stage"


def test_status_flow_stamps_timestamps(client, pharmacist, pharmacist_headers,
                                       patient_headers, make_medication):
    med = make_medication(stock=5)
    order = _place(client, patient_headers,
                   [{"medication_id": med.id, "quantity": 1}]).json()["data"]["order"]
    url = f"/api/v1/orders/{order['id']}/status"

    r = client.put(url, json={"status": "confirmed"}, headers=pharmacist_headers)
    assert r.json()["data"]["previous_status"] == "pending"
    assert r.json()["data"]["order"]["processed_by"] == pharmacist.id

    r = client.put(url, json={"status": "ready"}, headers=pharmacist_headers)
    assert r.json()["data"]["order"]["ready_at"] is not None

    r = client.put(url, json={"status": "completed"}, headers=pharmacist_headers)
    data = r.json()["data"]["order"]
    assert data["completed_at"] is not None
    assert all(i["is_fulfilled"] for i in data["items"])

    r = client.put(url, json={"status": "confirmed"}, headers=pharmacist_headers)
    assert r.status_code == 400


def test_patient_cannot_advance_status(client, patient_headers, make_medication):
    med = make_medication(stock=5)
    order = _place(client, patient_headers,
                   [{"medication_id": med.id, "quantity": 1}]).json()["data"]["order"]
    r = client.put(f"/api/v1/orders/{order['id']}/status",
                   json={"status": "completed"},
                   headers=patient_headers)
    assert r.status_code == 403


def test_orders_are_private(client, make_user, auth_headers, patient_headers,
                            make_medication):
    med = make_medication(stock=5)
    order = _place(client, patient_headers,
                   [{"medication_id": med.id, "quantity": 1}]).json()["data"]["order"]

    other = auth_headers(make_user())
    assert client.get(f"/api/v1/orders/{order['id']}",
                      headers=other).status_code == 404
    assert client.get("/api/v1/orders", headers=other).json()["meta"]["total"] == 0


def test_list_history_and_items(client, patient_headers, make_medication):
    med = make_medication(stock=10, name="Doliprane")
    order = _place(client, patient_headers,
                   [{"medication_id": med.id, "quantity": 2}]).json()["data"]["order"]

    body = client.get("/api/v1/orders?status=pending",
                      headers=patient_headers).json()
    assert body["meta"]["total"] == 1
    assert body["links"]["prev"] is None

    body = client.get("/api/v1/orders/history?search=doli",
                      headers=patient_headers).json()
    assert [o["id"] for o in body["data"]] == [order["id"]]

    items = client.get(f"/api/v1/orders/{order['id']}/items",
                       headers=patient_headers).json()["data"]
    assert items[0]["quantity"] == 2


def test_order_locks_medications_in_id_order(client, patient_headers,
                                             make_medication, monkeypatch):
    from curex.services import inventory_ledger as ledger

    first, second = make_medication(stock=10), make_medication(stock=10)
    seen = []
    real = ledger.lock_medication

    def _spy(session, medication_id):
        seen.append(medication_id)
        return real(session, medication_id)

    monkeypatch.setattr(ledger, "lock_medication", _spy)
    r = _place(client, patient_headers, [
        {"medication_id": second.id, "quantity": 1},
        {"medication_id": first.id, "quantity": 1},
    ])
    assert r.status_code == 201, r.text
    # every row is locked up front, lowest id first
    assert seen[:2] == [first.id, second.id]
