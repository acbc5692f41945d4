# tests/test_medications.py
from decimal import Decimal

from curex.models.inventory import InventoryTransaction


def test_catalogue_is_public_and_paginated(client, make_medication):
    for i in range(3):
        make_medication(name=f"Med {i}")
    make_medication(name="Hidden", is_active=False)

    r = client.get("/api/v1/medications?per_page=2")
    assert r.status_code == 200
    body = r.json()
    assert body["meta"]["total"] == 3
    assert body["meta"]["last_page"] == 2
    assert body["meta"]["from"] == 1
    assert body["meta"]["to"] == 2
    assert "page=2" in body["links"]["next"]


def test_search_terms_must_all_match(client, make_medication):
    make_medication(name="Doliprane", generic_name="Paracetamol", dosage="500mg")
    make_medication(name="Efferalgan", generic_name="Paracetamol", dosage="1g")

    r = client.get("/api/v1/medications?search=paracetamol%20500mg")
    names = [m["name"] for m in r.json()["data"]]
    assert names == ["Doliprane"]


def test_filters_and_sorting(client, make_medication):
    make_medication(name="A", price="300.00", requires_prescription=True)
    make_medication(name="B", price="100.00")
    make_medication(name="C", price="200.00", stock=0)

    r = client.get("/api/v1/medications?sort_by=price&sort_order=desc")
    assert [m["name"] for m in r.json()["data"]] == ["A", "C", "B"]

    r = client.get("/api/v1/medications?available=true&max_price=250")
    assert [m["name"] for m in r.json()["data"]] == ["B"]

    r = client.get("/api/v1/medications?prescription_required=true")
    assert [m["name"] for m in r.json()["data"]] == ["A"]


def test_quick_search_needs_two_chars(client, make_medication):
    make_medication(name="Ventoline")
    assert client.get("/api/v1/medications/search?search=v").status_code == 422
    r = client.get("/api/v1/medications/search?search=vento")
    assert r.json()["meta"]["total_results"] == 1


def test_barcode_and_show(client, make_medication):
    med = make_medication(barcode="6130000000011")
    r = client.get("/api/v1/medications/barcode/6130000000011")
    assert r.json()["data"]["id"] == med.id

    r = client.get(f"/api/v1/medications/{med.id}")
    assert r.json()["data"]["stock_status"] == "in_stock"

    r = client.get("/api/v1/medications/barcode/000")
    assert r.status_code == 404


def test_alternatives_need_auth(client, patient_headers, make_medication):
    base = make_medication(generic_name="Paracetamol")
    alt = make_medication(generic_name="Paracetamol")
    make_medication(generic_name="Paracetamol", stock=0)

    assert client.get(f"/api/v1/medications/{base.id}/alternatives").status_code == 401
    r = client.get(f"/api/v1/medications/{base.id}/alternatives",
                   headers=patient_headers)
    assert [m["id"] for m in r.json()["data"]] == [alt.id]


def test_staff_create_update_delete(client, db, pharmacist_headers,
                                    patient_headers):
    payload = {"name": "Spasfon", "price": "310.00", "stock": 12}
    assert client.post("/api/v1/medications", json=payload,
                       headers=patient_headers).status_code == 403

    r = client.post("/api/v1/medications", json=payload, headers=pharmacist_headers)
    assert r.status_code == 201
    med = r.json()["data"]
    assert med["stock"] == 12
    assert med["is_available"] is True

    r = client.put(f"/api/v1/medications/{med['id']}",
                   json={"stock": 4, "price": "320.00"},
                   headers=pharmacist_headers)
    assert r.status_code == 200
    assert r.json()["data"]["stock"] == 4

    txns = (db.query(InventoryTransaction).filter(
        InventoryTransaction.medication_id == med["id"]).order_by(
            InventoryTransaction.id).all())
    assert [t.type for t in txns] == ["in", "adjustment"]
    assert txns[-1].quantity_change == -8
    assert txns[-1].reference_type == "medication_update"

    r = client.delete(f"/api/v1/medications/{med['id']}", headers=pharmacist_headers)
    assert r.status_code == 200
    assert client.get(f"/api/v1/medications/{med['id']}").status_code == 404


def test_stock_endpoint(client, patient_headers, make_medication):
    med = make_medication(stock=3, min_stock=5)
    r = client.get(f"/api/v1/medications/{med.id}/stock", headers=patient_headers)
    data = r.json()["data"]
    assert data["stock"] == 3
    assert data["stock_status"] == "low_stock"


def test_update_rejects_null_on_required_fields(client, pharmacist_headers,
                                                make_medication):
    med = make_medication(price="150.00")
    r = client.put(f"/api/v1/medications/{med.id}",
                   json={"price": None, "name": None},
                   headers=pharmacist_headers)
    assert r.status_code == 422
    errors = r.json()["errors"]
    assert errors["price"] == ["The price field may not be null."]
    assert "name" in errors

    # optional columns may still be cleared
    r = client.put(f"/api/v1/medications/{med.id}",
                   json={"brand": None},
                   headers=pharmacist_headers)
    assert r.status_code == 200
    assert Decimal(str(r.json()["data"]["price"])) == Decimal("150.00")


def test_availability_follows_stock_on_update(client, pharmacist_headers,
                                              make_medication):
    med = make_medication(stock=0)
    r = client.put(f"/api/v1/medications/{med.id}",
                   json={"is_available": True},
                   headers=pharmacist_headers)
    assert r.status_code == 200
    assert r.json()["data"]["is_available"] is False

    r = client.put(f"/api/v1/medications/{med.id}",
                   json={"stock": 3},
                   headers=pharmacist_headers)
    assert r.json()["data"]["is_available"] is True
