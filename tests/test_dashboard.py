# tests/test_dashboard.py
from decimal import Decimal


def _order(client, headers, med_id, qty=1):
    r = client.post("/api/v1/orders",
                    json={
                        "items": [{
                            "medication_id": med_id,
                            "quantity": qty
                        }],
                        "delivery_method": "pickup"
                    },
                    headers=headers)
    assert r.status_code == 201
    return r.json()["data"]["order"]


def test_patient_dashboard(client, patient_headers, make_medication):
    med = make_medication(stock=10, price="100.00")
    _order(client, patient_headers, med.id, 2)

    data = client.get("/api/v1/dashboard", headers=patient_headers).json()["data"]
    assert data["role"] == "patient"
    assert data["stats"]["total_orders"] == 1
    assert data["stats"]["pending_orders"] == 1
    assert Decimal(str(data["stats"]["total_spent"])) == Decimal("238.00")
    assert len(data["recent_orders"]) == 1


def test_pharmacist_dashboard_has_inventory(client, pharmacist_headers,
                                            make_medication):
    make_medication(stock=2)
    data = client.get("/api/v1/dashboard",
                      headers=pharmacist_headers).json()["data"]
    assert data["role"] == "pharmacist"
    assert data["inventory_summary"]["total_medications"] == 1
    assert len(data["low_stock_medications"]) == 1


def test_government_dashboard(client, auth_headers, official, pharmacy,
                              patient_headers, make_medication):
    med = make_medication(stock=10)
    client.post("/api/v1/orders",
                json={
                    "items": [{
                        "medication_id": med.id,
                        "quantity": 1
                    }],
                    "delivery_method": "pickup",
                    "pharmacy_id": pharmacy.id
                },
                headers=patient_headers)

    data = client.get("/api/v1/dashboard",
                      headers=auth_headers(official)).json()["data"]
    assert data["role"] == "government_official"
    assert data["stats"]["total_pharmacies"] == 1
    assert data["pharmacy_stats"][0]["orders_count"] == 1
    assert data["recent_activities"][0]["type"] == "order"


def test_insurance_dashboard_is_zeroed(client, auth_headers, insurer):
    data = client.get("/api/v1/dashboard",
                      headers=auth_headers(insurer)).json()["data"]
    assert data["stats"]["total_claims"] == 0
    assert data["recent_claims"] == []


def test_analytics(client, admin_headers, patient_headers, make_medication):
    med = make_medication(stock=10, price="50.00")
    _order(client, patient_headers, med.id, 2)

    r = client.get("/api/v1/dashboard/analytics?period=7", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert set(data) >= {"orders", "prescriptions", "revenue", "inventory"}


def test_dashboard_requires_auth(client):
    assert client.get("/api/v1/dashboard").status_code == 401
