# tests/test_prescriptions.py
import re
from datetime import date, timedelta

from curex.models.inventory import InventoryTransaction
from curex.models.pharmacy import Pharmacy


def _payload(med_id=None, quantity=10, **extra):
    today = date.today()
    data = {
        "doctor_name": "Dr. Meziane",
        "patient_name": "Karim Haddad",
        "prescribed_date": today.isoformat(),
        "expiry_date": (today + timedelta(days=30)).isoformat(),
        "refills_allowed": 1,
        "items": [{
            "medication_id": med_id,
            "medication_name": "Augmentin",
            "dosage_instructions": "1 tablet twice a day",
            "frequency": "2x/day",
            "quantity_prescribed": quantity,
        }],
    }
    data.update(extra)
    return data


def _upload(client, headers, **kw):
    r = client.post("/api/v1/prescriptions", json=_payload(**kw), headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_upload_creates_pending_prescription(client, patient_headers,
                                             make_medication):
    med = make_medication(stock=50)
    rx = _upload(client, patient_headers, med_id=med.id)
    assert re.match(r"^RX-\d{8}-[A-Z0-9]{8}$", rx["prescription_number"])
    assert rx["status"] == "pending"
    assert rx["items"][0]["remaining_quantity"] == 10
    assert rx["fill_percentage"] == 0.0


def test_refills_are_capped(client, patient_headers):
    r = client.post("/api/v1/prescriptions",
                    json=_payload(refills_allowed=13),
                    headers=patient_headers)
    assert r.status_code == 422
    assert "refills_allowed" in r.json()["errors"]


def test_update_only_while_pending(client, patient_headers, pharmacist_headers):
    rx = _upload(client, patient_headers)
    r = client.put(f"/api/v1/prescriptions/{rx['id']}",
                   json={"diagnosis": "Sinusitis"},
                   headers=patient_headers)
    assert r.status_code == 200
    assert r.json()["data"]["diagnosis"] == "Sinusitis"

    client.post(f"/api/v1/prescriptions/{rx['id']}/verify",
                json={},
                headers=pharmacist_headers)
    r = client.put(f"/api/v1/prescriptions/{rx['id']}",
                   json={"diagnosis": "Other"},
                   headers=patient_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Prescription cannot be modified at this stage"


def test_patient_cannot_verify(client, patient_headers):
    rx = _upload(client, patient_headers)
    r = client.post(f"/api/v1/prescriptions/{rx['id']}/verify",
                    json={},
                    headers=patient_headers)
    assert r.status_code == 403


def test_verify_then_fill_partially_and_fully(client, db, pharmacist,
                                              patient_headers, pharmacist_headers,
                                              make_medication):
    med = make_medication(stock=50)
    rx = _upload(client, patient_headers, med_id=med.id, quantity=10)
    item_id = rx["items"][0]["id"]

    r = client.post(f"/api/v1/prescriptions/{rx['id']}/verify",
                    json={"verification_notes": "Checked with doctor"},
                    headers=pharmacist_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["status"] == "verified"
    assert data["pharmacy_id"] == pharmacist.pharmacy_id

    url = f"/api/v1/prescriptions/{rx['id']}/fill"
    r = client.post(url,
                    json={"items": [{
                        "prescription_item_id": item_id,
                        "quantity_dispensed": 4
                    }]},
                    headers=pharmacist_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["prescription"]["status"] == "partially_filled"
    assert data["filled_items"][0]["quantity_dispensed"] == 4

    # capped at the remaining 6
    r = client.post(url,
                    json={"items": [{
                        "prescription_item_id": item_id,
                        "quantity_dispensed": 20
                    }]},
                    headers=pharmacist_headers)
    data = r.json()["data"]
    assert data["prescription"]["status"] == "filled"
    assert data["filled_items"][0]["quantity_dispensed"] == 6
    assert data["prescription"]["fill_percentage"] == 100.0

    db.refresh(med)
    assert med.stock == 40
    refs = {t.reference_type for t in db.query(InventoryTransaction).all()}
    assert refs == {"prescription"}
    assert db.get(Pharmacy, pharmacist.pharmacy_id).total_prescriptions_filled == 1


def test_fill_requires_verification(client, patient_headers, pharmacist_headers):
    rx = _upload(client, patient_headers)
    r = client.post(f"/api/v1/prescriptions/{rx['id']}/fill",
                    json={"items": [{
                        "prescription_item_id": rx["items"][0]["id"],
                        "quantity_dispensed": 1
                    }]},
                    headers=pharmacist_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Prescription cannot be filled at this time"


def test_substitution_uses_substitute_stock(client, db, patient_headers,
                                            pharmacist_headers, make_medication):
    original = make_medication(stock=0, name="Augmentin")
    generic = make_medication(stock=30, name="Amoxicilline Biogaran")
    rx = _upload(client, patient_headers, med_id=original.id, quantity=5)
    client.post(f"/api/v1/prescriptions/{rx['id']}/verify",
                json={},
                headers=pharmacist_headers)

    r = client.post(f"/api/v1/prescriptions/{rx['id']}/fill",
                    json={"items": [{
                        "prescription_item_id": rx["items"][0]["id"],
                        "quantity_dispensed": 5,
                        "substituted_medication_id": generic.id,
                        "substitution_reason": "Out of stock"
                    }]},
                    headers=pharmacist_headers)
    assert r.status_code == 200
    item = r.json()["data"]["prescription"]["items"][0]
    assert item["substituted_medication_id"] == generic.id

    db.refresh(generic)
    assert generic.stock == 25


def test_cancel(client, patient_headers):
    rx = _upload(client, patient_headers)
    url = f"/api/v1/prescriptions/{rx['id']}/cancel"
    r = client.post(url,
                    json={"cancellation_reason": "Duplicate upload"},
                    headers=patient_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "cancelled"

    r = client.post(url,
                    json={"cancellation_reason": "Again"},
                    headers=patient_headers)
    assert r.status_code == 400


def test_statistics_for_staff(client, patient_headers, admin_headers):
    _upload(client, patient_headers)
    _upload(client, patient_headers, is_emergency=True)

    r = client.get("/api/v1/prescriptions/statistics", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total_prescriptions"] == 2
    assert data["pending_prescriptions"] == 2
    assert data["emergency_prescriptions"] == 1

    r = client.get("/api/v1/prescriptions/statistics", headers=patient_headers)
    assert r.status_code == 403


def test_history_and_medications(client, patient_headers):
    rx = _upload(client, patient_headers)
    body = client.get("/api/v1/prescriptions/history?search=meziane",
                      headers=patient_headers).json()
    assert body["meta"]["total"] == 1

    items = client.get(f"/api/v1/prescriptions/{rx['id']}/medications",
                       headers=patient_headers).json()["data"]
    assert items[0]["medication_name"] == "Augmentin"


def test_update_rejects_null_required_fields(client, patient_headers):
    rx = _upload(client, patient_headers)
    r = client.put(f"/api/v1/prescriptions/{rx['id']}",
                   json={"doctor_name": None},
                   headers=patient_headers)
    assert r.status_code == 422
    assert r.json()["errors"]["doctor_name"] == [
        "The doctor_name field may not be null."
    ]


def test_update_keeps_expiry_after_prescribed_date(client, patient_headers):
    rx = _upload(client, patient_headers)
    prescribed = date.fromisoformat(rx["prescribed_date"])
    url = f"/api/v1/prescriptions/{rx['id']}"

    r = client.put(url,
                   json={
                       "expiry_date":
                       (prescribed - timedelta(days=30)).isoformat()
                   },
                   headers=patient_headers)
    assert r.status_code == 422
    assert "expiry_date" in r.json()["errors"]

    # moving the prescribed date past the stored expiry is caught too
    r = client.put(url,
                   json={
                       "prescribed_date":
                       (prescribed + timedelta(days=60)).isoformat()
                   },
                   headers=patient_headers)
    assert r.status_code == 422

    r = client.get(url, headers=patient_headers)
    assert r.json()["data"]["expiry_date"] == rx["expiry_date"]
