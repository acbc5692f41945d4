# tests/test_inventory_ledger.py
from datetime import date, timedelta
from decimal import Decimal

import pytest

from curex.core.errors import InsufficientStockError
from curex.models.inventory import InventoryTransaction
from curex.services import inventory_ledger as ledger


def _last_txn(db, med_id):
    return ledger.latest_transaction(db, med_id)


def test_stock_in_adds_quantity_and_records_cost(db, make_medication):
    med = make_medication(stock=10)
    txn = ledger.stock_in(db, med.id, 5, Decimal("12.50"), notes="delivery")
    db.commit()

    db.refresh(med)
    assert med.stock == 15
    assert txn.quantity_before == 10
    assert txn.quantity_after == 15
    assert txn.quantity_change == 5
    assert txn.total_cost == Decimal("62.50")
    assert txn.type == "in"


def test_stock_out_beyond_stock_fails(db, make_medication):
    med = make_medication(stock=3)
    with pytest.raises(InsufficientStockError) as exc:
        ledger.stock_out(db, med.id, 4)
    assert str(exc.value) == "Insufficient stock. Available: 3, Requested: 4"
    db.rollback()
    db.refresh(med)
    assert med.stock == 3


def test_stock_out_to_zero_marks_unavailable(db, make_medication):
    med = make_medication(stock=2)
    txn = ledger.stock_out(db, med.id, 2, reference_type=ledger.REF_ORDER)
    db.commit()
    db.refresh(med)
    assert med.stock == 0
    assert med.is_available is False
    assert txn.quantity_change == -2


def test_adjust_records_difference(db, make_medication):
    med = make_medication(stock=20)
    txn = ledger.adjust(db, med.id, 7, notes="count")
    db.commit()
    assert txn.quantity_change == -13
    assert txn.quantity_after == 7
    assert _last_txn(db, med.id).quantity_after == med.stock


def test_summary_counts_low_and_out_of_stock(db, make_medication):
    make_medication(stock=100, price="10.00", category="Analgesic")
    make_medication(stock=4, price="5.00", category="Analgesic")
    make_medication(stock=0, price="8.00", category="Antibiotic")

    out = ledger.summary(db)
    assert out["total_medications"] == 3
    assert out["low_stock_medications"] == 2
    assert out["out_of_stock_medications"] == 1
    assert out["total_stock_value"] == Decimal("1020.00")
    assert out["categories"]["Analgesic"]["count"] == 2


def test_report_groups_by_type_and_medication(db, make_medication):
    med = make_medication(stock=10)
    ledger.stock_in(db, med.id, 10, Decimal("2.00"))
    ledger.stock_out(db, med.id, 4)
    ledger.adjust(db, med.id, 15, notes="recount")
    db.commit()

    out = ledger.report(db, date.today() - timedelta(days=1), date.today())
    assert out["summary"]["total_transactions"] == 3
    assert out["summary"]["stock_in"] == 10
    assert out["summary"]["stock_out"] == 4
    assert out["summary"]["adjustments"] == 1
    assert out["by_type"]["in"]["total_cost"] == Decimal("20.00")
    assert out["by_medication"][0]["net_quantity_change"] == 5


# ---------- HTTP ----------


def test_add_stock_endpoint(client, db, pharmacist_headers, make_medication):
    med = make_medication(stock=1)
    r = client.post("/api/v1/inventory/add-stock",
                    json={
                        "medication_id": med.id,
                        "quantity": 9,
                        "unit_cost": "3.00",
                        "supplier": "Biopharm"
                    },
                    headers=pharmacist_headers)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["data"]["quantity_after"] == 10
    db.refresh(med)
    assert med.stock == 10


def test_remove_stock_endpoint_insufficient(client, pharmacist_headers,
                                            make_medication):
    med = make_medication(stock=2)
    r = client.post("/api/v1/inventory/remove-stock",
                    json={
                        "medication_id": med.id,
                        "quantity": 5
                    },
                    headers=pharmacist_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Insufficient stock. Available: 2, Requested: 5"


def test_adjust_stock_requires_notes(client, pharmacist_headers, make_medication):
    med = make_medication(stock=2)
    r = client.post("/api/v1/inventory/adjust-stock",
                    json={
                        "medication_id": med.id,
                        "new_quantity": 5
                    },
                    headers=pharmacist_headers)
    assert r.status_code == 422
    assert "notes" in r.json()["errors"]


def test_inventory_is_staff_only(client, patient_headers):
    r = client.get("/api/v1/inventory/summary", headers=patient_headers)
    assert r.status_code == 403
    assert r.json()["success"] is False


def test_transactions_are_scoped_to_pharmacy(client, db, pharmacist,
                                             pharmacist_headers, make_medication):
    med = make_medication(stock=5)
    ledger.stock_in(db, med.id, 1, pharmacy_id=pharmacist.pharmacy_id)
    ledger.stock_in(db, med.id, 2, pharmacy_id=None)
    db.commit()

    r = client.get("/api/v1/inventory/transactions", headers=pharmacist_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["quantity_change"] == 1


def test_low_stock_endpoint(client, pharmacist_headers, make_medication):
    make_medication(stock=3, name="Low")
    make_medication(stock=300, name="Plenty")
    r = client.get("/api/v1/inventory/low-stock?threshold=10",
                   headers=pharmacist_headers)
    assert r.status_code == 200
    assert [m["name"] for m in r.json()["data"]] == ["Low"]


def test_report_export_is_xlsx(client, db, admin_headers, make_medication):
    med = make_medication(stock=5)
    ledger.stock_in(db, med.id, 5)
    db.commit()

    r = client.get("/api/v1/inventory/reports/export", headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    # xlsx is a zip archive
    assert r.content[:2] == b"PK"


def test_ledger_rows_explain_current_stock(db, make_medication):
    med = make_medication(stock=0)
    ledger.stock_in(db, med.id, 30)
    ledger.stock_out(db, med.id, 12)
    ledger.stock_in(db, med.id, 4)
    db.commit()
    db.refresh(med)

    rows = (db.query(InventoryTransaction).filter(
        InventoryTransaction.medication_id == med.id).all())
    assert sum(r.quantity_change for r in rows) == med.stock == 22


def test_lock_medications_takes_rows_in_id_order(db, make_medication,
                                                 monkeypatch):
    a, b, c = (make_medication() for _ in range(3))
    seen = []
    real = ledger.lock_medication

    def _spy(session, medication_id):
        seen.append(medication_id)
        return real(session, medication_id)

    monkeypatch.setattr(ledger, "lock_medication", _spy)
    locked = ledger.lock_medications(db, [c.id, a.id, c.id, b.id])
    assert seen == [a.id, b.id, c.id]
    assert set(locked) == {a.id, b.id, c.id}
