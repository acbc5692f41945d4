# tests/test_health_records.py


def _create(client, headers, **kw):
    payload = {
        "type": "lab_result",
        "title": "Blood panel",
        "record_date": "2025-03-01",
        "metadata": {"lab": "Institut Pasteur"},
    }
    payload.update(kw)
    r = client.post("/api/v1/health-records", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_crud(client, patient_headers):
    rec = _create(client, patient_headers)
    assert rec["metadata"] == {"lab": "Institut Pasteur"}

    url = f"/api/v1/health-records/{rec['id']}"
    r = client.put(url, json={"title": "Full blood count"}, headers=patient_headers)
    assert r.json()["data"]["title"] == "Full blood count"

    assert client.delete(url, headers=patient_headers).status_code == 200
    assert client.get(url, headers=patient_headers).status_code == 404


def test_list_newest_first(client, patient_headers):
    _create(client, patient_headers, title="Old", record_date="2024-01-10")
    _create(client, patient_headers, title="New", record_date="2025-06-10")
    body = client.get("/api/v1/health-records", headers=patient_headers).json()
    assert [r["title"] for r in body["data"]] == ["New", "Old"]


def test_records_are_owner_only(client, make_user, auth_headers, patient_headers):
    rec = _create(client, patient_headers)
    other = auth_headers(make_user())
    r = client.get(f"/api/v1/health-records/{rec['id']}", headers=other)
    assert r.status_code == 404


def test_update_rejects_null_title(client, patient_headers):
    rec = _create(client, patient_headers)
    url = f"/api/v1/health-records/{rec['id']}"
    r = client.put(url, json={"title": None}, headers=patient_headers)
    assert r.status_code == 422
    assert "title" in r.json()["errors"]
    r = client.get(url, headers=patient_headers)
    assert r.json()["data"]["title"] == "Blood panel"
