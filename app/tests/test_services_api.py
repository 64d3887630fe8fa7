from __future__ import annotations

SERVICE = {
    "name": "Haircut",
    "description": "Wash and cut",
    "duration": 45,
    "price": 3500,
    "buffer_after": 15,
}


def test_create_and_list_services(client, auth_headers) -> None:
    resp = client.post("/services", json=SERVICE, headers=auth_headers)

    assert resp.status_code == 201
    created = resp.json()
    assert created["is_active"] is True
    assert created["buffer_after"] == 15

    listed = client.get("/services", headers=auth_headers).json()
    assert [s["id"] for s in listed] == [created["id"]]


def test_service_validation(client, auth_headers) -> None:
    too_short = dict(SERVICE, duration=10)
    too_cheap = dict(SERVICE, price=50)

    assert client.post("/services", json=too_short, headers=auth_headers).status_code == 422
    assert client.post("/services", json=too_cheap, headers=auth_headers).status_code == 422


def test_update_service_ignores_nulls_for_required_fields(client, auth_headers) -> None:
    service_id = client.post("/services", json=SERVICE, headers=auth_headers).json()["id"]

    resp = client.put(
        f"/services/{service_id}",
        json={"name": None, "price": 4000, "category": "hair"},
        headers=auth_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Haircut"
    assert body["price"] == 4000
    assert body["category"] == "hair"


def test_delete_service_is_soft(client, auth_headers) -> None:
    service_id = client.post("/services", json=SERVICE, headers=auth_headers).json()["id"]

    resp = client.delete(f"/services/{service_id}", headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert client.get("/services", headers=auth_headers).json() == []
    hidden = client.get("/services", params={"include_inactive": True}, headers=auth_headers).json()
    assert [s["id"] for s in hidden] == [service_id]
    assert client.get(f"/services/{service_id}", headers=auth_headers).status_code == 200


def test_unknown_service_is_not_found(client, auth_headers) -> None:
    resp = client.get("/services/9999", headers=auth_headers)

    assert resp.status_code == 404
    assert resp.json() == {"detail": "Service not found"}
