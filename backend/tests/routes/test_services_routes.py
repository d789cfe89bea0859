"""Catalog browsing and admin maintenance endpoints."""

from fastapi import status

BASE = "/api/v1/services"


def test_list_is_public(client, test_service):
    response = client.get(BASE)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["base_price"] == 400.0


def test_list_filters_by_province(client, test_service):
    assert client.get(BASE, params={"province": "Limpopo"}).json()["items"] == []
    assert client.get(BASE, params={"province": "Gauteng"}).json()["total"] == 1


def test_categories(client, test_service):
    assert client.get(f"{BASE}/categories").json() == [{"category": "cleaning", "service_count": 1}]


def test_detail_lists_providers(client, test_service, test_provider):
    data = client.get(f"{BASE}/{test_service.id}").json()
    assert [p["id"] for p in data["providers"]] == [test_provider.id]


def test_unknown_service(client):
    response = client.get(f"{BASE}/01HZZZZZZZZZZZZZZZZZZZZZZZ")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_nearby(client, test_service, test_provider):
    response = client.get(
        f"{BASE}/providers/nearby",
        params={"service_id": test_service.id, "latitude": -26.1076, "longitude": 28.0567},
    )
    (match,) = response.json()
    assert match["id"] == test_provider.id
    assert 9 < match["distance_km"] < 13


def test_admin_create_update_deactivate(client, auth_headers_admin):
    created = client.post(
        BASE,
        json={
            "name": "Car Valet",
            "category": "automotive",
            "base_price": 350,
            "available_provinces": ["Gauteng"],
            "add_ons": [{"name": "Engine bay", "price": 120}],
        },
        headers=auth_headers_admin,
    )
    assert created.status_code == status.HTTP_201_CREATED
    service_id = created.json()["id"]

    updated = client.put(f"{BASE}/{service_id}", json={"base_price": 375}, headers=auth_headers_admin)
    assert updated.json()["base_price"] == 375.0

    removed = client.delete(f"{BASE}/{service_id}", headers=auth_headers_admin)
    assert removed.json()["is_active"] is False
    assert client.get(f"{BASE}/{service_id}").status_code == status.HTTP_404_NOT_FOUND


def test_create_rejects_unknown_province(client, auth_headers_admin):
    response = client.post(
        BASE,
        json={"name": "X", "category": "cleaning", "base_price": 1, "available_provinces": ["Atlantis"]},
        headers=auth_headers_admin,
    )
    assert response.status_code == 422


def test_create_requires_admin(client, auth_headers_provider):
    response = client.post(
        BASE, json={"name": "X", "category": "cleaning", "base_price": 1}, headers=auth_headers_provider
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
