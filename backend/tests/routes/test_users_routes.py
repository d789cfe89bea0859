"""Provider self-service profile endpoint."""

from fastapi import status

URL = "/api/v1/users/me/provider-profile"


def test_provider_updates_availability(client, auth_headers_provider):
    response = client.patch(URL, json={"is_available": False, "hourly_rate": 300}, headers=auth_headers_provider)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["is_available"] is False
    assert data["hourly_rate"] == 300.0


def test_coordinates_must_come_in_pairs(client, auth_headers_provider):
    response = client.patch(URL, json={"latitude": -33.9}, headers=auth_headers_provider)
    assert response.status_code == 422


def test_customer_forbidden(client, auth_headers_customer):
    response = client.patch(URL, json={"bio": "hi"}, headers=auth_headers_customer)
    assert response.status_code == status.HTTP_403_FORBIDDEN
