"""Integration tests for registration, login and the current user."""

import pytest
from tests.conftest import auth_header
from tests.factories import DEFAULT_PASSWORD


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_returns_customer_and_token(client):
    response = await client.post(
        "/api/auth/register",
        json={
            "email": "Ama@Example.com",
            "name": "Ama Mensah",
            "password": "secret123",
            "phone": "+233-24-555-0101",
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["user"]["email"] == "ama@example.com"
    assert body["user"]["role"] == "CUSTOMER"
    assert "passwordHash" not in body["user"]

    me = await client.get(
        "/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"}
    )
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Ama Mensah"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_duplicate_email_is_rejected(client, customer):
    response = await client.post(
        "/api/auth/register",
        json={"email": customer.email, "name": "Again", "password": "secret123"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_register_short_password_is_rejected(client):
    response = await client.post(
        "/api/auth/register",
        json={"email": "kofi@example.com", "name": "Kofi", "password": "123"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_with_valid_credentials(client, customer):
    response = await client.post(
        "/api/auth/login",
        json={"email": customer.email, "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["user"]["id"] == str(customer.id)
    assert body["token"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_with_wrong_password_is_401(client, customer):
    response = await client.post(
        "/api/auth/login", json={"email": customer.email, "password": "nope-nope"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_login_unknown_email_is_401(client):
    response = await client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "x"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_me_requires_token(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Access token required"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_token_for_deleted_user_is_rejected(client, db_session, customer):
    headers = auth_header(customer)
    await db_session.delete(customer)
    await db_session.commit()

    response = await client.get("/api/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"
    assert "x-request-id" in response.headers
