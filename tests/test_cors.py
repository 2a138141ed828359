"""
Tests for the CORS behaviour of the create-user function.

The function answers browsers from any origin:
1. OPTIONS preflight returns 200 with body "ok" and no JSON parsing
2. Every POST response (success or failure) carries the wildcard headers
"""
from api.errors import GatewayError
from conftest import AUTH_HEADERS, CREATE_USER_URL, valid_payload

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"


def assert_cors_headers(response):
    assert response.headers.get("Access-Control-Allow-Origin") == "*"
    assert response.headers.get("Access-Control-Allow-Headers") == ALLOW_HEADERS


def test_cors_preflight(client, gateway):
    response = client.options(
        CREATE_USER_URL,
        headers={
            "Origin": "https://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert response.status_code == 200
    assert response.text == "ok"
    assert "application/json" not in response.headers.get("content-type", "")
    assert_cors_headers(response)
    gateway.verify_token.assert_not_awaited()


def test_cors_preflight_ignores_body(client):
    """A garbage body on OPTIONS is never parsed"""
    response = client.request("OPTIONS", CREATE_USER_URL, content=b"{not json")

    assert response.status_code == 200
    assert response.text == "ok"


def test_cors_headers_on_success(client):
    response = client.post(CREATE_USER_URL, json=valid_payload(), headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert_cors_headers(response)


def test_cors_headers_on_auth_error(client):
    response = client.post(CREATE_USER_URL, json=valid_payload())

    assert response.status_code == 400
    assert_cors_headers(response)


def test_cors_headers_on_rollback_error(client, gateway):
    gateway.update_profile.side_effect = GatewayError("db down")

    response = client.post(CREATE_USER_URL, json=valid_payload(), headers=AUTH_HEADERS)

    assert response.status_code == 400
    assert_cors_headers(response)
