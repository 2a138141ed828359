# tests/test_observability_middleware.py
"""
Tests for observability middleware.
"""
from conftest import AUTH_HEADERS, CREATE_USER_URL, valid_payload


def test_middleware_adds_request_id_header(client):
    """Test that middleware adds X-Request-ID header to response"""
    response = client.get("/")

    assert "X-Request-ID" in response.headers
    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 36
    assert request_id.count('-') == 4


def test_middleware_reuses_incoming_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "req-from-gateway"})

    assert response.headers["X-Request-ID"] == "req-from-gateway"


def test_middleware_adds_response_time_header(client):
    """Test that middleware adds X-Response-Time header to response"""
    response = client.get("/")

    response_time = response.headers["X-Response-Time"]
    assert response_time.endswith("ms")
    assert float(response_time[:-2]) >= 0


def test_middleware_unique_request_ids(client):
    response1 = client.get("/")
    response2 = client.get("/")

    assert response1.headers["X-Request-ID"] != response2.headers["X-Request-ID"]


def test_middleware_on_create_user_errors(client):
    """Failures of the handler still go through the middleware"""
    response = client.post(CREATE_USER_URL, json=valid_payload())

    assert response.status_code == 400
    assert "X-Request-ID" in response.headers


def test_middleware_on_preflight(client):
    response = client.options(CREATE_USER_URL)

    assert response.status_code == 200
    assert "X-Response-Time" in response.headers


def test_middleware_on_success(client):
    response = client.post(CREATE_USER_URL, json=valid_payload(), headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
