"""
Pytest configuration and fixtures for the create-user API tests.

The Supabase project is never contacted: the provisioning handler is built
with a mocked gateway through a dependency override.
"""
import os
import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

# Set environment variables before importing main
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
# Low limit so the 429 path can be exercised
os.environ["RATE_LIMIT_CREATE_USER"] = "3/minute"

from main import app
from api.config import SupabaseSettings
from api.gateway import IdentityCreation, Requester, RequesterProfile
from api.provisioning import UserProvisioningHandler
from api.users import get_provisioning_handler

OWNER_ID = "11111111-1111-1111-1111-111111111111"
NEW_USER_ID = "U1"
CREATE_USER_URL = "/functions/v1/create-user"
AUTH_HEADERS = {"Authorization": "Bearer valid-token"}


def valid_payload(**overrides):
    payload = {
        "email": "maria@example.com",
        "password": "Clave-Segura-123",
        "full_name": "María Pérez",
        "role": "mercaderista",
        "sede": "disbattery",
        "phone": "+58 412 0000000",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def gateway():
    """
    Mocked IdentityGateway. By default the caller is an owner and every
    external call succeeds; tests tweak return values / side effects.
    """
    gw = MagicMock()
    gw.verify_token = AsyncMock(return_value=Requester(id=OWNER_ID, email="owner@example.com"))
    gw.get_profile = AsyncMock(return_value=RequesterProfile(role="owner", sede="grupo_disbattery"))
    gw.create_identity = AsyncMock(return_value=IdentityCreation.created(NEW_USER_ID))
    gw.update_profile = AsyncMock(return_value=None)
    gw.delete_identity = AsyncMock(return_value=None)
    gw.aclose = AsyncMock(return_value=None)
    return gw


@pytest.fixture
def settings():
    return SupabaseSettings(url="https://test.supabase.co", service_role_key="test-service-role-key")


@pytest.fixture
def gateway_factory(gateway):
    return AsyncMock(return_value=gateway)


@pytest.fixture
def client(settings, gateway_factory):
    """
    Test client with the handler wired to the mocked gateway and rate
    limiting disabled.
    """
    app.dependency_overrides.clear()
    app.dependency_overrides[get_provisioning_handler] = lambda: UserProvisioningHandler(
        settings, gateway_factory=gateway_factory
    )
    app.state.limiter.enabled = False

    yield TestClient(app)

    app.state.limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def limited_client(settings, gateway_factory):
    """Same wiring as ``client`` but with rate limiting on and fresh counters."""
    app.dependency_overrides.clear()
    app.dependency_overrides[get_provisioning_handler] = lambda: UserProvisioningHandler(
        settings, gateway_factory=gateway_factory
    )
    app.state.limiter.enabled = True
    app.state.limiter.reset()

    yield TestClient(app)

    app.state.limiter.reset()
    app.dependency_overrides.clear()
