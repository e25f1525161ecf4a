from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from modules.core.authentication import TenantUser
from modules.encargos.models import Encargo
from modules.personas.models import Persona

SELLING_POINT = "farmacia1"
OTHER_SELLING_POINT = "farmacia2"

TEST_ACCOUNTS = {
    SELLING_POINT: {"password": "centro-pass", "display_name": "Farmacia Centro"},
    OTHER_SELLING_POINT: {"password": "norte-pass", "display_name": "Farmacia Norte"},
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _tenant_accounts(settings):
    settings.TENANT_ACCOUNTS = TEST_ACCOUNTS


@pytest.fixture(autouse=True)
def _fast_retries(settings):
    """Keep retry back-off out of the test run."""
    settings.RETRY_BASE_DELAY = 0
    settings.RETRY_MAX_DELAY = 0


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


def _client_for(selling_point: str) -> APIClient:
    client = APIClient()
    client.force_authenticate(
        user=TenantUser(
            username=selling_point,
            selling_point=selling_point,
            display_name=TEST_ACCOUNTS[selling_point]["display_name"],
        )
    )
    return client


@pytest.fixture()
def auth_client():
    """APIClient authenticated as the ``farmacia1`` selling point."""
    return _client_for(SELLING_POINT)


@pytest.fixture()
def other_client():
    """APIClient authenticated as a second, unrelated selling point."""
    return _client_for(OTHER_SELLING_POINT)


@pytest.fixture()
def today() -> date:
    return timezone.localdate()


@pytest.fixture()
def make_persona():
    def _make(**overrides) -> Persona:
        defaults = {
            "selling_point": SELLING_POINT,
            "nombre": "Ana",
            "telefono": "600111222",
        }
        defaults.update(overrides)
        persona = Persona(**defaults)
        persona.save()
        return persona

    return _make


@pytest.fixture()
def make_encargo(today):
    def _make(**overrides) -> Encargo:
        defaults = {
            "selling_point": SELLING_POINT,
            "fecha": today,
            "producto": "Ibuprofeno 600mg",
            "laboratorio": "Cinfa",
            "persona": "Ana",
            "telefono": "600111222",
            "pagado": Decimal("0.00"),
        }
        defaults.update(overrides)
        encargo = Encargo(**defaults)
        encargo.save()
        return encargo

    return _make
