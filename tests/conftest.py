import pytest
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
SERVICE_ROOT = os.path.dirname(CURRENT_DIR)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

# Must be set before storefront.config is imported anywhere
os.environ.setdefault("STORAGE_BACKEND", "memory")

from storefront.application.use_cases.catalog import CatalogStore
from storefront.application.use_cases.identity import IdentityStore
from storefront.config import settings
from storefront.infrastructure.repositories import StateRepository
from storefront.infrastructure.storage import InMemoryKeyValueStore
from storefront.interfaces.http.ratelimit import limiter


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """No artificial delays, no random payment failures, no rate limiting"""
    monkeypatch.setattr(settings, "PAYMENT_PROCESSING_SECONDS", 0.0)
    monkeypatch.setattr(settings, "PAYMENT_FAILURE_RATE", 0.0)
    monkeypatch.setattr(settings, "URL_VALIDATION_SECONDS", 0.0)
    monkeypatch.setattr(settings, "SEED_CATALOG", True)
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def repo(kv):
    return StateRepository(kv)


@pytest.fixture
def identity(repo):
    return IdentityStore(repo)


@pytest.fixture
def catalog(repo, identity):
    return CatalogStore(repo)


@pytest.fixture
def admin(repo, identity):
    return repo.get_user(settings.ADMIN_EMAIL).to_session()


@pytest.fixture
def make_user(identity):
    """Registers a user; the new user becomes the current session."""
    def _make(name="Student", email="student@example.com", role="student"):
        return identity.register(name, email, "secret123", role)
    return _make
