"""
Pytest configuration and shared fixtures for OpenShelf tests.

This module provides shared fixtures and test configuration including:
- Deterministic principals for every role
- A manual clock starting at the beginning of a UTC day
- Pure GlobalState values with rosters populated
- A CatalogService over memory storage
- Flask app and test client bound to that service
"""

import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Set up test environment before any imports
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("OPENSHELF_SUPER_ADMIN", None)

from clock import SECONDS_PER_DAY, ManualClock  # noqa: E402
from config import CatalogConfig  # noqa: E402
from governance_state import add_admin, add_curator, initialize_state  # noqa: E402
from monitoring.metrics import MetricsCollector  # noqa: E402
from principal import Principal  # noqa: E402
from rate_limiter import RateLimitConfig  # noqa: E402
from storage.memory import MemoryStorage  # noqa: E402

# Start of a UTC day, so daily-cap tests never straddle midnight
START_TIME = 19_700 * SECONDS_PER_DAY

CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
CID_V1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


def make_principal(n: int) -> Principal:
    """Deterministic non-zero principal."""
    return Principal(bytes([n]) * 32)


@pytest.fixture
def super_admin():
    return make_principal(1)


@pytest.fixture
def admin_a():
    return make_principal(2)


@pytest.fixture
def admin_b():
    return make_principal(3)


@pytest.fixture
def admin_c():
    return make_principal(4)


@pytest.fixture
def curator():
    return make_principal(5)


@pytest.fixture
def other_curator():
    return make_principal(6)


@pytest.fixture
def outsider():
    return make_principal(7)


@pytest.fixture
def candidate():
    return make_principal(8)


@pytest.fixture
def clock():
    return ManualClock(start=START_TIME)


@pytest.fixture
def config(super_admin):
    return CatalogConfig(
        super_admin=super_admin,
        rate_limit=RateLimitConfig(cooldown_seconds=60, daily_cap=50),
        storage_backend="memory",
    )


@pytest.fixture
def state(super_admin):
    """Freshly initialized GlobalState."""
    return initialize_state(None, super_admin, super_admin)


@pytest.fixture
def governed_state(state, super_admin, admin_a, admin_b, curator):
    """GlobalState with two admins and one curator."""
    state = add_admin(state, super_admin, admin_a)
    state = add_admin(state, super_admin, admin_b)
    return add_curator(state, super_admin, curator)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def service(storage, clock, config, metrics):
    """Uninitialized CatalogService over memory storage."""
    from catalog_service import CatalogService

    return CatalogService(storage=storage, clock=clock, config=config, metrics=metrics)


@pytest.fixture
def initialized_service(service, super_admin, admin_a, admin_b, curator):
    """Initialized service with two admins and one curator."""
    service.initialize(super_admin)
    service.add_admin(super_admin, admin_a)
    service.add_admin(super_admin, admin_b)
    service.add_curator(super_admin, curator)
    return service


@pytest.fixture
def flask_app(service):
    """Flask test app bound to the fixture service."""
    from api import create_app

    app = create_app(service)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(flask_app):
    """Flask test client."""
    return flask_app.test_client()


def auth(principal: Principal) -> dict[str, str]:
    """Caller header for API requests."""
    return {"X-Principal": principal.to_hex()}
