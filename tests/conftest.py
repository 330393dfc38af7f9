import os
from pathlib import Path

import pytest
import pytest_asyncio


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    # Import the API package before traversal, as src/app.py does, so the
    # domain's directory walk does not load api/factory.py ahead of its package.
    import storefront.api  # noqa: F401
    from storefront.domain import storefront

    storefront.init()
    storefront.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
@pytest.fixture
def address():
    return {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "postal_code": "560001",
        "country": "IN",
    }


@pytest.fixture
def order_items():
    return [
        {"product_id": "prod-tea", "product_name": "Assam Tea", "quantity": 2, "unit_price": 250.0},
        {"product_id": "prod-mug", "product_name": "Clay Mug", "quantity": 1, "unit_price": 100.0},
    ]


@pytest.fixture
def order_data(address, order_items):
    """Keyword arguments for ``OrderLifecycleManager.create_order``."""

    def _build(**overrides):
        data = {
            "user_id": "user-001",
            "items": order_items,
            "shipping_address": address,
            "billing_address": address,
            "payment_method": "upi",
        }
        data.update(overrides)
        return data

    return _build


@pytest.fixture
def settings():
    """Settings with instant retries and a fast demo workflow."""
    from storefront.config import Settings

    return Settings(
        _env_file=None,
        delivery_backoff_base_seconds=0.0,
        delivery_backoff_cap_seconds=0.0,
        workflow_step_delays=[0.01, 0.01, 0.01, 0.01],
        push_server_key="push-test-key",
    )


@pytest_asyncio.fixture
async def services(settings):
    """A fully wired Storefront running on the test's event loop."""
    from storefront.services import Storefront

    services = Storefront(settings)
    yield services
    await services.shutdown()
