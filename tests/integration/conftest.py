"""Fixtures for HTTP API tests.

The app runs inside ``TestClient`` as a context manager so the lifespan and a
single event loop outlive individual requests; the delivery workers run on it.
"""

import time

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def storefront_services(settings):
    from storefront.services import Storefront

    return Storefront(settings)


@pytest.fixture
def client(storefront_services):
    from storefront.api import create_app

    app = create_app(storefront_services)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def create_order(client, address, order_items):
    def _create(**overrides):
        body = {
            "user_id": "user-api",
            "items": order_items,
            "shipping_address": address,
            "billing_address": address,
            "payment_method": "card",
        }
        body.update(overrides)
        response = client.post("/orders", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def wait_for():
    """Poll ``predicate`` until it holds; delivery runs on the app's event loop."""

    def _wait(predicate, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.01)
        return predicate()

    return _wait
