"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from storefront.exceptions import InvalidTransitionError
from storefront.ordering.order import Order, OrderStatus


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _place(address, items):
    return Order.place(
        user_id="cust-bdd",
        items_data=items,
        shipping_address=address,
        billing_address=address,
        payment_method="card",
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a customer places an order with:", target_fixture="order")
def order_from_table(address, datatable):
    header, *rows = datatable
    items = []
    for index, row in enumerate(rows, start=1):
        data = dict(zip(header, row, strict=True))
        items.append(
            {
                "product_id": f"prod-{index}",
                "product_name": data["product_name"],
                "quantity": int(data["quantity"]),
                "unit_price": float(data["unit_price"]),
            }
        )
    return _place(address, items)


@given("a pending order", target_fixture="order")
def pending_order(address, order_items):
    order = _place(address, order_items)
    order._events.clear()
    return order


@given("a delivered order", target_fixture="order")
def delivered_order(address, order_items):
    order = _place(address, order_items)
    for status in (OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        order.transition_to(status)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order total is {total:f}"))
def order_total(order, total):
    assert order.total_amount == total


@then(parsers.cfparse('the order status is "{status}"'))
def order_status(order, status):
    assert order.status == status


@then(parsers.cfparse('the transition is rejected from "{current}" to "{target}"'))
def transition_rejected(error, current, target):
    assert isinstance(error["exc"], InvalidTransitionError)
    assert error["exc"].current == current
    assert error["exc"].target == target


@then(parsers.cfparse('the action fails with a validation error on "{field}"'))
def validation_failed(error, field):
    assert isinstance(error["exc"], ValidationError)
    assert field in error["exc"].messages
