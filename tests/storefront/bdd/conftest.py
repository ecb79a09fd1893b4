"""Shared BDD fixtures and step definitions for the storefront."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import InvalidOperationError, ValidationError
from pytest_bdd import given, parsers, then, when
from storefront.cart.cart import ShoppingCart
from storefront.cart.items import AddToCart
from storefront.coupon.coupon import Coupon
from storefront.coupon.management import CreateCoupon
from storefront.order.cancellation import CancelOrder
from storefront.order.order import Order
from storefront.order.placement import PlaceOrder
from storefront.product.management import AdjustStock
from storefront.product.product import Product


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "user-001"


@pytest.fixture()
def catalog():
    """Product ids by name, filled by the Given steps."""
    return {}


@pytest.fixture()
def error():
    """Container for the exception captured by a When step."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price:f} with {count:d} in stock'))
def _(make_product, catalog, name, price, count):
    catalog[name] = make_product(name=name, price=price, count_in_stock=count).id


@given(parsers.cfparse('the customer has {quantity:d} of "{name}" in the cart'))
def _(catalog, customer_id, quantity, name):
    _process(AddToCart(user_id=customer_id, product_id=catalog[name], quantity=quantity))


@given(parsers.cfparse('a fixed coupon "{code}" worth {value:f} with a minimum of {minimum:f}'))
def _(code, value, minimum):
    _process(
        CreateCoupon(
            code=code,
            name=code,
            discount_type="fixed",
            value=value,
            min_amount=minimum,
            end_date=datetime.now(UTC) + timedelta(days=30),
        )
    )


@given(parsers.cfparse('a percentage coupon "{code}" worth {value:d} capped at {cap:f}'))
def _(code, value, cap):
    _process(
        CreateCoupon(
            code=code,
            name=code,
            discount_type="percentage",
            value=float(value),
            max_discount=cap,
            end_date=datetime.now(UTC) + timedelta(days=30),
        )
    )


def _checkout(customer_id, address, error, coupon_code=None):
    command = PlaceOrder(
        user_id=customer_id,
        shipping_address=json.dumps(address),
        payment_method="stripe",
        coupon_code=coupon_code,
    )
    try:
        return _process(command)
    except ValidationError as exc:
        error["exc"] = exc
        return None


@given("the customer checks out", target_fixture="order")
@when("the customer checks out", target_fixture="order")
def _(customer_id, address, error):
    return _checkout(customer_id, address, error)


@given(parsers.cfparse('the customer checks out with coupon "{code}"'), target_fixture="order")
@when(parsers.cfparse('the customer checks out with coupon "{code}"'), target_fixture="order")
def _(customer_id, address, error, code):
    return _checkout(customer_id, address, error, coupon_code=code)


def _cancel(order, requested_by, error):
    try:
        _process(CancelOrder(order_id=order.id, requested_by=requested_by))
    except (ValidationError, InvalidOperationError) as exc:
        error["exc"] = exc


@given("the customer cancels the order")
@when("the customer cancels the order")
def _(order, customer_id, error):
    _cancel(order, customer_id, error)


@given(parsers.cfparse('"{name}" has only {count:d} left'))
def _(catalog, name, count):
    product = current_domain.repository_for(Product).get(catalog[name])
    _process(AdjustStock(product_id=product.id, delta=count - product.count_in_stock))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is "{status}"'))
def _(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status


@then(parsers.cfparse('"{name}" has {count:d} in stock'))
def _(catalog, name, count):
    assert current_domain.repository_for(Product).get(catalog[name]).count_in_stock == count


@then(parsers.cfparse('coupon "{code}" has {uses:d} uses'))
def _(code, uses):
    assert current_domain.repository_for(Coupon).find_by_code(code).current_uses == uses


@then("the customer's cart is empty")
def _(customer_id):
    cart = current_domain.repository_for(ShoppingCart).for_user(customer_id)
    assert len(cart.items) == 0
