"""Application tests for turning a cart into an order."""

import json
import re

import pytest
from protean import current_domain
from storefront.cart.cart import ShoppingCart
from storefront.cart.coupons import ApplyCouponToCart
from storefront.cart.items import AddToCart
from storefront.cart.management import SetShippingMethod
from storefront.coupon.coupon import Coupon
from storefront.errors import EmptyCart, InsufficientStock, InvalidCoupon, ProductGone
from storefront.order import placement
from storefront.order.order import Order
from storefront.order.placement import PlaceOrder
from storefront.product.management import UpdateProductPricing
from storefront.product.product import Product

USER = "user-001"


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _place(address, user_id=USER, **kwargs):
    return _process(PlaceOrder(user_id=user_id, shipping_address=json.dumps(address), payment_method="stripe", **kwargs))


class TestPlaceOrder:
    def test_creates_pending_order(self, make_product, checkout):
        product = make_product(name="Lamp", price=10.0, count_in_stock=5)
        order = checkout(USER, [(product, 2)])

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.status == "pending"
        assert re.fullmatch(r"ORD\d{6}\d{4}", stored.order_number)
        assert stored.items[0].name == "Lamp"
        assert stored.items[0].quantity == 2
        assert stored.totals.subtotal == 20.0
        assert stored.totals.grand_total == 20.0
        assert stored.payment.provider == "stripe"
        assert stored.payment.status == "pending"
        assert stored.payment.currency == "USD"
        assert [entry.message for entry in stored.sorted_timeline()] == ["Order created"]

    def test_billing_defaults_to_shipping(self, make_product, checkout, address):
        order = checkout(USER, [(make_product(), 1)])
        assert order.billing_address.city == address["city"]

    def test_decrements_stock(self, make_product, checkout):
        product = make_product(count_in_stock=5)
        checkout(USER, [(product, 3)])
        assert current_domain.repository_for(Product).get(product.id).count_in_stock == 2

    def test_clears_cart(self, make_product, checkout):
        checkout(USER, [(make_product(), 1)])
        cart = current_domain.repository_for(ShoppingCart).for_user(USER)
        assert len(cart.items) == 0

    def test_copies_shipping_method(self, make_product, address):
        product = make_product(price=10.0)
        _process(AddToCart(user_id=USER, product_id=product.id, quantity=1))
        _process(SetShippingMethod(user_id=USER, name="Express", price=15.0, estimated_days="1-2 business days"))

        order = _place(address)

        assert order.shipping.name == "Express"
        assert order.totals.shipping == 15.0
        assert order.totals.grand_total == 25.0

    def test_empty_cart(self, address):
        with pytest.raises(EmptyCart) as exc:
            _place(address)
        assert exc.value.messages["cart"] == ["Cart is empty"]

    def test_product_deleted_after_adding(self, make_product, address):
        product = make_product()
        _process(AddToCart(user_id=USER, product_id=product.id, quantity=1))
        repo = current_domain.repository_for(Product)
        repo._dao.delete(repo.get(product.id))

        with pytest.raises(ProductGone) as exc:
            _place(address)
        assert exc.value.messages["items"] == [f"Product {product.id} no longer exists"]
        assert current_domain.repository_for(Order)._dao.query.all().total == 0

    def test_stock_dropped_after_adding(self, make_product, address):
        product = make_product(name="Desk", count_in_stock=3)
        _process(AddToCart(user_id=USER, product_id=product.id, quantity=3))
        current_domain.repository_for(Product).decrement_stock(product.id, 2)

        with pytest.raises(InsufficientStock) as exc:
            _place(address)
        assert exc.value.messages["items"] == ["Insufficient stock for Desk. Available: 1"]

    def test_order_numbers_are_distinct(self, make_product, checkout):
        product = make_product(count_in_stock=10)
        first = checkout("user-a", [(product, 1)])
        second = checkout("user-b", [(product, 1)])

        assert first.order_number != second.order_number
        assert int(second.order_number[-4:]) == int(first.order_number[-4:]) + 1


class TestSnapshot:
    def test_price_change_does_not_touch_placed_order(self, make_product, checkout):
        product = make_product(price=10.0)
        order = checkout(USER, [(product, 1)])

        _process(UpdateProductPricing(product_id=product.id, price=99.0))

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.items[0].price == 10.0
        assert stored.totals.grand_total == 10.0

    def test_uses_sale_price(self, make_product, checkout):
        product = make_product(price=10.0, sale_price=8.0)
        order = checkout(USER, [(product, 2)])
        assert order.totals.subtotal == 16.0


class TestPlacementWithCoupon:
    def test_fixed_coupon_covers_whole_subtotal(self, make_product, make_coupon, checkout):
        product = make_product(price=10.0, count_in_stock=5)
        make_coupon(code="SAVE20", value=20.0, min_amount=15.0)

        order = checkout(USER, [(product, 2)], coupon_code="SAVE20")

        assert order.totals.subtotal == 20.0
        assert order.totals.discount == 20.0
        assert order.totals.grand_total == 0.0
        assert order.coupon_code == "SAVE20"

    def test_records_coupon_use(self, make_product, make_coupon, checkout):
        coupon = make_coupon(value=5.0)
        checkout(USER, [(make_product(price=10.0), 2)], coupon_code="save20")

        stored = current_domain.repository_for(Coupon).get(coupon.id)
        assert stored.current_uses == 1
        assert stored.uses_by(USER) == 1

    def test_falls_back_to_cart_coupon(self, make_product, make_coupon, address):
        product = make_product(price=50.0)
        make_coupon(code="PCT10", discount_type="percentage", value=10.0)
        _process(AddToCart(user_id=USER, product_id=product.id, quantity=1))
        _process(ApplyCouponToCart(user_id=USER, coupon_code="PCT10"))

        order = _place(address)

        assert order.coupon_code == "PCT10"
        assert order.totals.discount == 5.0
        assert order.totals.grand_total == 45.0

    def test_second_use_over_user_limit(self, make_product, make_coupon, checkout):
        product = make_product(price=10.0, count_in_stock=10)
        make_coupon(value=5.0)
        checkout(USER, [(product, 1)], coupon_code="SAVE20")

        with pytest.raises(InvalidCoupon) as exc:
            checkout(USER, [(product, 1)], coupon_code="SAVE20")
        assert exc.value.messages["coupon_code"] == ["You have already used this coupon"]

    def test_unknown_coupon_rejects_order(self, make_product, checkout):
        product = make_product(count_in_stock=5)
        with pytest.raises(InvalidCoupon):
            checkout(USER, [(product, 1)], coupon_code="GHOST")

        assert current_domain.repository_for(Order)._dao.query.all().total == 0


def _add_variant_lines(product, quantities):
    for variant_key, quantity in quantities.items():
        _process(AddToCart(user_id=USER, product_id=product.id, quantity=quantity, variant_key=variant_key))


class TestVariantLinesShareStock:
    def test_total_across_variants_is_checked(self, make_product, address):
        product = make_product(name="Tee", count_in_stock=3)
        _add_variant_lines(product, {"S": 2, "M": 2})

        with pytest.raises(InsufficientStock) as exc:
            _place(address)

        assert exc.value.messages["items"] == ["Insufficient stock for Tee. Available: 3"]
        assert current_domain.repository_for(Product).get(product.id).count_in_stock == 3

    def test_total_within_stock_places_both_lines(self, make_product, address):
        product = make_product(count_in_stock=4)
        _add_variant_lines(product, {"S": 2, "M": 2})

        order = _place(address)

        assert sorted(item.variant_key for item in order.items) == ["M", "S"]
        assert current_domain.repository_for(Product).get(product.id).count_in_stock == 0


class TestPlacementIsAllOrNothing:
    def _assert_nothing_changed(self, product, coupon, stock):
        assert current_domain.repository_for(Product).get(product.id).count_in_stock == stock
        assert current_domain.repository_for(Coupon).get(coupon.id).current_uses == 0
        assert current_domain.repository_for(Order)._dao.query.all().total == 0
        assert len(current_domain.repository_for(ShoppingCart).for_user(USER).items) == 2

    def test_stock_lost_after_order_is_recorded(self, make_product, make_coupon, address, monkeypatch):
        product = make_product(name="Tee", price=10.0, count_in_stock=4)
        coupon = make_coupon(value=5.0)
        _add_variant_lines(product, {"S": 2, "M": 2})

        # Another buyer takes a unit inside the same transaction, after validation
        draw = placement.next_order_number

        def draw_then_sell_one(*args, **kwargs):
            number = draw(*args, **kwargs)
            current_domain.repository_for(Product).decrement_stock(product.id, 1)
            return number

        monkeypatch.setattr(placement, "next_order_number", draw_then_sell_one)

        with pytest.raises(InsufficientStock) as exc:
            _place(address, coupon_code="SAVE20")

        assert exc.value.messages["quantity"] == ["Insufficient stock for Tee. Available: 1"]
        self._assert_nothing_changed(product, coupon, stock=4)

    def test_stock_committed_by_another_checkout_first(self, make_product, make_coupon, address, monkeypatch):
        product = make_product(name="Tee", price=10.0, count_in_stock=4)
        coupon = make_coupon(value=5.0)
        _add_variant_lines(product, {"S": 2, "M": 2})

        # Another checkout commits while this one is in flight. The stale commit
        # is rejected and the retried checkout sees the new count.
        draw = placement.next_order_number

        def draw_then_rival_commits(*args, **kwargs):
            number = draw(*args, **kwargs)
            dao = current_domain.repository_for(Product)._dao.outside_uow()
            rival = dao.get(product.id)
            rival.count_in_stock = 1
            dao.save(rival)
            return number

        monkeypatch.setattr(placement, "next_order_number", draw_then_rival_commits)

        with pytest.raises(InsufficientStock) as exc:
            _place(address, coupon_code="SAVE20")

        assert exc.value.messages["items"] == ["Insufficient stock for Tee. Available: 1"]
        self._assert_nothing_changed(product, coupon, stock=1)
