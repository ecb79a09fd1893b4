"""Tests for ShoppingCart line management, totals, and discount caching."""

from datetime import UTC, datetime, timedelta

import pytest
from storefront.cart.cart import ShoppingCart
from storefront.cart.events import CartItemAdded, CartItemsPruned
from storefront.coupon.coupon import Coupon
from storefront.errors import InsufficientStock, NotFound
from storefront.product.product import Product


def _product(name="Trail Shoe", price=10.0, count_in_stock=5, **overrides):
    return Product.create(name=name, price=price, count_in_stock=count_in_stock, **overrides)


def _coupon(**overrides):
    defaults = {
        "code": "SAVE20",
        "name": "Save twenty",
        "discount_type": "fixed",
        "value": 20.0,
        "end_date": datetime.now(UTC) + timedelta(days=10),
    }
    defaults.update(overrides)
    return Coupon.create(**defaults)


@pytest.fixture()
def cart():
    return ShoppingCart.create(user_id="user-001")


class TestAddItem:
    def test_new_line_captures_effective_price(self, cart):
        product = _product(price=10.0, sale_price=8.0)
        cart.add_item(product, 2)

        assert len(cart.items) == 1
        assert cart.items[0].price == 8.0
        assert cart.items[0].quantity == 2
        assert isinstance(cart._events[-1], CartItemAdded)

    def test_same_product_and_variant_merges(self, cart):
        product = _product()
        cart.add_item(product, 1, variant_key="size-m")
        cart.add_item(product, 2, variant_key="size-m")

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_different_variant_is_a_new_line(self, cart):
        product = _product()
        cart.add_item(product, 1, variant_key="size-m")
        cart.add_item(product, 1, variant_key="size-l")

        assert len(cart.items) == 2

    def test_merge_refreshes_price(self, cart):
        product = _product(price=10.0)
        cart.add_item(product, 1)
        product.update_pricing(price=12.0)
        cart.add_item(product, 1)

        assert cart.items[0].price == 12.0

    def test_insufficient_stock_leaves_cart_unchanged(self, cart):
        product = _product(count_in_stock=2)
        with pytest.raises(InsufficientStock):
            cart.add_item(product, 3)
        assert len(cart.items) == 0

    def test_merge_beyond_stock_rejected(self, cart):
        product = _product(count_in_stock=3)
        cart.add_item(product, 2)
        with pytest.raises(InsufficientStock):
            cart.add_item(product, 2)
        assert cart.items[0].quantity == 2

    def test_missing_product(self, cart):
        with pytest.raises(NotFound):
            cart.add_item(None, 1)

    def test_inactive_product(self, cart):
        product = _product()
        product.deactivate()
        with pytest.raises(NotFound):
            cart.add_item(product, 1)


class TestUpdateAndRemove:
    def test_update_overwrites_quantity_without_repricing(self, cart):
        product = _product(price=10.0)
        cart.add_item(product, 1)
        product.update_pricing(price=15.0)

        cart.update_item_quantity(product.id, 4, available=product.count_in_stock)

        assert cart.items[0].quantity == 4
        assert cart.items[0].price == 10.0

    def test_update_zero_removes_line(self, cart):
        product = _product()
        cart.add_item(product, 1)
        cart.update_item_quantity(product.id, 0)
        assert len(cart.items) == 0

    def test_update_missing_line(self, cart):
        with pytest.raises(NotFound):
            cart.update_item_quantity("prod-missing", 1, available=10)

    def test_update_beyond_stock(self, cart):
        product = _product(count_in_stock=3)
        cart.add_item(product, 1)
        with pytest.raises(InsufficientStock):
            cart.update_item_quantity(product.id, 4, available=3)

    def test_remove_is_idempotent(self, cart):
        keep, drop = _product(name="Keep"), _product(name="Drop")
        cart.add_item(keep, 1)
        cart.add_item(drop, 1)

        cart.remove_item(drop.id)
        once = [(str(i.product_id), i.quantity) for i in cart.items]
        cart.remove_item(drop.id)
        twice = [(str(i.product_id), i.quantity) for i in cart.items]

        assert once == twice == [(str(keep.id), 1)]


class TestTotals:
    def test_derived_totals(self, cart):
        cart.add_item(_product(name="A", price=10.0), 2)
        cart.add_item(_product(name="B", price=2.5), 3)
        cart.set_shipping_method("Express", price=15.0)

        assert cart.subtotal == 27.5
        assert cart.total_items == 5
        assert cart.shipping_cost == 15.0
        assert cart.total == 42.5

    def test_shipping_defaults(self, cart):
        cart.set_shipping_method("Standard", default_estimated_days="3-5 business days")
        assert cart.shipping_cost == 0.0
        assert cart.shipping_method.estimated_days == "3-5 business days"

    def test_empty_cart(self, cart):
        assert cart.subtotal == 0.0
        assert cart.total_items == 0
        assert cart.total == 0.0


class TestCouponOnCart:
    def test_apply_caches_discount(self, cart):
        cart.add_item(_product(price=10.0), 2)
        cart.apply_coupon(_coupon())

        assert cart.coupon_code == "SAVE20"
        assert cart.coupon_discount == 20.0
        assert cart.total == 0.0

    def test_discount_recomputed_after_mutation(self, cart):
        product = _product(price=10.0)
        cart.add_item(product, 1)
        cart.apply_coupon(_coupon(discount_type="percentage", value=10))
        assert cart.coupon_discount == 1.0

        cart.add_item(product, 2)
        assert cart.coupon_discount == 3.0

        cart.remove_item(product.id)
        assert cart.coupon_discount == 0.0

    def test_remove_coupon(self, cart):
        cart.add_item(_product(), 2)
        cart.apply_coupon(_coupon())
        cart.remove_coupon()

        assert cart.coupon_id is None
        assert cart.coupon_discount == 0.0

    def test_clear_detaches_everything(self, cart):
        cart.add_item(_product(), 2)
        cart.apply_coupon(_coupon())
        cart.clear()

        assert len(cart.items) == 0
        assert cart.coupon_id is None
        assert cart.coupon_discount == 0.0


class TestPrune:
    def test_drops_missing_inactive_and_sold_out(self, cart):
        live = _product(name="Live")
        gone = _product(name="Gone")
        withdrawn = _product(name="Withdrawn")
        sold_out = _product(name="Sold Out")
        for product in (live, gone, withdrawn, sold_out):
            cart.add_item(product, 1)

        withdrawn.deactivate()
        sold_out.count_in_stock = 0

        removed = cart.prune(
            {
                str(live.id): live,
                str(gone.id): None,
                str(withdrawn.id): withdrawn,
                str(sold_out.id): sold_out,
            }
        )

        assert removed == 3
        assert [str(item.product_id) for item in cart.items] == [str(live.id)]
        assert isinstance(cart._events[-1], CartItemsPruned)

    def test_nothing_to_prune(self, cart):
        product = _product()
        cart.add_item(product, 1)
        assert cart.prune({str(product.id): product}) == 0
