from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    from storefront.payment.gateway import reset_gateway

    with storefront_bed.domain_context():
        yield

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()

    reset_gateway()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    """Create a product through its command and return the stored aggregate."""
    from storefront.product.management import CreateProduct
    from storefront.product.product import Product

    def _make(name="Trail Shoe", price=10.0, count_in_stock=10, **overrides):
        product_id = current_domain.process(
            CreateProduct(name=name, price=price, count_in_stock=count_in_stock, **overrides),
            asynchronous=False,
        )
        return current_domain.repository_for(Product).get(product_id)

    return _make


@pytest.fixture()
def make_coupon():
    """Create a coupon through its command and return the stored aggregate."""
    from storefront.coupon.coupon import Coupon
    from storefront.coupon.management import CreateCoupon

    def _make(code="SAVE20", discount_type="fixed", value=20.0, **overrides):
        defaults = {
            "name": f"{code} coupon",
            "end_date": datetime.now(UTC) + timedelta(days=30),
        }
        defaults.update(overrides)
        coupon_id = current_domain.process(
            CreateCoupon(code=code, discount_type=discount_type, value=value, **defaults),
            asynchronous=False,
        )
        return current_domain.repository_for(Coupon).get(coupon_id)

    return _make


@pytest.fixture()
def address():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address": "12 Analytical Row",
        "city": "London",
        "state": "Greater London",
        "zip_code": "N1 9GU",
        "country": "United Kingdom",
        "phone": "+44 20 7946 0000",
    }
