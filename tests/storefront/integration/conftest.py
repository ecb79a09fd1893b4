import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from storefront.api import (
    cart_router,
    catalog_router,
    coupon_router,
    order_router,
    payment_router,
    product_router,
    review_router,
)
from storefront.api.errors import register_envelope_handlers

ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(catalog_router)
    app.include_router(product_router)
    app.include_router(review_router)
    app.include_router(coupon_router)
    register_envelope_handlers(app)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def product_id(client):
    """A $10 product with ten units in stock, created through the admin API."""
    response = client.post(
        "/products",
        json={"name": "Trail Shoe", "price": 10.0, "count_in_stock": 10, "images": ["/img/shoe.png"]},
        headers=ADMIN,
    )
    assert response.status_code == 201
    return response.json()["data"]["id"]
