"""Integration tests for the public catalog endpoints via TestClient."""

import pytest

ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


@pytest.fixture()
def catalog(client):
    products = [
        {"name": "Trail Shoe", "price": 80.0, "brand": "Acme", "category": "Footwear", "is_featured": True},
        {"name": "Wool Sock", "price": 12.0, "brand": "Knit", "category": "Footwear"},
        {"name": "Camp Mug", "price": 9.5, "brand": "Acme", "category": "Kitchen", "description": "Enamel steel"},
    ]
    return {body["name"]: client.post("/products", json=body, headers=ADMIN).json()["data"]["id"] for body in products}


class TestBrowseEndpoint:
    def test_no_auth_needed(self, client, catalog):
        response = client.get("/products")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["data"]) == 3
        assert body["pagination"] == {"page": 1, "limit": 12, "total": 3, "pages": 1}

    def test_filter_and_sort(self, client, catalog):
        response = client.get("/products", params={"category": "Footwear", "sort": "price-asc"})
        assert [product["name"] for product in response.json()["data"]] == ["Wool Sock", "Trail Shoe"]

    def test_listing_carries_rating_summary(self, client, catalog):
        product = client.get("/products", params={"brand": "Knit"}).json()["data"][0]
        assert product["rating"] == 0.0
        assert product["num_reviews"] == 0
        assert product["is_featured"] is False

    def test_creating_products_still_needs_admin(self, client):
        response = client.post("/products", json={"name": "Mug", "price": 5.0}, headers={"X-User-Id": "user-001"})
        assert response.status_code == 403


class TestSearchEndpoint:
    def test_search(self, client, catalog):
        response = client.get("/products/search", params={"q": "enamel"})
        assert [product["name"] for product in response.json()["data"]] == ["Camp Mug"]

    def test_blank_query(self, client, catalog):
        response = client.get("/products/search", params={"q": " "})
        assert response.status_code == 400
        assert response.json()["error"] == "Search query is required"


class TestSingleProductEndpoints:
    def test_featured(self, client, catalog):
        response = client.get("/products/featured")
        assert [product["name"] for product in response.json()["data"]] == ["Trail Shoe"]

    def test_by_id(self, client, catalog):
        response = client.get(f"/products/{catalog['Camp Mug']}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["description"] == "Enamel steel"
        assert data["reviews"] == []
        assert data["variants"] == []

    def test_by_slug(self, client, catalog):
        response = client.get("/products/slug/wool-sock")
        assert response.json()["data"]["id"] == catalog["Wool Sock"]

    def test_unknown_product(self, client):
        response = client.get("/products/missing")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Product not found"}
