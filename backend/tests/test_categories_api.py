"""Tests for category listing and admin operations."""

import pytest

from app.models.shop import Category
from conftest import API, login_as


class TestListCategories:
    async def test_ordered_by_name_with_counts(self, client, seed):
        home = await seed.category("Home Decor")
        electronics = await seed.category("Electronics")
        await seed.product(electronics, name="Laptop Pro")
        await seed.product(electronics, name="Wireless Earbuds")

        response = await client.get(f"{API}/categories")

        assert response.status_code == 200
        assert response.json()["data"] == [
            {"id": electronics.id, "name": "Electronics", "product_count": 2},
            {"id": home.id, "name": "Home Decor", "product_count": 0},
        ]

    async def test_get_one(self, client, seed):
        category = await seed.category("Clothing")

        response = await client.get(f"{API}/categories/{category.id}")

        assert response.json()["data"] == {
            "id": category.id,
            "name": "Clothing",
            "product_count": 0,
        }

    async def test_get_missing(self, client):
        response = await client.get(f"{API}/categories/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Category not found"}


class TestCreateCategory:
    async def test_admin_creates(self, admin_client, seed):
        response = await admin_client.post(f"{API}/categories", json={"name": "Toys"})

        assert response.status_code == 201
        assert response.json()["data"]["name"] == "Toys"
        assert await seed.count(Category) == 1

    async def test_rejects_short_name(self, admin_client, seed):
        response = await admin_client.post(f"{API}/categories", json={"name": "T"})

        assert response.status_code == 400
        assert "name" in response.json()["details"]
        assert await seed.count(Category) == 0

    async def test_rejects_duplicate_name(self, admin_client, seed):
        await seed.category("Toys")

        response = await admin_client.post(f"{API}/categories", json={"name": "Toys"})

        assert response.status_code == 400
        assert response.json()["error"] == "Category with this name already exists"
        assert await seed.count(Category) == 1

    async def test_duplicate_check_is_case_sensitive(self, admin_client, seed):
        await seed.category("Toys")

        response = await admin_client.post(f"{API}/categories", json={"name": "toys"})

        assert response.status_code == 201

    async def test_requires_login(self, client):
        response = await client.post(f"{API}/categories", json={"name": "Toys"})
        assert response.status_code == 401

    async def test_requires_admin_role(self, customer_client, seed):
        response = await customer_client.post(f"{API}/categories", json={"name": "Toys"})

        assert response.status_code == 401
        assert await seed.count(Category) == 0


class TestUpdateCategory:
    async def test_rename(self, admin_client, seed):
        category = await seed.category("Toys")

        response = await admin_client.put(
            f"{API}/categories/{category.id}", json={"name": "Games"}
        )

        assert response.status_code == 200
        assert (await seed.get(Category, category.id)).name == "Games"

    async def test_response_includes_product_count(self, admin_client, seed):
        category = await seed.category("Toys")
        await seed.product(category, name="Spinning Top")

        response = await admin_client.put(
            f"{API}/categories/{category.id}", json={"name": "Games"}
        )

        assert response.json()["data"] == {
            "id": category.id,
            "name": "Games",
            "product_count": 1,
        }

    async def test_same_name_allowed(self, admin_client, seed):
        category = await seed.category("Toys")

        response = await admin_client.put(
            f"{API}/categories/{category.id}", json={"name": "Toys"}
        )

        assert response.status_code == 200

    async def test_taking_another_name_conflicts(self, admin_client, seed):
        await seed.category("Toys")
        games = await seed.category("Games")

        response = await admin_client.put(
            f"{API}/categories/{games.id}", json={"name": "Toys"}
        )

        assert response.status_code == 400
        assert (await seed.get(Category, games.id)).name == "Games"

    async def test_missing(self, admin_client):
        response = await admin_client.put(f"{API}/categories/999", json={"name": "Toys"})
        assert response.status_code == 404


class TestDeleteCategory:
    async def test_empty_category_removed(self, admin_client, seed):
        category = await seed.category("Toys")

        response = await admin_client.delete(f"{API}/categories/{category.id}")

        assert response.status_code == 200
        assert response.json() == {"data": {"success": True}}
        assert await seed.get(Category, category.id) is None

    @pytest.mark.parametrize("product_count, noun", [(1, "product"), (3, "products")])
    async def test_category_with_products_refused(self, admin_client, seed, product_count, noun):
        category = await seed.category("Electronics")
        for n in range(product_count):
            await seed.product(category, name=f"Gadget {n}")

        response = await admin_client.delete(f"{API}/categories/{category.id}")

        assert response.status_code == 400
        assert f"{product_count} {noun}" in response.json()["error"]
        assert await seed.get(Category, category.id) is not None

    async def test_customer_cannot_delete(self, client, seed, customer):
        category = await seed.category("Toys")

        response = await login_as(client, customer).delete(f"{API}/categories/{category.id}")

        assert response.status_code == 401
        assert await seed.get(Category, category.id) is not None
