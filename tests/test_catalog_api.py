"""Products, profile, feedback and bug report endpoints."""

import pytest
from factories import auth_headers, json_body, order_payload

OPERATOR = auth_headers("operator-1", "operator")
PURCHASER = auth_headers("purchaser-1", "purchaser", name="Priya")
OTHER = auth_headers("purchaser-2", "purchaser")

PRODUCT = {
    "name": "Darjeeling Tea",
    "price": 25.0,
    "unit": "250 g",
    "category": "Beverages",
    "description": "First flush",
    "stock": 40,
}


class TestProducts:
    async def test_crud(self, client):
        created = await client.post("/api/v1/products", json=PRODUCT, headers=OPERATOR)
        assert created.status_code == 201
        product = created.json()["product"]
        assert product["id"].startswith("product:")
        assert product["stock"] == 40

        listing = await client.get("/api/v1/products")
        assert [p["name"] for p in listing.json()["products"]] == ["Darjeeling Tea"]

        updated = await client.put(
            f"/api/v1/products/{product['id']}", json={"price": 27.5}, headers=OPERATOR
        )
        assert updated.status_code == 200
        assert updated.json()["product"]["price"] == 27.5
        assert updated.json()["product"]["name"] == "Darjeeling Tea"
        assert "updatedAt" in updated.json()["product"]

        deleted = await client.delete(f"/api/v1/products/{product['id']}", headers=OPERATOR)
        assert deleted.json() == {"message": "Product deleted successfully"}
        assert (await client.get("/api/v1/products")).json()["products"] == []

    async def test_writes_need_operator(self, client):
        response = await client.post("/api/v1/products", json=PRODUCT, headers=PURCHASER)
        assert response.status_code == 403

    async def test_unknown_product(self, client):
        response = await client.put("/api/v1/products/product:nope", json={"price": 1}, headers=OPERATOR)
        assert response.status_code == 404
        response = await client.delete("/api/v1/products/product:nope", headers=OPERATOR)
        assert response.status_code == 404

    async def test_negative_price_rejected(self, client):
        response = await client.post("/api/v1/products", json={**PRODUCT, "price": -1}, headers=OPERATOR)
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_FAILED"

    @pytest.mark.parametrize("price", [float("nan"), float("inf")])
    async def test_non_finite_price_rejected(self, client, price):
        body = json_body({**PRODUCT, "price": price})
        response = await client.post(
            "/api/v1/products", content=body["content"], headers={**body["headers"], **OPERATOR}
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_FAILED"

        created = await client.post("/api/v1/products", json=PRODUCT, headers=OPERATOR)
        product_id = created.json()["product"]["id"]
        body = json_body({"price": price})
        response = await client.put(
            f"/api/v1/products/{product_id}", content=body["content"], headers={**body["headers"], **OPERATOR}
        )
        assert response.status_code == 422
        listing = (await client.get("/api/v1/products")).json()["products"]
        assert [p["price"] for p in listing] == [25.0]


class TestProfile:
    async def test_get_and_rename(self, client):
        profile = (await client.get("/api/v1/profile", headers=PURCHASER)).json()["profile"]
        assert profile == {
            "id": "purchaser-1",
            "email": "",
            "name": "Priya",
            "role": "purchaser",
            "createdAt": profile["createdAt"],
        }

        renamed = await client.put("/api/v1/profile", json={"name": "Priya S"}, headers=PURCHASER)
        assert renamed.json()["profile"]["name"] == "Priya S"
        assert (await client.get("/api/v1/profile", headers=PURCHASER)).json()["profile"]["name"] == "Priya S"

    async def test_role_fixed_at_first_sight(self, client):
        await client.get("/api/v1/profile", headers=PURCHASER)

        # Same subject presenting an operator claim later keeps the stored role
        escalated = auth_headers("purchaser-1", "operator")
        profile = (await client.get("/api/v1/profile", headers=escalated)).json()["profile"]
        assert profile["role"] == "purchaser"
        assert (await client.get("/api/v1/analytics", headers=escalated)).status_code == 403

    async def test_role_cannot_be_updated(self, client):
        await client.put("/api/v1/profile", json={"name": "X", "role": "operator"}, headers=PURCHASER)
        profile = (await client.get("/api/v1/profile", headers=PURCHASER)).json()["profile"]
        assert profile["role"] == "purchaser"


class TestFeedback:
    async def _order_id(self, client):
        response = await client.post("/api/v1/orders", json=order_payload(), headers=PURCHASER)
        return response.json()["order"]["id"]

    async def test_submit(self, client):
        order_id = await self._order_id(client)
        response = await client.post(
            "/api/v1/feedback",
            json={"orderId": order_id, "rating": 5, "comment": "Quick"},
            headers=PURCHASER,
        )
        assert response.status_code == 201
        feedback = response.json()["feedback"]
        assert feedback["orderId"] == order_id
        assert feedback["userId"] == "purchaser-1"
        assert feedback["rating"] == 5

    async def test_rating_range(self, client):
        order_id = await self._order_id(client)
        response = await client.post(
            "/api/v1/feedback", json={"orderId": order_id, "rating": 6}, headers=PURCHASER
        )
        assert response.status_code == 422

    async def test_not_your_order(self, client):
        order_id = await self._order_id(client)
        response = await client.post(
            "/api/v1/feedback", json={"orderId": order_id, "rating": 3}, headers=OTHER
        )
        assert response.status_code == 403

    async def test_unknown_order(self, client):
        response = await client.post(
            "/api/v1/feedback", json={"orderId": "order:missing", "rating": 3}, headers=PURCHASER
        )
        assert response.status_code == 404


class TestBugs:
    async def test_report_and_list(self, client):
        reported = await client.post(
            "/api/v1/bugs",
            json={"title": "OTP screen blank", "description": "After refresh", "priority": "high"},
            headers=auth_headers("agent-a", "fulfillment"),
        )
        assert reported.status_code == 201
        bug = reported.json()["bug"]
        assert bug["status"] == "open"
        assert bug["priority"] == "high"

        listing = await client.get("/api/v1/bugs", headers=OPERATOR)
        assert [b["id"] for b in listing.json()["bugs"]] == [bug["id"]]

    async def test_listing_is_operator_only(self, client):
        response = await client.get("/api/v1/bugs", headers=PURCHASER)
        assert response.status_code == 403


class TestHealth:
    async def test_healthy(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["checks"]["store"] == "connected"

    async def test_unknown_route_uses_error_envelope(self, client):
        response = await client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
