"""HTTP tests for item CRUD, stock adjustment, summary and the audit feed."""

from fastapi.testclient import TestClient


def create(client, headers, **overrides):
    body = {"sku": "API-1", "name": "Api item", "quantity": 10, "unitPrice": 2.5}
    body.update(overrides)
    return client.post("/api/inventory", json=body, headers=headers)


class TestAuth:

    def test_health_is_open(self, client: TestClient):
        assert client.get("/health").json() == {"status": "ok"}

    def test_missing_token(self, client: TestClient):
        response = client.get("/api/inventory")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_bad_token(self, client: TestClient):
        response = client.get("/api/inventory", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_viewer_cannot_write(self, client: TestClient, viewer_headers):
        response = create(client, viewer_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Manager role required"

    def test_viewer_can_read(self, client: TestClient, manager_headers, viewer_headers):
        create(client, manager_headers)
        response = client.get("/api/inventory", headers=viewer_headers)
        assert response.status_code == 200
        assert response.json()["count"] == 1


class TestItemEndpoints:

    def test_create_returns_201(self, client: TestClient, manager_headers):
        response = create(client, manager_headers, minStockLevel=3)
        assert response.status_code == 201

        data = response.json()["data"]
        assert data["sku"] == "API-1"
        assert data["unit_price"] == 2.5
        assert data["min_stock_level"] == 3
        assert data["status"] == "active"
        assert data["stock_status"] == "good_stock"

    def test_create_invalid_returns_400_with_violations(self, client: TestClient, manager_headers):
        response = client.post("/api/inventory", json={"sku": "X"}, headers=manager_headers)
        assert response.status_code == 400

        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        fields = {v["field"] for v in body["details"]["violations"]}
        assert fields == {"name", "quantity", "unit_price"}
        assert "timestamp" in body

    def test_create_duplicate_returns_409(self, client: TestClient, manager_headers):
        create(client, manager_headers)
        response = create(client, manager_headers, name="Other")

        assert response.status_code == 409
        assert response.json()["error"] == "duplicate sku"
        assert response.json()["code"] == "CONFLICT"

    def test_non_object_body_returns_400(self, client: TestClient, manager_headers):
        response = client.post("/api/inventory", json=[1, 2], headers=manager_headers)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_get_and_404(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers).json()["data"]["id"]

        assert client.get(f"/api/inventory/{item_id}", headers=manager_headers).status_code == 200

        response = client.get("/api/inventory/missing", headers=manager_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not found"

    def test_patch(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers).json()["data"]["id"]

        response = client.patch(
            f"/api/inventory/{item_id}",
            json={"name": "Renamed", "maxStockLevel": 50},
            headers=manager_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed"
        assert data["max_stock_level"] == 50
        assert data["version"] == 2

    def test_patch_sku_is_rejected(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers).json()["data"]["id"]
        response = client.patch(f"/api/inventory/{item_id}", json={"sku": "NEW"}, headers=manager_headers)
        assert response.status_code == 400
        assert response.json()["details"]["violations"] == [{"field": "sku", "reason": "immutable"}]

    def test_patch_unknown_returns_404(self, client: TestClient, manager_headers):
        response = client.patch("/api/inventory/missing", json={"name": "x"}, headers=manager_headers)
        assert response.status_code == 404

    def test_delete(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers).json()["data"]["id"]

        response = client.delete(f"/api/inventory/{item_id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"id": item_id}

        assert client.get(f"/api/inventory/{item_id}", headers=manager_headers).status_code == 404
        assert client.delete(f"/api/inventory/{item_id}", headers=manager_headers).status_code == 404

    def test_list_filters(self, client: TestClient, manager_headers):
        create(client, manager_headers, sku="F-1", categoryId="bolts")
        create(client, manager_headers, sku="F-2", categoryId="nuts")

        response = client.get("/api/inventory", params={"category_id": "bolts"}, headers=manager_headers)
        assert [i["sku"] for i in response.json()["data"]] == ["F-1"]


class TestStockEndpoints:

    def test_adjust(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers, quantity=10).json()["data"]["id"]

        response = client.post(
            f"/api/inventory/{item_id}/adjust",
            json={"delta": -4, "note": "picked"},
            headers=manager_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["quantity"] == 6

    def test_adjust_insufficient_returns_409(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers, quantity=3).json()["data"]["id"]

        response = client.post(f"/api/inventory/{item_id}/adjust", json={"delta": -5}, headers=manager_headers)
        assert response.status_code == 409

        body = response.json()
        assert body["code"] == "INSUFFICIENT_STOCK"
        assert body["details"] == {"itemId": item_id, "requested": 5, "available": 3}

        item = client.get(f"/api/inventory/{item_id}", headers=manager_headers).json()["data"]
        assert item["quantity"] == 3

    def test_adjust_zero_returns_400(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers).json()["data"]["id"]
        response = client.post(f"/api/inventory/{item_id}/adjust", json={"delta": 0}, headers=manager_headers)
        assert response.status_code == 400

    def test_adjust_beyond_column_range_returns_400(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers, quantity=10).json()["data"]["id"]

        response = client.post(f"/api/inventory/{item_id}/adjust", json={"delta": 10**20}, headers=manager_headers)
        assert response.status_code == 400
        assert response.json()["details"]["violations"] == [{"field": "delta", "reason": "out_of_range"}]

    def test_adjust_unknown_returns_404(self, client: TestClient, manager_headers):
        response = client.post("/api/inventory/missing/adjust", json={"delta": 1}, headers=manager_headers)
        assert response.status_code == 404

    def test_summary(self, client: TestClient, manager_headers):
        create(client, manager_headers, sku="S-1", quantity=0, unitPrice=1)
        create(client, manager_headers, sku="S-2", quantity=2, unitPrice=5, minStockLevel=5)

        body = client.get("/api/inventory/summary", headers=manager_headers).json()
        assert body["total_items"] == 2
        assert body["total_quantity"] == 2
        assert body["total_value"] == 10.0
        assert body["out_of_stock"] == 1
        assert body["low_stock"] == 1

    def test_audit_feed(self, client: TestClient, manager_headers):
        item_id = create(client, manager_headers).json()["data"]["id"]
        client.post(f"/api/inventory/{item_id}/adjust", json={"delta": 2}, headers=manager_headers)

        response = client.get("/api/audit-logs", params={"item_id": item_id}, headers=manager_headers)
        assert response.status_code == 200

        entries = response.json()["data"]
        assert [e["action"] for e in entries] == ["stock_in", "insert"]
        assert entries[0]["actor"] == "Maria Manager"
        assert entries[0]["delta"] == 2
