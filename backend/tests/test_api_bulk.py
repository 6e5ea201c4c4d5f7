from fastapi.testclient import TestClient


def item(sku, **extra):
    out = {"sku": sku, "name": f"Item {sku}", "quantity": 5, "unitPrice": 1.25}
    out.update(extra)
    return out


class TestBulkEndpoint:

    def test_bulk_create_partial_success(self, client: TestClient, manager_headers):
        response = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": [item("A-1"), item("A-2"), item("A-1")]},
            headers=manager_headers,
        )
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["successful"] == 2
        assert body["failed"] == 1
        assert body["errors"][0]["index"] == 2
        assert body["errors"][0]["reason"] == "duplicate sku"
        assert [i["sku"] for i in body["items"]] == ["A-1", "A-2"]
        assert body["message"] == "Bulk create operation completed: 2 of 3 succeeded"

    def test_bulk_update(self, client: TestClient, manager_headers):
        created = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": [item("U-1"), item("U-2")]},
            headers=manager_headers,
        ).json()["items"]

        response = client.post(
            "/api/inventory/bulk",
            json={
                "operation": "update",
                "items": [
                    {"id": created[0]["id"], "quantity": 0},
                    {"id": created[1]["id"], "unitPrice": "abc"},
                ],
            },
            headers=manager_headers,
        )
        body = response.json()
        assert (body["successful"], body["failed"]) == (1, 1)
        assert body["items"][0]["stock_status"] == "out_of_stock"
        assert body["errors"][0]["id"] == created[1]["id"]
        assert body["errors"][0]["violations"] == [{"field": "unit_price", "reason": "not_a_number"}]

    def test_bulk_delete_route(self, client: TestClient, manager_headers):
        created = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": [item("D-1"), item("D-2")]},
            headers=manager_headers,
        ).json()["items"]
        ids = [c["id"] for c in created]

        response = client.request(
            "DELETE",
            "/api/inventory/bulk",
            json={"ids": ids + ["missing"]},
            headers=manager_headers,
        )
        assert response.status_code == 200

        body = response.json()
        assert body["deleted_ids"] == ids
        assert (body["successful"], body["failed"]) == (2, 1)
        assert client.get("/api/inventory", headers=manager_headers).json()["count"] == 0

    def test_out_of_range_item_is_a_per_item_failure(self, client: TestClient, manager_headers):
        response = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": [item("O-1"), item("O-2", quantity=10**20), item("O-3")]},
            headers=manager_headers,
        )
        assert response.status_code == 200

        body = response.json()
        assert (body["successful"], body["failed"]) == (2, 1)
        assert body["errors"][0]["index"] == 1
        assert body["errors"][0]["violations"] == [{"field": "quantity", "reason": "out_of_range"}]

    def test_empty_items_returns_400(self, client: TestClient, manager_headers):
        response = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": []},
            headers=manager_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert body["details"]["message"] == "Items array is required and must not be empty"

    def test_oversized_batch_returns_400_and_writes_nothing(self, client: TestClient, manager_headers):
        items = [item(f"L-{i}") for i in range(101)]
        response = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": items},
            headers=manager_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Request too large"
        assert client.get("/api/inventory", headers=manager_headers).json()["count"] == 0

    def test_unknown_operation_returns_400(self, client: TestClient, manager_headers):
        response = client.post(
            "/api/inventory/bulk",
            json={"operation": "merge", "items": [item("X-1")]},
            headers=manager_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid operation"

    def test_viewer_forbidden(self, client: TestClient, viewer_headers):
        response = client.post(
            "/api/inventory/bulk",
            json={"operation": "create", "items": [item("V-1")]},
            headers=viewer_headers,
        )
        assert response.status_code == 403


class TestTransactionEndpoints:

    def _items(self, client, headers, *quantities):
        created = client.post(
            "/api/inventory/bulk",
            json={
                "operation": "create",
                "items": [item(f"T-{i}", quantity=q, unitPrice=2) for i, q in enumerate(quantities)],
            },
            headers=headers,
        ).json()["items"]
        return [c["id"] for c in created]

    def test_sale_returns_201(self, client: TestClient, manager_headers):
        a, b = self._items(client, manager_headers, 10, 10)

        response = client.post(
            "/api/transactions",
            json={
                "type": "sale",
                "lineItems": [{"productId": a, "quantity": 2}, {"itemId": b, "quantity": 1, "unitPrice": 5}],
                "taxRate": 0.5,
            },
            headers=manager_headers,
        )
        assert response.status_code == 201

        data = response.json()["data"]
        assert data["subtotal"] == 9.0
        assert data["tax"] == 4.5
        assert data["total"] == 13.5
        assert data["created_by"] == "Maria Manager"
        assert [line["quantity"] for line in data["lines"]] == [2, 1]

        tx_id = data["id"]
        assert client.get(f"/api/transactions/{tx_id}", headers=manager_headers).status_code == 200
        listed = client.get("/api/transactions", params={"type": "sale"}, headers=manager_headers).json()
        assert [t["id"] for t in listed["data"]] == [tx_id]

    def test_failed_line_rolls_back_posting(self, client: TestClient, manager_headers):
        a, b = self._items(client, manager_headers, 10, 1)

        response = client.post(
            "/api/transactions",
            json={"type": "sale", "lineItems": [{"itemId": a, "quantity": 3}, {"itemId": b, "quantity": 5}]},
            headers=manager_headers,
        )
        assert response.status_code == 409
        assert response.json()["details"]["itemId"] == b

        quantities = {
            i["id"]: i["quantity"]
            for i in client.get("/api/inventory", headers=manager_headers).json()["data"]
        }
        assert quantities == {a: 10, b: 1}
        assert client.get("/api/transactions", headers=manager_headers).json()["data"] == []

    def test_bad_type_returns_400(self, client: TestClient, manager_headers):
        response = client.post(
            "/api/transactions",
            json={"type": "refund", "lineItems": [{"itemId": "x", "quantity": 1}]},
            headers=manager_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid transaction data"

    def test_unknown_item_returns_404(self, client: TestClient, manager_headers):
        response = client.post(
            "/api/transactions",
            json={"type": "stock_addition", "lineItems": [{"itemId": "missing", "quantity": 1}]},
            headers=manager_headers,
        )
        assert response.status_code == 404

    def test_unknown_transaction_returns_404(self, client: TestClient, manager_headers):
        response = client.get("/api/transactions/missing", headers=manager_headers)
        assert response.status_code == 404
