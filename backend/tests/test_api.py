"""HTTP tests for catalog, customers, sale sessions and sale history."""
from __future__ import annotations

from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from backend.salepoint.models.catalog import Product
from backend.salepoint.models.customer import Customer

API = "/api/v1"


# ─── Helpers ─────────────────────────────────────────────────────────────────


def _open(client: TestClient) -> str:
    resp = client.post(f"{API}/sessions")
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _act(client: TestClient, session_id: str, **action: object) -> dict:
    resp = client.post(f"{API}/sessions/{session_id}/actions", json=action)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _scenario(client: TestClient, product_a: Product, product_b: Product) -> str:
    """2 x A + 1 x B, 10% off: 253.8 due."""
    session_id = _open(client)
    _act(client, session_id, type="add_item", product_id=str(product_a.id))
    _act(client, session_id, type="set_quantity", product_id=str(product_a.id), quantity=2)
    _act(client, session_id, type="add_item", product_id=str(product_b.id))
    _act(client, session_id, type="set_discount", discount={"type": "percentage", "value": "10"})
    return session_id


# ─── TestCatalogApi ──────────────────────────────────────────────────────────


class TestCatalogApi:
    def test_search_and_filter(self, client: TestClient, product_a: Product, product_b: Product) -> None:
        resp = client.get(f"{API}/catalog/products")
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json()] == ["Product A", "Product B"]

        resp = client.get(f"{API}/catalog/products", params={"category": "Exempt"})
        assert [p["name"] for p in resp.json()] == ["Product B"]

        resp = client.get(f"{API}/catalog/products", params={"q": "a-0"})
        assert [p["sku"] for p in resp.json()] == ["A-001"]

    def test_categories(self, client: TestClient, product_a: Product, product_b: Product) -> None:
        resp = client.get(f"{API}/catalog/categories")
        assert resp.json() == ["Exempt", "Taxed"]

    def test_scan(self, client: TestClient, product_a: Product) -> None:
        resp = client.post(f"{API}/catalog/scan", json={"barcode": "1000001"})
        assert resp.status_code == 200
        assert resp.json()["id"] == str(product_a.id)

        resp = client.post(f"{API}/catalog/scan", json={"barcode": "999"})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Product not found"


# ─── TestCustomersApi ────────────────────────────────────────────────────────


class TestCustomersApi:
    def test_search_needs_two_characters(self, client: TestClient, customer: Customer) -> None:
        assert client.get(f"{API}/customers/", params={"q": "j"}).json() == []

        resp = client.get(f"{API}/customers/", params={"q": "wanj"})
        assert [c["name"] for c in resp.json()] == ["Jane Wanjiku"]

        resp = client.get(f"{API}/customers/", params={"q": "0712"})
        assert len(resp.json()) == 1

    def test_create(self, client: TestClient) -> None:
        resp = client.post(f"{API}/customers/", json={"name": "Otieno Traders", "phone": "0722000111"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Otieno Traders"
        assert body["loyalty_points"] == 0

    def test_create_requires_name_and_phone(self, client: TestClient) -> None:
        resp = client.post(f"{API}/customers/", json={"name": "  ", "phone": "0722000111"})
        assert resp.status_code == 422
        resp = client.post(f"{API}/customers/", json={"name": "No Phone"})
        assert resp.status_code == 422


# ─── TestSessionsApi ─────────────────────────────────────────────────────────


class TestSessionsApi:
    def test_split_payment_sale(
        self, client: TestClient, db: Session, product_a: Product, product_b: Product
    ) -> None:
        session_id = _scenario(client, product_a, product_b)

        body = _act(client, session_id, type="add_payment", method="cash", amount="200")
        assert body["currency"] == "KSh"
        assert Decimal(body["totals"]["total"]) == Decimal("253.8")
        assert Decimal(body["reconciliation"]["remaining"]) == Decimal("53.8")
        assert body["can_commit"] is False

        resp = client.post(f"{API}/sessions/{session_id}/actions", json={"type": "commit"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "under_payment"

        body = _act(client, session_id, type="add_payment", method="card", reference="REF1")
        assert Decimal(body["payments"][1]["amount"]) == Decimal("53.8")
        assert body["can_commit"] is True

        body = _act(client, session_id, type="commit")
        assert body["state"] == "committed"
        assert body["cart"]["lines"] == []
        sale = body["last_sale"]
        assert sale["receipt_number"].endswith("-000001")
        assert Decimal(sale["total"]) == Decimal("253.8")

        db.expire_all()
        assert db.get(Product, product_a.id).current_stock == 8

        resp = client.get(f"{API}/sales/")
        assert [s["receipt_number"] for s in resp.json()] == [sale["receipt_number"]]
        assert resp.json()[0]["payment_methods"] == ["card", "cash"]

        resp = client.get(f"{API}/sales/summary")
        assert resp.json() == {
            "currency": "KSh",
            "sale_count": 1,
            "total_revenue": "253.8000",
            "average_sale": "253.8000",
        }

        resp = client.get(f"{API}/sales/{sale['id']}")
        assert resp.status_code == 200
        assert [line["quantity"] for line in resp.json()["lines"]] == [2, 1]

    def test_commit_failure_is_conflict_and_retryable(
        self, client: TestClient, db: Session, product_a: Product, product_b: Product
    ) -> None:
        session_id = _scenario(client, product_a, product_b)
        _act(client, session_id, type="add_payment", method="cash")
        db.get(Product, product_a.id).current_stock = 1
        db.commit()

        resp = client.post(f"{API}/sessions/{session_id}/actions", json={"type": "commit"})
        assert resp.status_code == 409
        detail = resp.json()["detail"]
        assert detail["code"] == "stock_mutation_failed"
        assert detail["retryable"] is True

        body = client.get(f"{API}/sessions/{session_id}").json()
        assert body["state"] == "failed"
        assert body["last_error"]["code"] == "stock_mutation_failed"
        assert len(body["cart"]["lines"]) == 2
        assert len(body["payments"]) == 1

    def test_error_status_codes(self, client: TestClient, product_c: Product) -> None:
        session_id = _open(client)
        url = f"{API}/sessions/{session_id}/actions"

        resp = client.post(url, json={"type": "add_item", "product_id": "00000000-0000-0000-0000-000000000000"})
        assert resp.status_code == 404

        _act(client, session_id, type="add_item", product_id=str(product_c.id))
        resp = client.post(url, json={"type": "add_item", "product_id": str(product_c.id)})
        assert resp.status_code == 409
        assert resp.json()["detail"]["available"] == 1

        resp = client.post(url, json={"type": "set_discount", "discount": {"type": "amount", "value": "-3"}})
        assert resp.status_code == 400
        assert resp.json()["detail"]["code"] == "invalid_discount"

        resp = client.post(url, json={"type": "teleport"})
        assert resp.status_code == 422

        resp = client.get(f"{API}/sessions/00000000-0000-0000-0000-000000000000")
        assert resp.status_code == 404

    def test_park_and_resume(self, client: TestClient, product_a: Product, product_b: Product) -> None:
        session_id = _open(client)
        _act(client, session_id, type="add_item", product_id=str(product_a.id))
        _act(client, session_id, type="add_item", product_id=str(product_b.id))
        _act(client, session_id, type="set_note", note="table 4")

        body = _act(client, session_id, type="park")
        assert body["cart"]["lines"] == []

        parked = client.get(f"{API}/parked-sales").json()
        assert len(parked) == 1
        assert parked[0]["item_count"] == 2
        parked_id = parked[0]["id"]

        body = _act(client, session_id, type="resume", parked_id=parked_id)
        assert body["cart"]["note"] == "table 4"
        assert len(body["cart"]["lines"]) == 2
        assert client.get(f"{API}/parked-sales").json() == []
        assert client.get(f"{API}/parked-sales/{parked_id}").status_code == 404

    def test_close_session(self, client: TestClient) -> None:
        session_id = _open(client)
        assert client.delete(f"{API}/sessions/{session_id}").status_code == 204
        assert client.get(f"{API}/sessions/{session_id}").status_code == 404

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        resp = client.post(f"{API}/sessions", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
        assert client.post(f"{API}/sessions").headers["X-Request-ID"]
