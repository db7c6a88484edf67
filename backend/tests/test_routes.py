"""
HTTP API tests.

Exercise the blueprints through the Flask test client: status codes,
error mapping, and the forwarded actor header.
"""

import pytest
from conftest import CASHIER_ID, actor_headers, failing, item
from poscore.extensions import db
from poscore.models import CashClosure, Product, Sale
from poscore.services import reconciliation_service, sales_service


def _post_sale(client, product, quantity, **extra):
    body = {"items": [item(product, quantity)], "payment_method": "cash", **extra}
    return client.post("/api/sales/", json=body, headers=actor_headers())


class TestActorHeader:

    def test_missing_actor_header(self, client, db_session, product_a):
        response = client.post(
            "/api/sales/",
            json={"items": [item(product_a, 1)], "payment_method": "cash"},
        )

        assert response.status_code == 400
        assert "X-Actor-Id" in response.get_json()["error"]

    def test_non_numeric_actor_header(self, client, db_session):
        response = client.post(
            "/api/cash/movements",
            json={"type": "income", "amount_cents": 100, "description": "x"},
            headers={"X-Actor-Id": "abc"},
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("header", ["\u00b2", "1\u00b2", "0", "-3"])
    def test_non_ascii_or_non_positive_actor_header(self, client, db_session, product_a, header):
        response = client.post(
            "/api/sales/",
            json={"items": [item(product_a, 1)], "payment_method": "cash"},
            headers={"X-Actor-Id": header},
        )

        assert response.status_code == 400
        assert "positive integer" in response.get_json()["error"]
        assert db_session.query(Sale).count() == 0


class TestSalesRoutes:

    def test_create_sale(self, client, db_session, product_a):
        product_id = product_a.id

        response = _post_sale(client, product_a, 3, amount_received_cents=5000)

        assert response.status_code == 201
        data = response.get_json()
        assert data["sale"]["total_cents"] == 3000
        assert data["sale"]["change_cents"] == 2000
        assert data["sale"]["actor_id"] == CASHIER_ID
        assert len(data["lines"]) == 1
        db.session.expire_all()
        assert db.session.get(Product, product_id).stock == 7

    def test_insufficient_stock_is_409(self, client, db_session, product_a):
        response = _post_sale(client, product_a, 12)

        assert response.status_code == 409
        details = response.get_json()["details"]
        assert details["available"] == 10
        assert details["requested"] == 12

    def test_validation_error_is_400(self, client, db_session, product_a):
        response = client.post(
            "/api/sales/",
            json={"items": [], "payment_method": "cash"},
            headers=actor_headers(),
        )

        assert response.status_code == 400

    def test_unknown_product_is_404(self, client, db_session):
        response = client.post(
            "/api/sales/",
            json={
                "items": [{"product_id": 9999, "quantity": 1, "unit_price_cents": 100}],
                "payment_method": "cash",
            },
            headers=actor_headers(),
        )

        assert response.status_code == 404

    def test_void_and_void_again(self, client, db_session, product_a):
        sale_id = _post_sale(client, product_a, 2).get_json()["sale"]["id"]

        first = client.post(f"/api/sales/{sale_id}/void", headers=actor_headers())
        second = client.post(f"/api/sales/{sale_id}/void", headers=actor_headers())

        assert first.status_code == 200
        assert first.get_json()["sale"]["status"] == "VOIDED"
        assert second.status_code == 409

    def test_lock_contention_is_409(self, client, db_session, product_a, no_backoff, monkeypatch):
        monkeypatch.setattr(sales_service, "next_document_number", failing())

        response = _post_sale(client, product_a, 2)

        assert response.status_code == 409
        assert response.get_json()["details"] == {"attempts": 3, "reason": "OperationalError"}
        db.session.expire_all()
        assert db.session.get(Product, product_a.id).stock == 10
        assert db.session.query(Sale).count() == 0

    def test_void_unknown_sale(self, client, db_session):
        response = client.post("/api/sales/424242/void", headers=actor_headers())
        assert response.status_code == 404

    def test_list_and_detail(self, client, db_session, product_a):
        sale_id = _post_sale(client, product_a, 1).get_json()["sale"]["id"]

        listed = client.get("/api/sales/")
        detail = client.get(f"/api/sales/{sale_id}")

        assert listed.status_code == 200
        assert [s["id"] for s in listed.get_json()["sales"]] == [sale_id]
        assert detail.status_code == 200
        assert detail.get_json()["profit_cents"] == 400

    def test_list_bad_date(self, client, db_session):
        response = client.get("/api/sales/?date=31-01-2026")
        assert response.status_code == 400


class TestCashRoutes:

    def test_movement_lifecycle(self, client, db_session):
        created = client.post(
            "/api/cash/movements",
            json={"type": "income", "amount_cents": 50000, "description": "capital injection"},
            headers=actor_headers(),
        )
        assert created.status_code == 201
        movement_id = created.get_json()["movement"]["id"]

        listed = client.get("/api/cash/movements")
        assert [m["id"] for m in listed.get_json()["movements"]] == [movement_id]

        deleted = client.delete(f"/api/cash/movements/{movement_id}", headers=actor_headers())
        assert deleted.status_code == 200
        assert deleted.get_json() == {"deleted": movement_id}

        missing = client.delete(f"/api/cash/movements/{movement_id}", headers=actor_headers())
        assert missing.status_code == 404

    def test_invalid_movement(self, client, db_session):
        response = client.post(
            "/api/cash/movements",
            json={"type": "income", "amount_cents": 0, "description": "Nothing"},
            headers=actor_headers(),
        )

        assert response.status_code == 400

    def test_summary_and_closure(self, client, db_session, product_a):
        _post_sale(client, product_a, 3)
        client.post(
            "/api/cash/movements",
            json={"type": "expense", "amount_cents": 500, "description": "Bags"},
            headers=actor_headers(),
        )

        summary = client.get("/api/cash/summary").get_json()["summary"]
        assert summary["sales_cash_cents"] == 3000
        assert summary["expected_cash_cents"] == 2500

        closure = client.post(
            "/api/cash/closures",
            json={"counted_cash_cents": 2400, "notes": "short one coin"},
            headers=actor_headers(),
        )
        assert closure.status_code == 201
        closure_data = closure.get_json()["closure"]
        assert closure_data["difference_cents"] == -100
        assert closure_data["status"] == "SHORTFALL"

        history = client.get("/api/cash/closures?limit=5").get_json()["closures"]
        assert [c["id"] for c in history] == [closure_data["id"]]

        detail = client.get(f"/api/cash/closures/{closure_data['id']}").get_json()
        assert len(detail["movements"]) == 1

    def test_negative_counted_cash(self, client, db_session):
        response = client.post(
            "/api/cash/closures",
            json={"counted_cash_cents": -10},
            headers=actor_headers(),
        )

        assert response.status_code == 400

    def test_closure_history_bad_limit(self, client, db_session):
        assert client.get("/api/cash/closures?limit=zero").status_code == 400

    def test_closure_history_blank_limit(self, client, db_session):
        response = client.get("/api/cash/closures?limit=")

        assert response.status_code == 200
        assert response.get_json() == {"closures": []}

    def test_closure_lock_contention_is_409(self, client, db_session, no_backoff, monkeypatch):
        monkeypatch.setattr(reconciliation_service, "append_ledger_event", failing())

        response = client.post(
            "/api/cash/closures",
            json={"counted_cash_cents": 0},
            headers=actor_headers(),
        )

        assert response.status_code == 409
        assert response.get_json()["details"]["reason"] == "OperationalError"
        assert db_session.query(CashClosure).count() == 0

    def test_closure_detail_missing(self, client, db_session):
        assert client.get("/api/cash/closures/777").status_code == 404


class TestInventoryAndReportRoutes:

    def test_low_stock(self, client, db_session, make_product):
        low = make_product(stock=2, min_stock=5)
        make_product(stock=20, min_stock=5)
        low_id = low.id

        data = client.get("/api/inventory/low-stock").get_json()

        assert data["count"] == 1
        assert data["products"][0]["id"] == low_id

    def test_product_stock(self, client, db_session, product_a):
        product_id = product_a.id

        data = client.get(f"/api/inventory/products/{product_id}").get_json()

        assert data["product"]["stock"] == 10
        assert data["is_low"] is False
        assert client.get("/api/inventory/products/9999").status_code == 404

    def test_sales_report(self, client, db_session, product_a):
        _post_sale(client, product_a, 2)

        response = client.get("/api/reports/sales")

        assert response.status_code == 200
        assert response.get_json()["sales_count"] == 1

    def test_sales_report_bad_range(self, client, db_session):
        response = client.get("/api/reports/sales?start=2026-02-01&end=2026-01-01")
        assert response.status_code == 400

    def test_health(self, client, db_session):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"
