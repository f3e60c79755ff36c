# JurisonShop API Tests - Sales transactions
#
# Tests for:
# - Transaction creation and stock deduction
# - Input validation
# - Best-effort stock adjustment (failures logged, sale kept)
# - Refund lifecycle (completed -> refunded, stock restored)
# - List presentation fields

import re
from datetime import timedelta

import pytest

from jurisonshop.extensions import db
from jurisonshop.models import Transaction
from jurisonshop.services import stock_service, transactions_service
from jurisonshop.services.stock_service import StockAdjustmentError
from jurisonshop.time_utils import utcnow


def _sale(items, total, **extra):
    payload = {"total_amount": total, "items": items}
    payload.update(extra)
    return payload


class TestCreateTransaction:

    def test_sale_deducts_stock(self, client, make_product, stock_of):
        make_product(sku="A1", capital=10, retail=20, stock=5)

        response = client.post("/api/transactions", json=_sale(
            [{"sku": "A1", "name": "Part A1", "retail_price": 20, "quantity": 2}], 40,
        ))

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["status"] == "completed"
        assert data["total_amount"] == 40.0
        assert data["customer_name"] == "Walk-in Customer"
        assert data["payment_method"] == "cash"
        assert data["items"][0]["sku"] == "A1"
        assert data["stock_failures"] == []
        assert re.fullmatch(r"TXN-\d{8}-\d{4}", data["transaction_number"])
        assert stock_of("A1") == 3

    def test_quantities_per_sku_are_summed(self, client, make_product, stock_of):
        make_product(sku="A1", stock=10)
        make_product(sku="B2", stock=4)

        response = client.post("/api/transactions", json=_sale(
            [
                {"sku": "A1", "quantity": 3},
                {"sku": "B2", "quantity": 4},
                {"sku": "A1", "quantity": 2},
            ],
            150,
        ))

        assert response.status_code == 201
        assert stock_of("A1") == 5
        assert stock_of("B2") == 0

    def test_customer_fields_are_trimmed(self, client, make_product):
        make_product(sku="A1")

        response = client.post("/api/transactions", json=_sale(
            [{"sku": "A1", "quantity": 1}], "20.00",
            customer_name="  Juan Dela Cruz ", customer_phone=" 0917 ", payment_method="gcash", notes="  ",
        ))

        data = response.get_json()["data"]
        assert data["customer_name"] == "Juan Dela Cruz"
        assert data["customer_phone"] == "0917"
        assert data["payment_method"] == "gcash"
        assert data["notes"] is None

    @pytest.mark.parametrize("total", [None, 0, -5, "abc", "", 0.001, "0.004"])
    def test_invalid_total_rejected(self, client, make_product, stock_of, total):
        make_product(sku="A1", stock=5)

        response = client.post("/api/transactions", json=_sale([{"sku": "A1", "quantity": 1}], total))

        assert response.status_code == 400
        assert "total_amount" in response.get_json()["error"]
        assert db.session.query(Transaction).count() == 0
        assert stock_of("A1") == 5

    def test_amounts_rounded_to_cents(self, client, make_product):
        make_product(sku="A1")

        response = client.post("/api/transactions", json=_sale(
            [{"sku": "A1", "quantity": 1, "retail_price": "19.995"}], 0.005,
        ))

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["total_amount"] == 0.01
        assert data["items"][0]["retail_price"] == 20.0

    @pytest.mark.parametrize("items", [[], None, "A1"])
    def test_items_required(self, client, db_session, items):
        response = client.post("/api/transactions", json={"total_amount": 10, "items": items})

        assert response.status_code == 400
        assert response.get_json()["error"] == "At least one item must be included"

    def test_unknown_payment_method_rejected(self, client, make_product):
        make_product(sku="A1")

        response = client.post("/api/transactions", json=_sale(
            [{"sku": "A1", "quantity": 1}], 20, payment_method="crypto",
        ))

        assert response.status_code == 400

    def test_unknown_sku_is_logged_not_fatal(self, client, make_product, stock_of, caplog):
        make_product(sku="A1", stock=5)

        response = client.post("/api/transactions", json=_sale(
            [{"sku": "A1", "quantity": 1}, {"sku": "GHOST", "quantity": 2}], 60,
        ))

        assert response.status_code == 201
        failures = response.get_json()["data"]["stock_failures"]
        assert [f["sku"] for f in failures] == ["GHOST"]
        assert stock_of("A1") == 4
        assert db.session.query(Transaction).count() == 1
        assert "Failed to deduct stock for SKU GHOST" in caplog.text

    def test_insufficient_stock_keeps_transaction(self, client, make_product, stock_of):
        make_product(sku="A1", stock=1)

        response = client.post("/api/transactions", json=_sale([{"sku": "A1", "quantity": 3}], 60))

        assert response.status_code == 201
        assert response.get_json()["data"]["stock_failures"][0]["sku"] == "A1"
        assert stock_of("A1") == 1

    def test_simulated_decrement_failure(self, client, make_product, stock_of, monkeypatch, caplog):
        make_product(sku="A1", stock=5)
        make_product(sku="B2", stock=5)

        real_decrement = stock_service.safe_decrement_stock

        def flaky(sku, quantity):
            if sku == "A1":
                raise StockAdjustmentError("connection reset", sku=sku)
            return real_decrement(sku, quantity)

        monkeypatch.setattr(stock_service, "safe_decrement_stock", flaky)

        response = client.post("/api/transactions", json=_sale(
            [{"sku": "A1", "quantity": 1}, {"sku": "B2", "quantity": 2}], 60,
        ))

        assert response.status_code == 201
        assert stock_of("A1") == 5
        assert stock_of("B2") == 3
        assert "connection reset" in caplog.text

    def test_number_collision_regenerates(self, app, make_product, make_transaction, monkeypatch):
        make_product(sku="A1", stock=5)
        existing = make_transaction([{"sku": "A1", "quantity": 1}], 20)
        numbers = iter([existing.transaction_number, "TXN-20261019-7777"])
        monkeypatch.setattr(transactions_service, "generate_transaction_number", lambda: next(numbers))

        data = transactions_service.create_transaction(_sale([{"sku": "A1", "quantity": 1}], 20))

        assert data["transaction_number"] == "TXN-20261019-7777"
        assert db.session.query(Transaction).count() == 2


class TestRefund:

    def _create(self, client, items, total):
        response = client.post("/api/transactions", json=_sale(items, total))
        assert response.status_code == 201
        return response.get_json()["data"]

    def test_refund_restores_stock(self, client, make_product, stock_of):
        make_product(sku="A1", stock=5)
        make_product(sku="B2", stock=8)
        tx = self._create(client, [{"sku": "A1", "quantity": 2}, {"sku": "B2", "quantity": 3}], 100)
        assert stock_of("A1") == 3
        assert stock_of("B2") == 5

        response = client.patch(f"/api/transactions/{tx['id']}", json={})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert tx["transaction_number"] in body["message"]
        assert stock_of("A1") == 5
        assert stock_of("B2") == 8
        assert db.session.get(Transaction, tx["id"]).status == "refunded"

    def test_refund_by_transaction_number(self, client, make_product, stock_of):
        make_product(sku="A1", stock=5)
        tx = self._create(client, [{"sku": "A1", "quantity": 1}], 20)

        response = client.patch(f"/api/transactions/{tx['transaction_number']}")

        assert response.status_code == 200
        assert stock_of("A1") == 5

    def test_double_refund_rejected(self, client, make_product, stock_of):
        make_product(sku="A1", stock=5)
        tx = self._create(client, [{"sku": "A1", "quantity": 2}], 40)

        assert client.patch(f"/api/transactions/{tx['id']}", json={}).status_code == 200
        response = client.patch(f"/api/transactions/{tx['id']}", json={})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Transaction already refunded"
        assert stock_of("A1") == 5

    def test_refund_unknown_transaction(self, client, db_session):
        response = client.patch("/api/transactions/no-such-id", json={})

        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_refund_with_deleted_product_still_flips_status(self, client, make_product, caplog):
        product = make_product(sku="A1", stock=5)
        tx = self._create(client, [{"sku": "A1", "quantity": 1}], 20)
        client.delete(f"/api/products?id={product.id}")

        response = client.patch(f"/api/transactions/{tx['id']}")

        assert response.status_code == 200
        assert response.get_json()["data"]["stock_failures"][0]["sku"] == "A1"
        assert db.session.get(Transaction, tx["id"]).status == "refunded"
        assert "Failed to restore stock for SKU A1" in caplog.text


class TestListTransactions:

    def test_list_newest_first_with_labels(self, client, make_product, make_transaction):
        make_product(sku="A1")
        older = make_transaction([{"sku": "A1", "quantity": 1}], 20, created_at=utcnow() - timedelta(days=1))
        newer = make_transaction([{"sku": "A1", "quantity": 2}], 40, status="refunded")
        newer.payment_method = "bank_transfer"
        db.session.commit()

        response = client.get("/api/transactions")

        assert response.status_code == 200
        rows = response.get_json()["data"]
        assert [r["transaction_number"] for r in rows] == [newer.transaction_number, older.transaction_number]
        first = rows[0]
        assert first["id"] == newer.transaction_number
        assert first["transaction_id"] == newer.id
        assert first["payment"] == "Bank Transfer"
        assert first["status"] == "Refunded"
        assert first["total"] == "40.00"
        assert first["customer"] == "Walk-in Customer"
        assert first["items"] == [{"sku": "A1", "quantity": 2}]
        assert rows[1]["payment"] == "Cash"
        assert rows[1]["status"] == "Completed"
