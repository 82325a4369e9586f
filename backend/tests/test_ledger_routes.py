"""
HTTP tests for the ledger and contact-payment blueprints.
"""

from datetime import datetime

from contact_ledger.models import Customer
from contact_ledger.models.ledger import CONTACT_SUPPLIER, TX_INVOICE
from contact_ledger.services import ledger_service
from contact_ledger.services.ledger_service import LedgerTransactionError


class TestStatementRoutes:

    def test_customer_statement(self, client, customer, post_invoice):
        post_invoice(customer.id, 100, datetime(2026, 1, 1), description="Invoice INV-1")
        post_invoice(customer.id, 50, datetime(2026, 1, 2))

        resp = client.get(f"/api/ledger/customer/{customer.id}")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["customer"]["id"] == customer.id
        assert body["customer"]["ledger_balance"] == "150.00"
        assert body["total_entries"] == 2
        assert [e["running_balance"] for e in body["entries"]] == ["100.00", "150.00"]
        assert body["entries"][0]["description"] == "Invoice INV-1"
        assert body["entries"][0]["transaction_date"] == "2026-01-01T00:00:00Z"

    def test_date_filters(self, client, customer, post_invoice):
        post_invoice(customer.id, 1, datetime(2026, 1, 1))
        post_invoice(customer.id, 2, datetime(2026, 1, 15, 18))
        post_invoice(customer.id, 3, datetime(2026, 2, 1))

        resp = client.get(
            f"/api/ledger/customer/{customer.id}?start_date=2026-01-10&end_date=2026-01-15"
        )

        assert resp.status_code == 200
        assert [e["debit_amount"] for e in resp.get_json()["entries"]] == ["2.00"]

    def test_bad_date_is_400(self, client, customer):
        resp = client.get(f"/api/ledger/customer/{customer.id}?start_date=yesterday")
        assert resp.status_code == 400

    def test_unknown_customer_is_404(self, client, db_session):
        resp = client.get("/api/ledger/customer/999999")
        assert resp.status_code == 404

    def test_supplier_statement(self, client, supplier):
        ledger_service.post_entry(
            supplier.id, CONTACT_SUPPLIER,
            transaction_date=datetime(2026, 3, 1),
            transaction_type=TX_INVOICE,
            credit_amount=75,
        )

        resp = client.get(f"/api/ledger/supplier/{supplier.id}")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["supplier"]["ledger_balance"] == "-75.00"
        assert body["entries"][0]["credit_amount"] == "75.00"

    def test_storage_failure_is_generic_500(self, client, customer, monkeypatch):
        def broken(*args, **kwargs):
            raise LedgerTransactionError("Reading ledger failed", {"cause": "disk I/O error"})

        monkeypatch.setattr(ledger_service, "get_statement", broken)

        resp = client.get(f"/api/ledger/customer/{customer.id}")

        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Operation failed, try again"}

    def test_customer_summary(self, client, customer, post_invoice):
        post_invoice(customer.id, 500, datetime(2026, 1, 1))

        resp = client.get(f"/api/ledger/customer/{customer.id}/summary")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["customer_id"] == customer.id
        assert body["total_invoiced"] == "500.00"
        assert body["balance_due"] == "500.00"
        assert body["advance_balance"] == "0.00"


class TestPostEntryRoute:

    def test_creates_entry(self, client, customer):
        resp = client.post("/api/ledger/entries", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "transaction_date": "2026-01-05T10:00:00Z",
            "transaction_type": "INVOICE",
            "transaction_id": 12,
            "debit_amount": "80.50",
            "branch_id": 3,
        })

        assert resp.status_code == 201
        entry = resp.get_json()["entry"]
        assert entry["running_balance"] == "80.50"
        assert entry["branch_id"] == 3
        assert entry["transaction_date"] == "2026-01-05T10:00:00Z"

    def test_offset_datetime_normalized_to_utc(self, client, customer):
        resp = client.post("/api/ledger/entries", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "transaction_date": "2026-01-05T10:00:00+02:00",
            "transaction_type": "INVOICE",
            "debit_amount": 1,
        })
        assert resp.get_json()["entry"]["transaction_date"] == "2026-01-05T08:00:00Z"

    def test_both_sides_is_400(self, client, customer):
        resp = client.post("/api/ledger/entries", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "transaction_date": "2026-01-05",
            "transaction_type": "INVOICE",
            "debit_amount": 10,
            "credit_amount": 10,
        })
        assert resp.status_code == 400
        assert "must be zero" in resp.get_json()["error"]

    def test_missing_fields_is_400(self, client, customer):
        resp = client.post("/api/ledger/entries", json={"contact_id": customer.id})
        assert resp.status_code == 400

    def test_bad_transaction_date_is_400(self, client, customer):
        resp = client.post("/api/ledger/entries", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "transaction_date": "05/01/2026",
            "transaction_type": "INVOICE",
            "debit_amount": 10,
        })
        assert resp.status_code == 400

    def test_numeric_transaction_date_is_400(self, client, customer):
        resp = client.post("/api/ledger/entries", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "transaction_date": 20260101,
            "transaction_type": "INVOICE",
            "debit_amount": 10,
        })
        assert resp.status_code == 400
        assert "transaction_date" in resp.get_json()["error"]

    def test_unknown_contact_is_404(self, client, db_session):
        resp = client.post("/api/ledger/entries", json={
            "contact_id": 4040,
            "contact_type": "supplier",
            "transaction_date": "2026-01-05",
            "transaction_type": "INVOICE",
            "credit_amount": 10,
        })
        assert resp.status_code == 404


class TestRecalculateRoute:

    def test_recalculate(self, client, db_session, customer, post_invoice):
        post_invoice(customer.id, 30, datetime(2026, 1, 1))
        db_session.get(Customer, customer.id).ledger_balance = 0
        db_session.commit()

        resp = client.post(f"/api/ledger/customer/{customer.id}/recalculate")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["final_balance"] == "30.00"
        assert body["contact_updated"] is True

    def test_branch_scope_without_silo_is_400(self, client, customer):
        resp = client.post(f"/api/ledger/customer/{customer.id}/recalculate", json={"branch_id": 1})
        assert resp.status_code == 400

    def test_unknown_contact_type_is_400(self, client, db_session):
        resp = client.post("/api/ledger/employee/1/recalculate")
        assert resp.status_code == 400


class TestMaintenanceRoutes:

    def test_backfill(self, client, db_session):
        resp = client.post("/api/ledger/backfill")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["message"] == "Backfill completed"

    def test_repair(self, client, customer, post_invoice):
        post_invoice(customer.id, 10, datetime(2026, 1, 1))

        resp = client.post("/api/ledger/repair")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["customers"] == 1
        assert body["entries_updated"] == 0


class TestContactPaymentRoutes:

    def test_record_and_confirm(self, client, db_session, customer, post_invoice):
        post_invoice(customer.id, 300, datetime(2026, 1, 1))

        resp = client.post("/api/contact-payments/", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "amount": "120",
            "method": "transfer",
        })
        assert resp.status_code == 201
        payment_id = resp.get_json()["payment"]["id"]

        resp = client.post(f"/api/contact-payments/{payment_id}/confirm", json={"confirmed_by": 2})
        assert resp.status_code == 200
        assert resp.get_json()["payment"]["status"] == "confirmed"

        db_session.expire_all()
        assert db_session.get(Customer, customer.id).ledger_balance == 180

    def test_invalid_method_is_400(self, client, customer):
        resp = client.post("/api/contact-payments/", json={
            "contact_id": customer.id,
            "contact_type": "customer",
            "amount": "5",
            "method": "barter",
        })
        assert resp.status_code == 400

    def test_decline_unknown_is_404(self, client, db_session):
        resp = client.post("/api/contact-payments/999/decline")
        assert resp.status_code == 404
