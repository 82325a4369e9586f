"""
Tests for the `flask ledger` command group.
"""

from datetime import datetime

from contact_ledger.models import Customer
from contact_ledger.models.ledger import CONTACT_CUSTOMER, TX_ADVANCE_PAYMENT
from contact_ledger.services import ledger_service


class TestLedgerCommands:

    def test_recalc(self, app, db_session, customer, post_invoice):
        post_invoice(customer.id, 45, datetime(2026, 1, 1))
        db_session.get(Customer, customer.id).ledger_balance = 0
        db_session.commit()

        result = app.test_cli_runner().invoke(
            args=["ledger", "recalc", "--type", "customer", "--id", str(customer.id)]
        )

        assert result.exit_code == 0
        assert f"PASS Recalculated customer {customer.id}" in result.output
        assert "Final balance: 45.00" in result.output

    def test_recalc_reports_errors(self, app, db_session):
        result = app.test_cli_runner().invoke(
            args=["ledger", "recalc", "--type", "supplier", "--id", "321"]
        )
        assert "FAIL Error" in result.output

    def test_recalc_rejects_unknown_type(self, app, db_session):
        result = app.test_cli_runner().invoke(
            args=["ledger", "recalc", "--type", "employee", "--id", "1"]
        )
        assert result.exit_code != 0

    def test_statement(self, app, db_session, customer, post_invoice):
        post_invoice(customer.id, 10, datetime(2026, 1, 1), description="Invoice INV-7")
        post_invoice(customer.id, 5, datetime(2026, 3, 1))

        result = app.test_cli_runner().invoke(
            args=["ledger", "statement", "--type", "customer", "--id", str(customer.id),
                  "--start", "2026-01-01", "--end", "2026-01-31"]
        )

        assert result.exit_code == 0
        assert "Invoice INV-7" in result.output
        assert "2026-03-01" not in result.output

    def test_statement_without_entries(self, app, db_session, customer):
        result = app.test_cli_runner().invoke(
            args=["ledger", "statement", "--type", "customer", "--id", str(customer.id)]
        )
        assert "No ledger entries found." in result.output

    def test_advance(self, app, db_session, customer):
        ledger_service.post_entry(
            customer.id, CONTACT_CUSTOMER,
            transaction_date=datetime(2026, 1, 1),
            transaction_type=TX_ADVANCE_PAYMENT,
            credit_amount=60,
        )

        result = app.test_cli_runner().invoke(
            args=["ledger", "advance", "--customer-id", str(customer.id)]
        )

        assert f"Advance balance for customer {customer.id}: 60.00" in result.output

    def test_backfill_and_repair(self, app, db_session, customer):
        runner = app.test_cli_runner()

        backfill = runner.invoke(args=["ledger", "backfill"])
        assert backfill.exit_code == 0
        assert "PASS Backfill complete: 0 entries created" in backfill.output

        repair = runner.invoke(args=["ledger", "repair"])
        assert repair.exit_code == 0
        assert "Customers processed: 1" in repair.output
        assert "PASS Repair complete" in repair.output
