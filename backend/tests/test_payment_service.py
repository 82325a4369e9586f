"""
Tests for the record / confirm / decline payment workflow and its ledger effects.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from contact_ledger.models import Customer, LedgerEntry, Payment, Supplier
from contact_ledger.models.documents import (
    PAYMENT_STATUS_CONFIRMED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_VOIDED,
)
from contact_ledger.models.ledger import CONTACT_CUSTOMER, CONTACT_SUPPLIER, TX_INVOICE, TX_PAYMENT
from contact_ledger.services import ledger_service, payment_service
from contact_ledger.services.payment_service import PaymentError, PaymentNotFoundError


def payment_entry(db_session, payment_id):
    return (
        db_session.query(LedgerEntry)
        .filter(LedgerEntry.transaction_type == TX_PAYMENT, LedgerEntry.transaction_id == payment_id)
        .one()
    )


class TestRecordPayment:

    def test_records_pending_payment_and_entry(self, db_session, customer, post_invoice):
        post_invoice(customer.id, 400, datetime(2026, 1, 1))

        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "150", "cash", created_by=3)

        assert payment.status == PAYMENT_STATUS_PENDING
        entry = payment_entry(db_session, payment.id)
        assert entry.credit_amount == Decimal("150.00")
        assert entry.description == "Payment cash (Pending)"
        assert entry.running_balance == Decimal("400.00")
        assert db_session.get(Customer, customer.id).ledger_balance == Decimal("400.00")

    def test_supplier_payment_is_debit(self, db_session, supplier):
        payment = payment_service.record_payment(supplier.id, CONTACT_SUPPLIER, 90, "transfer")

        entry = payment_entry(db_session, payment.id)
        assert entry.debit_amount == Decimal("90.00")
        assert entry.credit_amount == Decimal("0.00")
        assert entry.contact_type == CONTACT_SUPPLIER

    @pytest.mark.parametrize("amount, method", [
        ("10", "cheque"),
        ("0", "cash"),
        ("-5", "cash"),
        ("ten", "cash"),
    ])
    def test_rejects_bad_input(self, db_session, customer, amount, method):
        with pytest.raises(PaymentError):
            payment_service.record_payment(customer.id, CONTACT_CUSTOMER, amount, method)
        assert db_session.query(Payment).count() == 0

    def test_missing_contact_rolls_back_payment(self, db_session):
        with pytest.raises(PaymentError):
            payment_service.record_payment(777, CONTACT_CUSTOMER, "10", "cash")
        assert db_session.query(Payment).count() == 0
        assert db_session.query(LedgerEntry).count() == 0


class TestConfirmPayment:

    def test_confirm_moves_balance_and_redates_entry(self, db_session, customer, post_invoice):
        post_invoice(customer.id, 400, datetime(2026, 1, 1))
        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "150", "pos")

        confirmed = payment_service.confirm_payment(payment.id, confirmed_by=9, branch_id=4)

        assert confirmed.status == PAYMENT_STATUS_CONFIRMED
        assert confirmed.confirmed_by == 9
        entry = payment_entry(db_session, payment.id)
        assert entry.description == "Payment pos"
        assert entry.transaction_date == confirmed.confirmed_at
        assert entry.branch_id == 4
        assert entry.running_balance == Decimal("250.00")
        assert db_session.get(Customer, customer.id).ledger_balance == Decimal("250.00")

    def test_confirm_replays_entries_after_payment(self, db_session, customer, post_invoice):
        post_invoice(customer.id, 400, datetime(2026, 1, 1))
        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "100", "cash")
        later = post_invoice(customer.id, 50, datetime(2099, 1, 1))
        assert later.running_balance == Decimal("450.00")

        payment_service.confirm_payment(payment.id)

        db_session.refresh(later)
        assert later.running_balance == Decimal("350.00")

    def test_confirm_posts_missing_entry(self, db_session, supplier):
        ledger_service.post_entry(
            supplier.id, CONTACT_SUPPLIER,
            transaction_date=datetime(2026, 1, 1),
            transaction_type=TX_INVOICE,
            credit_amount=300,
        )
        legacy = Payment(supplier_id=supplier.id, amount=Decimal("120"), method="cash")
        db_session.add(legacy)
        db_session.commit()

        payment_service.confirm_payment(legacy.id)

        entry = payment_entry(db_session, legacy.id)
        assert entry.debit_amount == Decimal("120.00")
        assert db_session.get(Supplier, supplier.id).ledger_balance == Decimal("-180.00")

    def test_cannot_confirm_twice(self, db_session, customer):
        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "10", "cash")
        payment_service.confirm_payment(payment.id)

        with pytest.raises(PaymentError):
            payment_service.confirm_payment(payment.id)

    def test_cannot_confirm_voided(self, db_session, customer):
        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "10", "cash")
        payment_service.decline_payment(payment.id)

        with pytest.raises(PaymentError):
            payment_service.confirm_payment(payment.id)

    def test_unknown_payment(self, db_session):
        with pytest.raises(PaymentNotFoundError):
            payment_service.confirm_payment(12345)


class TestDeclinePayment:

    def test_decline_marks_entry_and_keeps_balance(self, db_session, customer, post_invoice):
        post_invoice(customer.id, 400, datetime(2026, 1, 1))
        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "150", "cash")

        declined = payment_service.decline_payment(payment.id)

        assert declined.status == PAYMENT_STATUS_VOIDED
        entry = payment_entry(db_session, payment.id)
        assert entry.description == "Payment cash (Pending) (Declined)"
        assert ledger_service.recalculate_contact(customer.id, CONTACT_CUSTOMER) == Decimal("400.00")

    def test_only_pending_can_be_declined(self, db_session, customer):
        payment = payment_service.record_payment(customer.id, CONTACT_CUSTOMER, "10", "cash")
        payment_service.confirm_payment(payment.id)

        with pytest.raises(PaymentError):
            payment_service.decline_payment(payment.id)

    def test_unknown_payment(self, db_session):
        with pytest.raises(PaymentNotFoundError):
            payment_service.decline_payment(12345)
