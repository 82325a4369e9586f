# Overview: Service-layer operations for payment confirmation; drives the ledger for payment events.

"""
Payment Workflow

WHY: Cash is logged when it is reported and counted only once someone
confirms it arrived. The ledger shows the pending payment straight away but
the balance moves on confirmation.

LIFECYCLE:
- record_payment: pending_confirmation + PAYMENT entry (no balance effect)
- confirm_payment: confirmed; entry re-dated to confirmed_at; replay
- decline_payment: voided; entry kept and marked, never counts

SIGN CONVENTION:
- Customer pays us: credit (reduces what they owe)
- We pay a supplier: debit (reduces what we owe)
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import LedgerEntry, Payment
from ..models.documents import (
    PAYMENT_STATUS_CONFIRMED,
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_VOIDED,
)
from ..models.ledger import CONTACT_CUSTOMER, CONTACT_SUPPLIER, TX_PAYMENT
from ..money import MoneyFormatError, to_money
from contact_ledger.time_utils import utcnow
from .concurrency import lock_for_update
from .ledger_service import LedgerError, post_entry, recalculate_contact


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


class PaymentNotFoundError(PaymentError):
    pass


PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_TRANSFER = "transfer"
PAYMENT_METHOD_POS = "pos"

VALID_PAYMENT_METHODS = [
    PAYMENT_METHOD_CASH,
    PAYMENT_METHOD_TRANSFER,
    PAYMENT_METHOD_POS,
]


def _contact_of(payment: Payment) -> tuple[str, int]:
    if payment.customer_id:
        return CONTACT_CUSTOMER, payment.customer_id
    return CONTACT_SUPPLIER, payment.supplier_id


def _signed_amounts(contact_type: str, amount: Decimal) -> tuple[Decimal, Decimal]:
    """(debit, credit) for a payment against this kind of contact."""
    if contact_type == CONTACT_CUSTOMER:
        return Decimal("0"), amount
    return amount, Decimal("0")


def _payment_entry(payment: Payment) -> LedgerEntry | None:
    contact_type, contact_id = _contact_of(payment)
    return (
        db.session.query(LedgerEntry)
        .filter(
            LedgerEntry.transaction_type == TX_PAYMENT,
            LedgerEntry.transaction_id == payment.id,
            LedgerEntry.contact_type == contact_type,
            LedgerEntry.contact_id == contact_id,
        )
        .first()
    )


def record_payment(
    contact_id: int,
    contact_type: str,
    amount,
    method: str,
    created_by: int | None = None,
    branch_id: int | None = None,
    reference_note: str | None = None,
) -> Payment:
    """
    Log a payment awaiting confirmation and place it on the ledger.

    The PAYMENT entry is visible on statements immediately but carries the
    previous running balance until the payment is confirmed.

    Raises:
        PaymentError: invalid method/amount/contact, or the ledger rejected it
    """
    if method not in VALID_PAYMENT_METHODS:
        raise PaymentError(f"Invalid payment method: {method}. Must be one of {VALID_PAYMENT_METHODS}")
    if contact_type not in (CONTACT_CUSTOMER, CONTACT_SUPPLIER):
        raise PaymentError(f"Invalid contact_type: {contact_type}")

    try:
        amount = to_money(amount)
    except MoneyFormatError as exc:
        raise PaymentError(str(exc))
    if amount <= 0:
        raise PaymentError("Amount must be greater than 0")

    payment = Payment(
        customer_id=contact_id if contact_type == CONTACT_CUSTOMER else None,
        supplier_id=contact_id if contact_type == CONTACT_SUPPLIER else None,
        amount=amount,
        method=method,
        status=PAYMENT_STATUS_PENDING,
        reference_note=reference_note,
        created_by=created_by,
        created_at=utcnow(),
    )

    try:
        db.session.add(payment)
        db.session.flush()

        debit, credit = _signed_amounts(contact_type, amount)
        post_entry(
            contact_id,
            contact_type,
            transaction_date=payment.created_at,
            transaction_type=TX_PAYMENT,
            transaction_id=payment.id,
            description=f"Payment {method} (Pending)",
            debit_amount=debit,
            credit_amount=credit,
            branch_id=branch_id,
            created_by=created_by,
            commit=False,
        )
        db.session.commit()
    except LedgerError as exc:
        db.session.rollback()
        raise PaymentError(str(exc))

    return payment


def confirm_payment(payment_id: int, confirmed_by: int | None = None, branch_id: int | None = None) -> Payment:
    """
    Confirm a pending payment so it starts counting in the balance.

    The existing PAYMENT entry is moved to the confirmation date and the
    contact's ledger is replayed. If the entry is missing (payments logged
    before the ledger existed) it is created now.

    Raises:
        PaymentError: payment missing, already confirmed, or voided
    """
    payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
    if not payment:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")
    if payment.status == PAYMENT_STATUS_CONFIRMED:
        raise PaymentError("Payment is already confirmed")
    if payment.status == PAYMENT_STATUS_VOIDED:
        raise PaymentError("Cannot confirm a voided payment")

    contact_type, contact_id = _contact_of(payment)

    try:
        payment.status = PAYMENT_STATUS_CONFIRMED
        payment.confirmed_by = confirmed_by
        payment.confirmed_at = utcnow()

        entry = _payment_entry(payment)
        if entry is not None:
            entry.description = f"Payment {payment.method}"
            entry.transaction_date = payment.confirmed_at
            if branch_id is not None:
                entry.branch_id = branch_id
            db.session.flush()
            # Full replay: the entry may have moved date and branch
            recalculate_contact(contact_id, contact_type, commit=False)
        else:
            debit, credit = _signed_amounts(contact_type, to_money(payment.amount))
            post_entry(
                contact_id,
                contact_type,
                transaction_date=payment.confirmed_at,
                transaction_type=TX_PAYMENT,
                transaction_id=payment.id,
                description=f"Payment {payment.method}",
                debit_amount=debit,
                credit_amount=credit,
                branch_id=branch_id,
                created_by=confirmed_by,
                commit=False,
            )
        db.session.commit()
    except LedgerError as exc:
        db.session.rollback()
        raise PaymentError(str(exc))

    return payment


def decline_payment(payment_id: int) -> Payment:
    """
    Void a pending payment.

    The ledger entry stays for the audit trail and is marked "(Declined)".
    A voided payment never counts, so balances are unaffected.
    """
    payment = lock_for_update(db.session.query(Payment).filter_by(id=payment_id)).first()
    if not payment:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")
    if payment.status != PAYMENT_STATUS_PENDING:
        raise PaymentError("Only pending payments can be declined")

    payment.status = PAYMENT_STATUS_VOIDED

    entry = _payment_entry(payment)
    if entry is not None:
        entry.description = f"{entry.description or 'Payment'} (Declined)"

    db.session.commit()
    return payment
