# Overview: Service-layer operations for the contact ledger; encapsulates business logic and database work.

"""
Contact Ledger Service

WHY: Customers and suppliers carry a running balance that must be right no
matter what order movements arrive in. Sales are backdated, payments sit
pending for days, and old data gets migrated in bulk.

LEDGER INVARIANTS (authoritative):
- Each entry is a debit or a credit, never both, never neither.
- Order is (transaction_date, created_at, id) ascending per contact.
- running_balance is derived: replaying the full ordered history from 0
  reproduces every stored value.
- PAYMENT entries only count once their payment is confirmed; until then
  they carry the balance from just before them.
- Customer/Supplier.ledger_balance equals the final balance of the full
  replay (all branches).

DESIGN:
- Every write replays the contact's whole history. A backdated entry shifts
  everything after it and dates can be edited retroactively, so patching
  forward from the insertion point is not safe.
- Only rows whose balance changed are written back.
- The contact row is locked before the history is read and stays locked
  until commit, so two writers on one contact cannot interleave.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from flask import current_app
from sqlalchemy import and_, func
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import LedgerEntry, Payment
from ..models.documents import PAYMENT_STATUS_CONFIRMED
from ..models.ledger import (
    CONTACT_CUSTOMER,
    CONTACT_TYPES,
    TRANSACTION_TYPES,
    TX_ADVANCE_PAYMENT,
    TX_INVOICE,
    TX_OPENING_BALANCE,
    TX_PAYMENT,
    TX_REFUND,
)
from ..money import MoneyFormatError, ZERO, to_money
from contact_ledger.time_utils import end_bound_exclusive, to_utc_naive, utcnow
from .balance_calculator import compute_running_balances
from .concurrency import run_with_retry
from .contact_registry import get_contact


class LedgerError(Exception):
    """Base class for ledger operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class LedgerValidationError(LedgerError):
    """Raised when a ledger request is malformed. Nothing has been written."""
    pass


class InvalidAmountError(LedgerValidationError):
    """Raised when debit/credit amounts break the one-sided entry rule."""
    pass


class ContactNotFoundError(LedgerError):
    """Raised when the customer or supplier does not exist."""
    pass


class LedgerTransactionError(LedgerError):
    """Raised when storage fails mid-transaction. All writes were rolled back."""
    pass


# Marks a replay over every branch of a contact
_ALL_BRANCHES = object()


@dataclass(frozen=True)
class RecalculationResult:
    contact_type: str
    contact_id: int
    final_balance: Decimal
    ledger_balance: Decimal
    entries_updated: int
    contact_updated: bool


# =============================================================================
# VALIDATION
# =============================================================================

def validate_amounts(debit_amount, credit_amount) -> tuple[Decimal, Decimal]:
    """
    Enforce the one-sided entry rule and return normalized amounts.

    Raises:
        InvalidAmountError: negative amounts, both sides positive, or both zero
    """
    try:
        debit = to_money(debit_amount, field="debit_amount")
        credit = to_money(credit_amount, field="credit_amount")
    except MoneyFormatError as exc:
        raise InvalidAmountError(str(exc))

    details = {"debit_amount": str(debit), "credit_amount": str(credit)}
    if debit < 0 or credit < 0:
        raise InvalidAmountError("Ledger amounts cannot be negative", details)
    if debit > 0 and credit > 0:
        raise InvalidAmountError("Either debit_amount or credit_amount must be zero", details)
    if debit == 0 and credit == 0:
        raise InvalidAmountError("Either debit_amount or credit_amount must be greater than zero", details)
    return debit, credit


def _require_contact_type(contact_type: str) -> None:
    if contact_type not in CONTACT_TYPES:
        raise LedgerValidationError(
            f"Invalid contact_type: {contact_type}. Must be one of {list(CONTACT_TYPES)}"
        )


def _require_transaction_type(transaction_type: str) -> None:
    if transaction_type not in TRANSACTION_TYPES:
        raise LedgerValidationError(
            f"Invalid transaction_type: {transaction_type}. Must be one of {list(TRANSACTION_TYPES)}"
        )


def _load_contact(contact_type: str, contact_id: int, *, lock: bool = False):
    contact = get_contact(contact_type, contact_id, lock=lock)
    if contact is None:
        raise ContactNotFoundError(
            f"{contact_type} {contact_id} not found",
            {"contact_type": contact_type, "contact_id": contact_id},
        )
    return contact


def _branch_siloed() -> bool:
    return bool(current_app.config.get("LEDGER_BRANCH_SILOED", False))


# =============================================================================
# TRANSACTION BOUNDARY
# =============================================================================

def _run_atomic(op, *, commit: bool, action: str):
    """
    Run op as one unit of work.

    commit=True: op runs in its own transaction, retried on lock/version
    conflicts, committed on success and rolled back on any failure.

    commit=False: op only flushes into the caller's open transaction. The
    caller owns commit and rollback, so no retry happens here.
    """
    def _op():
        try:
            result = op()
            if commit:
                db.session.commit()
            else:
                db.session.flush()
            return result
        except (OperationalError, StaleDataError):
            raise
        except LedgerError:
            if commit:
                db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            if commit:
                db.session.rollback()
            raise LedgerTransactionError(f"{action} failed", {"cause": str(exc)}) from exc
        except Exception:
            if commit:
                db.session.rollback()
            raise

    if not commit:
        try:
            return _op()
        except (OperationalError, StaleDataError) as exc:
            raise LedgerTransactionError(f"{action} failed", {"cause": str(exc)}) from exc

    try:
        return run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        raise LedgerTransactionError(f"{action} failed", {"cause": str(exc)}) from exc


# =============================================================================
# HISTORY REPLAY
# =============================================================================

def _ordered_history(contact_type: str, contact_id: int) -> list[tuple[LedgerEntry, Optional[str]]]:
    """All entries for a contact in ledger order, each with its payment status."""
    return (
        db.session.query(LedgerEntry, Payment.status)
        .outerjoin(
            Payment,
            and_(
                LedgerEntry.transaction_type == TX_PAYMENT,
                Payment.id == LedgerEntry.transaction_id,
            ),
        )
        .filter(
            LedgerEntry.contact_type == contact_type,
            LedgerEntry.contact_id == contact_id,
        )
        .order_by(
            LedgerEntry.transaction_date.asc(),
            LedgerEntry.created_at.asc(),
            LedgerEntry.id.asc(),
        )
        .all()
    )


def _recalculate_locked(contact, contact_type: str, scopes: list) -> RecalculationResult:
    """
    Replay a locked contact's history and write back what changed.

    scopes is [_ALL_BRANCHES] for a contact-wide ledger, or a list of
    branch ids whose entries each get their own branch-local replay.
    The cached contact balance always comes from the all-branch replay.
    """
    rows = _ordered_history(contact_type, contact.id)
    statuses = {entry.id: status for entry, status in rows}
    entries = [entry for entry, _ in rows]

    def is_confirmed(entry) -> bool:
        return statuses.get(entry.id) == PAYMENT_STATUS_CONFIRMED

    full = compute_running_balances(entries, is_confirmed)

    entries_updated = 0
    final_balance = full.final_balance
    for scope in scopes:
        if scope is _ALL_BRANCHES:
            scoped_entries, result = entries, full
        else:
            scoped_entries = [e for e in entries if e.branch_id == scope]
            result = compute_running_balances(scoped_entries, is_confirmed)
        if len(scopes) == 1:
            final_balance = result.final_balance

        for entry in scoped_entries:
            balance = result.per_entry[entry.id]
            if to_money(entry.running_balance) != balance:
                entry.running_balance = balance
                entries_updated += 1

    contact_updated = False
    if to_money(contact.ledger_balance) != full.final_balance:
        contact.ledger_balance = full.final_balance
        contact_updated = True

    db.session.flush()

    return RecalculationResult(
        contact_type=contact_type,
        contact_id=contact.id,
        final_balance=final_balance,
        ledger_balance=full.final_balance,
        entries_updated=entries_updated,
        contact_updated=contact_updated,
    )


def _scopes_for(contact_type: str, contact_id: int, branch_id) -> list:
    if branch_id is not None:
        return [branch_id]
    if not _branch_siloed():
        return [_ALL_BRANCHES]
    rows = (
        db.session.query(LedgerEntry.branch_id)
        .filter(
            LedgerEntry.contact_type == contact_type,
            LedgerEntry.contact_id == contact_id,
        )
        .distinct()
        .all()
    )
    return [row.branch_id for row in rows] or [_ALL_BRANCHES]


# =============================================================================
# PUBLIC OPERATIONS
# =============================================================================

def post_entry(
    contact_id: int,
    contact_type: str,
    transaction_date: Union[date, datetime],
    transaction_type: str,
    transaction_id: int | None = None,
    description: str | None = None,
    debit_amount=0,
    credit_amount=0,
    branch_id: int | None = None,
    created_by: int | None = None,
    *,
    commit: bool = True,
) -> LedgerEntry:
    """
    Record a financial movement for a contact and rebalance its ledger.

    WHY: Single entry point for sales approval, purchase creation, payment
    confirmation, returns and refunds. The new entry may land anywhere in the
    timeline; every balance dated on or after it is corrected in the same
    transaction.

    Args:
        contact_id: Customer or supplier id
        contact_type: "customer" or "supplier"
        transaction_date: Effective (business) date; may be in the past
        transaction_type: One of TRANSACTION_TYPES
        transaction_id: Originating record id (payments.id for PAYMENT)
        description: Free text shown on statements
        debit_amount / credit_amount: Exactly one must be positive
        branch_id: Branch the movement belongs to
        created_by: Acting user id
        commit: False to join the caller's transaction (flush only)

    Returns:
        The persisted LedgerEntry carrying its correct running_balance

    Raises:
        LedgerValidationError / InvalidAmountError: before any write
        ContactNotFoundError: contact does not exist
        LedgerTransactionError: storage failure, everything rolled back
    """
    _require_contact_type(contact_type)
    _require_transaction_type(transaction_type)
    debit, credit = validate_amounts(debit_amount, credit_amount)
    if transaction_date is None:
        raise LedgerValidationError("transaction_date is required")
    tx_date = to_utc_naive(transaction_date)

    def _op():
        contact = _load_contact(contact_type, contact_id, lock=True)

        # Placeholder balance; the replay below sets the real one
        entry = LedgerEntry(
            contact_id=contact.id,
            contact_type=contact_type,
            transaction_date=tx_date,
            transaction_type=transaction_type,
            transaction_id=transaction_id,
            description=description,
            debit_amount=debit,
            credit_amount=credit,
            running_balance=ZERO,
            branch_id=branch_id,
            created_by=created_by,
            created_at=utcnow(),
        )
        db.session.add(entry)
        db.session.flush()

        scopes = [branch_id] if _branch_siloed() else [_ALL_BRANCHES]
        _recalculate_locked(contact, contact_type, scopes)
        return entry

    entry = _run_atomic(_op, commit=commit, action="Posting ledger entry")
    db.session.refresh(entry)
    return entry


def recalculate_contact_detailed(
    contact_id: int,
    contact_type: str,
    branch_id: int | None = None,
    *,
    commit: bool = True,
) -> RecalculationResult:
    """
    Replay a contact's full history and persist changed balances.

    branch_id limits the replay to one branch and is only allowed when the
    ledger runs branch-siloed (LEDGER_BRANCH_SILOED). On a siloed ledger with
    no branch_id every branch is replayed separately.
    """
    _require_contact_type(contact_type)
    if branch_id is not None and not _branch_siloed():
        raise LedgerValidationError(
            "Branch-scoped recalculation requires a branch-siloed ledger",
            {"branch_id": branch_id},
        )

    def _op():
        contact = _load_contact(contact_type, contact_id, lock=True)
        scopes = _scopes_for(contact_type, contact.id, branch_id)
        return _recalculate_locked(contact, contact_type, scopes)

    return _run_atomic(_op, commit=commit, action="Recalculating ledger")


def recalculate_contact(
    contact_id: int,
    contact_type: str,
    branch_id: int | None = None,
    *,
    commit: bool = True,
) -> Decimal:
    """Replay a contact's ledger and return the final balance."""
    return recalculate_contact_detailed(
        contact_id, contact_type, branch_id, commit=commit
    ).final_balance


def get_statement(
    contact_id: int,
    contact_type: str,
    start_date: Union[date, datetime, None] = None,
    end_date: Union[date, datetime, None] = None,
    branch_id: int | None = None,
) -> list[LedgerEntry]:
    """
    Read a contact's entries in ledger order. No recalculation happens.

    start_date is inclusive. A whole-day end_date (a date, or midnight)
    includes everything on that day; a precise datetime is inclusive.
    """
    _require_contact_type(contact_type)
    _load_contact(contact_type, contact_id)

    q = db.session.query(LedgerEntry).filter(
        LedgerEntry.contact_type == contact_type,
        LedgerEntry.contact_id == contact_id,
    )

    if start_date is not None:
        q = q.filter(LedgerEntry.transaction_date >= to_utc_naive(start_date))

    if end_date is not None:
        bound, exclusive = end_bound_exclusive(end_date)
        if exclusive:
            q = q.filter(LedgerEntry.transaction_date < bound)
        else:
            q = q.filter(LedgerEntry.transaction_date <= bound)

    if branch_id is not None:
        q = q.filter(LedgerEntry.branch_id == branch_id)

    return q.order_by(
        LedgerEntry.transaction_date.asc(),
        LedgerEntry.created_at.asc(),
        LedgerEntry.id.asc(),
    ).all()


def _sum_column(column, customer_id: int, transaction_type: str) -> Decimal:
    total = (
        db.session.query(func.coalesce(func.sum(column), 0))
        .filter(
            LedgerEntry.contact_type == CONTACT_CUSTOMER,
            LedgerEntry.contact_id == customer_id,
            LedgerEntry.transaction_type == transaction_type,
        )
        .scalar()
    )
    return to_money(total)


def calculate_advance_balance(customer_id: int) -> Decimal:
    """
    Unapplied customer prepayment.

    ADVANCE_PAYMENT credits minus REFUND credits, floored at zero. This is a
    reporting figure and never goes negative. PAYMENT and INVOICE entries
    are not consulted.
    """
    _load_contact(CONTACT_CUSTOMER, customer_id)
    advances = _sum_column(LedgerEntry.credit_amount, customer_id, TX_ADVANCE_PAYMENT)
    refunds = _sum_column(LedgerEntry.credit_amount, customer_id, TX_REFUND)
    return max(ZERO, advances - refunds)


def customer_ledger_summary(customer_id: int) -> dict:
    """
    Headline figures for a customer's account.

    - opening_balance: net of OPENING_BALANCE entries
    - total_invoiced: INVOICE debits
    - total_paid: confirmed PAYMENT credits plus all ADVANCE_PAYMENT credits
    - advance_balance: see calculate_advance_balance
    - balance_due: max(0, total_invoiced + opening_balance - total_paid)
    """
    customer = _load_contact(CONTACT_CUSTOMER, customer_id)

    opening_debit = _sum_column(LedgerEntry.debit_amount, customer_id, TX_OPENING_BALANCE)
    opening_credit = _sum_column(LedgerEntry.credit_amount, customer_id, TX_OPENING_BALANCE)
    opening_balance = opening_debit - opening_credit

    total_invoiced = _sum_column(LedgerEntry.debit_amount, customer_id, TX_INVOICE)

    confirmed_payments = (
        db.session.query(func.coalesce(func.sum(LedgerEntry.credit_amount), 0))
        .join(
            Payment,
            and_(
                LedgerEntry.transaction_type == TX_PAYMENT,
                Payment.id == LedgerEntry.transaction_id,
            ),
        )
        .filter(
            LedgerEntry.contact_type == CONTACT_CUSTOMER,
            LedgerEntry.contact_id == customer_id,
            Payment.status == PAYMENT_STATUS_CONFIRMED,
        )
        .scalar()
    )
    advance_payments = _sum_column(LedgerEntry.credit_amount, customer_id, TX_ADVANCE_PAYMENT)
    total_paid = to_money(confirmed_payments) + advance_payments

    return {
        "customer_id": customer.id,
        "ledger_balance": to_money(customer.ledger_balance),
        "opening_balance": opening_balance,
        "total_invoiced": total_invoiced,
        "total_paid": total_paid,
        "advance_balance": calculate_advance_balance(customer_id),
        "balance_due": max(ZERO, total_invoiced + opening_balance - total_paid),
    }


def has_entry_for(contact_type: str, contact_id: int, transaction_type: str, transaction_id: int | None) -> bool:
    """Whether a movement from this source record is already on the ledger."""
    q = db.session.query(LedgerEntry.id).filter(
        LedgerEntry.contact_type == contact_type,
        LedgerEntry.contact_id == contact_id,
        LedgerEntry.transaction_type == transaction_type,
    )
    if transaction_id is None:
        q = q.filter(LedgerEntry.transaction_id.is_(None))
    else:
        q = q.filter(LedgerEntry.transaction_id == transaction_id)
    return q.first() is not None
