# Overview: Batch jobs that migrate historical records into the ledger and heal balance drift.

"""
Ledger Maintenance Jobs

BACKFILL: Records any legacy balance the documents do not explain as an
OPENING_BALANCE, then builds ledger history from business records that
predate the ledger (sales orders, purchases, confirmed payments, completed
returns).

REPAIR: Replays every customer and supplier ledger from scratch.

ERROR POLICY:
- Every record and every contact is its own transaction. A bad record is
  rolled back, logged and counted; the job moves on and keeps what already
  succeeded.
- Re-running the backfill is safe: records already on the ledger are skipped.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import exists, func

from ..extensions import db
from ..models import (
    LedgerEntry,
    Payment,
    Purchase,
    PurchaseReturn,
    SalesOrder,
    SalesReturn,
)
from ..models.documents import PAYMENT_STATUS_CONFIRMED, RETURN_STATUS_COMPLETED
from ..models.ledger import (
    CONTACT_CUSTOMER,
    CONTACT_SUPPLIER,
    TX_INVOICE,
    TX_OPENING_BALANCE,
    TX_PAYMENT,
    TX_RETURN,
)
from ..money import to_money
from contact_ledger.time_utils import utcnow
from .contact_registry import CONTACT_MODELS, iter_contacts
from .ledger_service import (
    LedgerError,
    has_entry_for,
    post_entry,
    recalculate_contact_detailed,
)


@dataclass
class PhaseCounts:
    created: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class BackfillSummary:
    opening_balances: PhaseCounts = field(default_factory=PhaseCounts)
    sales_orders: PhaseCounts = field(default_factory=PhaseCounts)
    purchases: PhaseCounts = field(default_factory=PhaseCounts)
    payments: PhaseCounts = field(default_factory=PhaseCounts)
    sales_returns: PhaseCounts = field(default_factory=PhaseCounts)
    purchase_returns: PhaseCounts = field(default_factory=PhaseCounts)

    @property
    def failed(self) -> int:
        return sum(counts.failed for counts in self._phases())

    @property
    def created(self) -> int:
        return sum(counts.created for counts in self._phases())

    def _phases(self) -> list[PhaseCounts]:
        return [
            self.opening_balances,
            self.sales_orders,
            self.purchases,
            self.payments,
            self.sales_returns,
            self.purchase_returns,
        ]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created"] = self.created
        data["failed"] = self.failed
        data["success"] = self.failed == 0
        return data


@dataclass
class RepairSummary:
    customers: int = 0
    suppliers: int = 0
    entries_updated: int = 0
    balances_updated: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["success"] = self.failed == 0
        return data


# =============================================================================
# BACKFILL
# =============================================================================

def _post_historical(counts: PhaseCounts, label: str, record_id: int, **entry) -> None:
    """Post one historical movement in its own transaction."""
    if has_entry_for(entry["contact_type"], entry["contact_id"], entry["transaction_type"], entry["transaction_id"]):
        counts.skipped += 1
        return

    try:
        post_entry(**entry)
        counts.created += 1
    except Exception:
        db.session.rollback()
        counts.failed += 1
        current_app.logger.exception("Error processing %s %s", label, record_id)


def _backfill_sales_orders(counts: PhaseCounts) -> None:
    current_app.logger.info("Processing sales orders...")
    sales = db.session.query(SalesOrder).order_by(SalesOrder.created_at.asc(), SalesOrder.id.asc()).all()
    for sale in sales:
        if not sale.customer_id or not sale.total_amount:
            counts.skipped += 1
            continue
        _post_historical(
            counts, "sale", sale.id,
            contact_id=sale.customer_id,
            contact_type=CONTACT_CUSTOMER,
            transaction_date=sale.created_at,
            transaction_type=TX_INVOICE,
            transaction_id=sale.id,
            description=f"Invoice {sale.invoice_number}",
            debit_amount=sale.total_amount,
            credit_amount=0,
            branch_id=sale.branch_id,
            created_by=sale.user_id,
        )


def _backfill_purchases(counts: PhaseCounts) -> None:
    current_app.logger.info("Processing purchases...")
    purchases = db.session.query(Purchase).order_by(Purchase.created_at.asc(), Purchase.id.asc()).all()
    for purchase in purchases:
        if not purchase.supplier_id or not purchase.total_amount:
            counts.skipped += 1
            continue
        _post_historical(
            counts, "purchase", purchase.id,
            contact_id=purchase.supplier_id,
            contact_type=CONTACT_SUPPLIER,
            transaction_date=purchase.created_at,
            transaction_type=TX_INVOICE,
            transaction_id=purchase.id,
            description=f"Purchase {purchase.purchase_number}",
            debit_amount=0,
            credit_amount=purchase.total_amount,
            branch_id=purchase.branch_id,
            created_by=purchase.user_id,
        )


def _latest_sale_branch(customer_id: int) -> int | None:
    sale = (
        db.session.query(SalesOrder)
        .filter(SalesOrder.customer_id == customer_id)
        .order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
        .first()
    )
    return sale.branch_id if sale else None


def _backfill_payments(counts: PhaseCounts) -> None:
    current_app.logger.info("Processing payments...")
    payments = (
        db.session.query(Payment)
        .filter(Payment.status == PAYMENT_STATUS_CONFIRMED)
        .order_by(Payment.confirmed_at.asc(), Payment.id.asc())
        .all()
    )
    for payment in payments:
        if not payment.customer_id or not payment.amount or not payment.confirmed_at:
            counts.skipped += 1
            continue
        _post_historical(
            counts, "payment", payment.id,
            contact_id=payment.customer_id,
            contact_type=CONTACT_CUSTOMER,
            transaction_date=payment.confirmed_at,
            transaction_type=TX_PAYMENT,
            transaction_id=payment.id,
            description=f"Payment {payment.method}",
            debit_amount=0,
            credit_amount=payment.amount,
            branch_id=_latest_sale_branch(payment.customer_id),
            created_by=payment.confirmed_by or payment.created_by,
        )


def _backfill_sales_returns(counts: PhaseCounts) -> None:
    current_app.logger.info("Processing sales returns...")
    returns = (
        db.session.query(SalesReturn)
        .filter(SalesReturn.status == RETURN_STATUS_COMPLETED)
        .order_by(SalesReturn.created_at.asc(), SalesReturn.id.asc())
        .all()
    )
    for return_ in returns:
        if not return_.customer_id or not return_.total_amount:
            counts.skipped += 1
            continue
        _post_historical(
            counts, "sales return", return_.id,
            contact_id=return_.customer_id,
            contact_type=CONTACT_CUSTOMER,
            transaction_date=return_.created_at,
            transaction_type=TX_RETURN,
            transaction_id=return_.id,
            description=f"Sales Return {return_.return_number}",
            debit_amount=0,
            credit_amount=return_.total_amount,
            branch_id=return_.branch_id,
            created_by=return_.user_id,
        )


def _backfill_purchase_returns(counts: PhaseCounts) -> None:
    current_app.logger.info("Processing purchase returns...")
    returns = (
        db.session.query(PurchaseReturn)
        .filter(PurchaseReturn.status == RETURN_STATUS_COMPLETED)
        .order_by(PurchaseReturn.created_at.asc(), PurchaseReturn.id.asc())
        .all()
    )
    for return_ in returns:
        if not return_.supplier_id or not return_.total_amount:
            counts.skipped += 1
            continue
        _post_historical(
            counts, "purchase return", return_.id,
            contact_id=return_.supplier_id,
            contact_type=CONTACT_SUPPLIER,
            transaction_date=return_.created_at,
            transaction_type=TX_RETURN,
            transaction_id=return_.id,
            description=f"Purchase Return {return_.return_number}",
            debit_amount=return_.total_amount,
            credit_amount=0,
            branch_id=return_.branch_id,
            created_by=return_.user_id,
        )


def _legacy_balances() -> dict[tuple[str, int], Decimal]:
    """Stored balances of contacts that have no ledger entries yet."""
    legacy = {}
    for contact_type, model in CONTACT_MODELS.items():
        has_entries = exists().where(
            LedgerEntry.contact_type == contact_type,
            LedgerEntry.contact_id == model.id,
        )
        rows = (
            db.session.query(model.id, model.ledger_balance)
            .filter(model.ledger_balance != 0, ~has_entries)
            .all()
        )
        for contact_id, balance in rows:
            legacy[(contact_type, contact_id)] = to_money(balance)
    return legacy


def _sum(column, *criteria) -> Decimal:
    return to_money(db.session.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar())


def _earliest(column, *criteria):
    return db.session.query(func.min(column)).filter(*criteria).scalar()


def _document_net(contact_type: str, contact_id: int) -> Decimal:
    """Balance the document phases will produce for one contact."""
    if contact_type == CONTACT_CUSTOMER:
        sales = _sum(SalesOrder.total_amount, SalesOrder.customer_id == contact_id)
        payments = _sum(
            Payment.amount,
            Payment.customer_id == contact_id,
            Payment.status == PAYMENT_STATUS_CONFIRMED,
            Payment.confirmed_at.isnot(None),
        )
        returns = _sum(
            SalesReturn.total_amount,
            SalesReturn.customer_id == contact_id,
            SalesReturn.status == RETURN_STATUS_COMPLETED,
        )
        return sales - payments - returns

    purchases = _sum(Purchase.total_amount, Purchase.supplier_id == contact_id)
    returns = _sum(
        PurchaseReturn.total_amount,
        PurchaseReturn.supplier_id == contact_id,
        PurchaseReturn.status == RETURN_STATUS_COMPLETED,
    )
    return returns - purchases


def _first_document_date(contact_type: str, contact_id: int):
    if contact_type == CONTACT_CUSTOMER:
        candidates = [
            _earliest(SalesOrder.created_at, SalesOrder.customer_id == contact_id),
            _earliest(
                Payment.confirmed_at,
                Payment.customer_id == contact_id,
                Payment.status == PAYMENT_STATUS_CONFIRMED,
            ),
            _earliest(
                SalesReturn.created_at,
                SalesReturn.customer_id == contact_id,
                SalesReturn.status == RETURN_STATUS_COMPLETED,
            ),
        ]
    else:
        candidates = [
            _earliest(Purchase.created_at, Purchase.supplier_id == contact_id),
            _earliest(
                PurchaseReturn.created_at,
                PurchaseReturn.supplier_id == contact_id,
                PurchaseReturn.status == RETURN_STATUS_COMPLETED,
            ),
        ]
    dates = [value for value in candidates if value is not None]
    return min(dates) if dates else None


def _first_document_branch(contact_type: str, contact_id: int) -> int | None:
    if contact_type == CONTACT_CUSTOMER:
        doc = (
            db.session.query(SalesOrder)
            .filter(SalesOrder.customer_id == contact_id)
            .order_by(SalesOrder.created_at.asc(), SalesOrder.id.asc())
            .first()
        )
    else:
        doc = (
            db.session.query(Purchase)
            .filter(Purchase.supplier_id == contact_id)
            .order_by(Purchase.created_at.asc(), Purchase.id.asc())
            .first()
        )
    return doc.branch_id if doc else None


def _backfill_opening_balances(counts: PhaseCounts) -> None:
    """
    Turn each legacy balance into a first-class OPENING_BALANCE entry.

    WHY: Runs before the document phases. Posting documents rewrites
    ledger_balance, so the legacy figure is only safe to read while the
    contact still has no entries. Once the opening entry is committed the
    legacy balance lives in the ledger itself, and a crashed run can be
    resumed without losing it.

    The opening amount is the part of the legacy balance the documents do
    not account for (legacy - document net). It is dated one second before
    the contact's first document so it leads the replayed history.
    """
    current_app.logger.info("Creating opening balance entries...")
    for (contact_type, contact_id), legacy_balance in _legacy_balances().items():
        contact = db.session.get(CONTACT_MODELS[contact_type], contact_id)
        residual = legacy_balance - _document_net(contact_type, contact_id)
        if residual == 0:
            counts.skipped += 1
            continue

        first_document = _first_document_date(contact_type, contact_id)
        if first_document is not None:
            opened_at = first_document - timedelta(seconds=1)
            branch_id = _first_document_branch(contact_type, contact_id)
        else:
            opened_at = contact.created_at or utcnow()
            branch_id = getattr(contact, "branch_id", None)

        _post_historical(
            counts, f"opening balance for {contact_type}", contact_id,
            contact_id=contact_id,
            contact_type=contact_type,
            transaction_date=opened_at,
            transaction_type=TX_OPENING_BALANCE,
            transaction_id=None,
            description="Opening Balance",
            debit_amount=residual if residual > 0 else 0,
            credit_amount=-residual if residual < 0 else 0,
            branch_id=branch_id,
            created_by=None,
        )


def backfill_historical_ledger() -> BackfillSummary:
    """
    Synthesize ledger history from records that predate the ledger.

    Order: opening balances, sales orders, purchases, confirmed payments,
    completed sales returns, completed purchase returns.

    Returns:
        BackfillSummary with created/skipped/failed counts per phase
    """
    current_app.logger.info("Starting historical ledger backfill...")
    summary = BackfillSummary()

    _backfill_opening_balances(summary.opening_balances)
    _backfill_sales_orders(summary.sales_orders)
    _backfill_purchases(summary.purchases)
    _backfill_payments(summary.payments)
    _backfill_sales_returns(summary.sales_returns)
    _backfill_purchase_returns(summary.purchase_returns)

    if summary.failed:
        current_app.logger.warning(
            "Historical ledger backfill finished with %s failed record(s)", summary.failed
        )
    else:
        current_app.logger.info("Historical ledger backfill completed successfully!")
    return summary


# =============================================================================
# REPAIR
# =============================================================================

def repair_all_ledger_balances() -> RepairSummary:
    """
    Recalculate every customer and supplier ledger from scratch.

    WHY: Heals drift after manual data edits or imports that bypassed the
    ledger service. Running it twice in a row changes nothing the second time.
    """
    current_app.logger.info("Starting ledger balance repair...")
    summary = RepairSummary()

    for contact_type in (CONTACT_CUSTOMER, CONTACT_SUPPLIER):
        for contact_id in iter_contacts(contact_type):
            try:
                result = recalculate_contact_detailed(contact_id, contact_type)
            except LedgerError:
                db.session.rollback()
                summary.failed += 1
                current_app.logger.exception("Error repairing ledger for %s %s", contact_type, contact_id)
                continue

            if contact_type == CONTACT_CUSTOMER:
                summary.customers += 1
            else:
                summary.suppliers += 1
            summary.entries_updated += result.entries_updated
            if result.contact_updated:
                summary.balances_updated += 1

    current_app.logger.info(
        "Ledger balance repair completed: %s entries and %s balances updated",
        summary.entries_updated, summary.balances_updated,
    )
    return summary
