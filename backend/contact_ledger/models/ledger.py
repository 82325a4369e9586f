from __future__ import annotations

from ..extensions import db
from contact_ledger.money import money_str
from contact_ledger.time_utils import to_utc_z


CONTACT_CUSTOMER = "customer"
CONTACT_SUPPLIER = "supplier"
CONTACT_TYPES = (CONTACT_CUSTOMER, CONTACT_SUPPLIER)

TX_OPENING_BALANCE = "OPENING_BALANCE"
TX_INVOICE = "INVOICE"
TX_PAYMENT = "PAYMENT"
TX_ADVANCE_PAYMENT = "ADVANCE_PAYMENT"
TX_RETURN = "RETURN"
TX_REFUND = "REFUND"

TRANSACTION_TYPES = (
    TX_OPENING_BALANCE,
    TX_INVOICE,
    TX_PAYMENT,
    TX_ADVANCE_PAYMENT,
    TX_RETURN,
    TX_REFUND,
)


class LedgerEntry(db.Model):
    """
    One debit or credit movement against a customer or supplier.

    ORDERING: (transaction_date, created_at, id) ascending per contact.
    transaction_date is business time and may be backdated; created_at is
    system time assigned at insert and breaks ties between same-dated entries.

    DERIVED FIELD: running_balance is the cumulative debit-minus-credit after
    this entry in that order. It is never authoritative and is rewritten by
    the ledger service whenever the contact's history is replayed.

    PAYMENT entries point at payments.id through transaction_id. Until that
    payment is confirmed the entry sits in the timeline without moving the
    balance.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.CheckConstraint(
            "(debit_amount > 0 AND credit_amount = 0) OR (debit_amount = 0 AND credit_amount > 0)",
            name="ck_ledger_entries_debit_xor_credit",
        ),
        db.Index(
            "ix_ledger_entries_contact_order",
            "contact_type", "contact_id", "transaction_date", "created_at",
        ),
        db.Index("ix_ledger_entries_contact_branch", "contact_type", "contact_id", "branch_id"),
        db.Index("ix_ledger_entries_source", "transaction_type", "transaction_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Account identity (customers.id or suppliers.id depending on contact_type)
    contact_id = db.Column(db.Integer, nullable=False)
    contact_type = db.Column(db.String(16), nullable=False)  # customer, supplier

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.Text, nullable=True)

    debit_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    credit_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    running_balance = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    # Provenance
    branch_id = db.Column(db.Integer, nullable=True, index=True)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    payment = db.relationship(
        "Payment",
        primaryjoin="and_(LedgerEntry.transaction_type == 'PAYMENT', "
                    "foreign(LedgerEntry.transaction_id) == Payment.id)",
        viewonly=True,
        uselist=False,
        lazy="select",
    )

    @property
    def payment_status(self) -> str | None:
        if self.transaction_type != TX_PAYMENT:
            return None
        return self.payment.status if self.payment else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "contact_type": self.contact_type,
            "transaction_date": to_utc_z(self.transaction_date),
            "transaction_type": self.transaction_type,
            "transaction_id": self.transaction_id,
            "description": self.description,
            "debit_amount": money_str(self.debit_amount),
            "credit_amount": money_str(self.credit_amount),
            "running_balance": money_str(self.running_balance),
            "payment_status": self.payment_status,
            "branch_id": self.branch_id,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
