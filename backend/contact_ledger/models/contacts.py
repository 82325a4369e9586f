from __future__ import annotations

from ..extensions import db
from contact_ledger.money import money_str
from contact_ledger.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data.

    ledger_balance is a cached mirror of the running balance of the
    customer's most recent ledger entry (0 when there are none).
    Positive = the customer owes us. Negative = we hold their credit.

    WHY: Balance screens and credit checks need the current figure without
    replaying the ledger on every read. The ledger service owns this column;
    nothing else should write it.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    ledger_balance = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "ledger_balance": money_str(self.ledger_balance),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class Supplier(db.Model):
    """
    Supplier master data.

    Supplier ledgers use the same debit-minus-credit arithmetic as customers.
    Purchases are credits and payments to the supplier and purchase returns
    are debits, so a negative balance means we owe the supplier.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    # Home branch, used as a fallback branch for synthesized entries
    branch_id = db.Column(db.Integer, nullable=True, index=True)

    ledger_balance = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "branch_id": self.branch_id,
            "ledger_balance": money_str(self.ledger_balance),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
