from __future__ import annotations

from ..extensions import db
from contact_ledger.money import money_str
from contact_ledger.time_utils import to_utc_z


PAYMENT_STATUS_PENDING = "pending_confirmation"
PAYMENT_STATUS_CONFIRMED = "confirmed"
PAYMENT_STATUS_VOIDED = "voided"

RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_COMPLETED = "completed"
RETURN_STATUS_CANCELLED = "cancelled"


class SalesOrder(db.Model):
    """
    Customer invoice header. Posts a customer INVOICE (debit) to the ledger.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.Index("ix_sales_orders_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid")  # unpaid, partial, paid

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", backref=db.backref("sales_orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "total_amount": money_str(self.total_amount),
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """
    Supplier purchase header. Posts a supplier INVOICE (credit) to the ledger.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_supplier_created", "supplier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_number = db.Column(db.String(64), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_number": self.purchase_number,
            "supplier_id": self.supplier_id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "total_amount": money_str(self.total_amount),
            "created_at": to_utc_z(self.created_at),
        }


class Payment(db.Model):
    """
    Money received from a customer or paid to a supplier.

    LIFECYCLE:
    1. pending_confirmation: logged, visible in the ledger, no balance effect
    2. confirmed: counted in the running balance from the next replay
    3. voided: declined; the ledger entry stays but never counts

    Exactly one of customer_id / supplier_id is set.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.Index("ix_payments_status_confirmed", "status", "confirmed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    amount = db.Column(db.Numeric(15, 2), nullable=False)
    method = db.Column(db.String(16), nullable=False)  # cash, transfer, pos
    status = db.Column(db.String(32), nullable=False, default=PAYMENT_STATUS_PENDING, index=True)
    reference_note = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.Integer, nullable=True)
    confirmed_by = db.Column(db.Integer, nullable=True)
    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("payments", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "supplier_id": self.supplier_id,
            "amount": money_str(self.amount),
            "method": self.method,
            "status": self.status,
            "reference_note": self.reference_note,
            "created_by": self.created_by,
            "confirmed_by": self.confirmed_by,
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "created_at": to_utc_z(self.created_at),
        }


class SalesReturn(db.Model):
    """
    Goods returned by a customer. A completed return credits the customer.
    """
    __tablename__ = "sales_returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_number = db.Column(db.String(64), nullable=False, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    sales_order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_number": self.return_number,
            "customer_id": self.customer_id,
            "sales_order_id": self.sales_order_id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "total_amount": money_str(self.total_amount),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class PurchaseReturn(db.Model):
    """
    Goods sent back to a supplier. A completed return debits the supplier.
    """
    __tablename__ = "purchase_returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_number = db.Column(db.String(64), nullable=False, unique=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    total_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_number": self.return_number,
            "supplier_id": self.supplier_id,
            "purchase_id": self.purchase_id,
            "branch_id": self.branch_id,
            "user_id": self.user_id,
            "total_amount": money_str(self.total_amount),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
