# Overview: Flask API routes for contact ledgers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..models.ledger import CONTACT_CUSTOMER, CONTACT_SUPPLIER, CONTACT_TYPES
from ..money import money_str
from ..services import ledger_service, maintenance_service
from ..services.contact_registry import get_contact
from ..services.ledger_service import (
    ContactNotFoundError,
    LedgerTransactionError,
    LedgerValidationError,
)
from contact_ledger.time_utils import parse_iso_datetime

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- A plain YYYY-MM-DD end_date includes the whole day.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")

GENERIC_FAILURE = "Operation failed, try again"


def _ledger_error_response(exc):
    if isinstance(exc, ContactNotFoundError):
        return jsonify({"error": str(exc), "details": exc.details}), 404
    if isinstance(exc, LedgerValidationError):
        return jsonify({"error": str(exc), "details": exc.details}), 400
    current_app.logger.error("Ledger transaction failed: %s", exc.details.get("cause", exc))
    return jsonify({"error": GENERIC_FAILURE}), 500


def _statement_response(contact_type: str, contact_id: int):
    try:
        start_dt = parse_iso_datetime(request.args.get("start_date"))
        end_dt = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "start_date and end_date must be ISO-8601 dates"}), 400

    branch_id = request.args.get("branch_id", type=int)

    try:
        entries = ledger_service.get_statement(
            contact_id,
            contact_type,
            start_date=start_dt,
            end_date=end_dt,
            branch_id=branch_id,
        )
        contact = get_contact(contact_type, contact_id)
    except (ContactNotFoundError, LedgerValidationError, LedgerTransactionError) as exc:
        return _ledger_error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to load %s ledger", contact_type)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        contact_type: contact.to_dict(),
        "entries": [entry.to_dict() for entry in entries],
        "total_entries": len(entries),
    }), 200


@ledger_bp.get("/customer/<int:customer_id>")
def get_customer_ledger_route(customer_id: int):
    """Customer statement. Query: start_date, end_date, branch_id."""
    return _statement_response(CONTACT_CUSTOMER, customer_id)


@ledger_bp.get("/supplier/<int:supplier_id>")
def get_supplier_ledger_route(supplier_id: int):
    """Supplier statement. Query: start_date, end_date, branch_id."""
    return _statement_response(CONTACT_SUPPLIER, supplier_id)


@ledger_bp.get("/customer/<int:customer_id>/summary")
def get_customer_summary_route(customer_id: int):
    """
    Opening balance, total invoiced, total paid, advance balance and
    balance due for one customer.
    """
    try:
        summary = ledger_service.customer_ledger_summary(customer_id)
    except (ContactNotFoundError, LedgerValidationError) as exc:
        return _ledger_error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to load customer ledger summary")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        key: (money_str(value) if key != "customer_id" else value)
        for key, value in summary.items()
    }), 200


@ledger_bp.post("/entries")
def post_entry_route():
    """
    Post a financial movement.

    Body: contact_id, contact_type, transaction_date, transaction_type,
    debit_amount or credit_amount, and optionally transaction_id,
    description, branch_id, created_by.
    """
    data = request.get_json() or {}

    contact_id = data.get("contact_id")
    contact_type = data.get("contact_type")
    transaction_type = data.get("transaction_type")
    if not all([contact_id, contact_type, transaction_type, data.get("transaction_date")]):
        return jsonify({
            "error": "contact_id, contact_type, transaction_type and transaction_date required"
        }), 400

    raw_date = data.get("transaction_date")
    try:
        if not isinstance(raw_date, str):
            raise TypeError("transaction_date must be a string")
        transaction_date = parse_iso_datetime(raw_date)
    except (TypeError, ValueError):
        return jsonify({"error": "transaction_date must be an ISO-8601 datetime"}), 400

    try:
        entry = ledger_service.post_entry(
            contact_id,
            contact_type,
            transaction_date=transaction_date,
            transaction_type=transaction_type,
            transaction_id=data.get("transaction_id"),
            description=data.get("description"),
            debit_amount=data.get("debit_amount", 0),
            credit_amount=data.get("credit_amount", 0),
            branch_id=data.get("branch_id"),
            created_by=data.get("created_by"),
        )
    except (ContactNotFoundError, LedgerValidationError, LedgerTransactionError) as exc:
        return _ledger_error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to post ledger entry")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"entry": entry.to_dict()}), 201


@ledger_bp.post("/<string:contact_type>/<int:contact_id>/recalculate")
def recalculate_contact_route(contact_type: str, contact_id: int):
    """Replay one contact's ledger. Optional JSON body: branch_id."""
    if contact_type not in CONTACT_TYPES:
        return jsonify({"error": "Invalid type. Must be customer or supplier"}), 400

    data = request.get_json(silent=True) or {}

    try:
        result = ledger_service.recalculate_contact_detailed(
            contact_id, contact_type, data.get("branch_id")
        )
    except (ContactNotFoundError, LedgerValidationError, LedgerTransactionError) as exc:
        return _ledger_error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to recalculate ledger")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "contact_type": result.contact_type,
        "contact_id": result.contact_id,
        "final_balance": money_str(result.final_balance),
        "ledger_balance": money_str(result.ledger_balance),
        "entries_updated": result.entries_updated,
        "contact_updated": result.contact_updated,
    }), 200


@ledger_bp.post("/backfill")
def trigger_backfill_route():
    """Run the historical ledger backfill."""
    try:
        summary = maintenance_service.backfill_historical_ledger()
    except Exception:
        current_app.logger.exception("Failed to run ledger backfill")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Backfill completed", **summary.to_dict()}), 200


@ledger_bp.post("/repair")
def trigger_repair_route():
    """Recalculate every customer and supplier ledger."""
    try:
        summary = maintenance_service.repair_all_ledger_balances()
    except Exception:
        current_app.logger.exception("Failed to run ledger repair")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "All ledger balances have been recalculated", **summary.to_dict()}), 200
