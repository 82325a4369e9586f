# Overview: Flask API routes for contact payments; parses input and returns JSON responses.

"""
Contact Payment API Routes

WHY: Cashiers record a payment when it is reported. A supervisor confirms it
once the money is counted, and only then does it move the contact's balance.

DESIGN:
- Record: payment starts pending_confirmation, ledger entry shows "(Pending)"
- Confirm: balance replayed from the confirmation date
- Decline: payment voided, ledger entry kept for the audit trail
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import payment_service
from ..services.payment_service import PaymentError, PaymentNotFoundError


payments_bp = Blueprint("contact_payments", __name__, url_prefix="/api/contact-payments")


@payments_bp.post("/")
def record_payment_route():
    """
    Record a customer or supplier payment awaiting confirmation.

    Request body:
    {
        "contact_id": 12,
        "contact_type": "customer",
        "amount": "250.00",
        "method": "cash",
        "created_by": 3,  (optional)
        "branch_id": 1,  (optional)
        "reference_note": "Receipt 0045"  (optional)
    }

    Returns:
        201: Payment recorded
        400: Invalid input
        500: Server error
    """
    try:
        data = request.get_json() or {}

        contact_id = data.get("contact_id")
        contact_type = data.get("contact_type")
        amount = data.get("amount")
        method = data.get("method")

        if not all([contact_id, contact_type, amount, method]):
            return jsonify({"error": "contact_id, contact_type, amount, and method required"}), 400

        payment = payment_service.record_payment(
            contact_id,
            contact_type,
            amount,
            method,
            created_by=data.get("created_by"),
            branch_id=data.get("branch_id"),
            reference_note=data.get("reference_note"),
        )

        return jsonify({"payment": payment.to_dict()}), 201

    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/confirm")
def confirm_payment_route(payment_id: int):
    """Confirm a pending payment. Optional body: confirmed_by, branch_id."""
    data = request.get_json(silent=True) or {}

    try:
        payment = payment_service.confirm_payment(
            payment_id,
            confirmed_by=data.get("confirmed_by"),
            branch_id=data.get("branch_id"),
        )
        return jsonify({"payment": payment.to_dict()}), 200

    except PaymentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to confirm payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/<int:payment_id>/decline")
def decline_payment_route(payment_id: int):
    """Decline a pending payment."""
    try:
        payment = payment_service.decline_payment(payment_id)
        return jsonify({"payment": payment.to_dict()}), 200

    except PaymentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PaymentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to decline payment")
        return jsonify({"error": "Internal server error"}), 500
