# Overview: Flask API routes for the caller's wallet; top-up, GrowID and ledger.

# backend/vendshop/routes/wallet.py
"""Wallet API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..money import from_cents
from ..services import wallet_service, growid_service, ledger_service
from ..validation import ValidationError, NotFoundError, validate_grow_id
from ..decorators import require_auth

wallet_bp = Blueprint("wallet", __name__, url_prefix="/api")


@wallet_bp.post("/wallet/topup")
@require_auth
def topup_route():
    """
    Credit the caller's own wallet.

    Body: {amount: number}
    """
    data = request.get_json(silent=True) or {}
    user_id = g.current_user.id

    try:
        balance_cents = wallet_service.top_up(user_id, data.get("amount"))
        current_app.logger.info("User %s topped up, balance now %s cents", user_id, balance_cents)
        return jsonify({"balance": from_cents(balance_cents)}), 200

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Top up failed")
        return jsonify({"message": "Top up failed"}), 500


@wallet_bp.post("/wallet/growid")
@require_auth
def set_grow_id_route():
    """
    Bind or update the caller's GrowID.

    Body: {growId: string} (3-20 chars, letters/digits/underscore)
    """
    data = request.get_json(silent=True) or {}
    user_id = g.current_user.id

    try:
        grow_id = validate_grow_id(data.get("growId"))
        user = growid_service.set_grow_id(user_id, grow_id)
        current_app.logger.info("User %s bound GrowID %s", user_id, user.grow_id)
        return jsonify(user.to_dict()), 200

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set GrowID")
        return jsonify({"message": "Failed to set GrowID"}), 500


@wallet_bp.get("/transactions")
@require_auth
def list_my_transactions():
    """Ledger entries of the authenticated user, newest first."""
    try:
        transactions = ledger_service.list_user_transactions(g.current_user.id)
        return jsonify([t.to_dict() for t in transactions]), 200
    except Exception:
        current_app.logger.exception("Failed to fetch transactions")
        return jsonify({"message": "Failed to fetch transactions"}), 500
