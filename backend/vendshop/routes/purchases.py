# Overview: Flask API routes for the caller's purchase history.

from flask import Blueprint, jsonify, g, current_app

from ..services import purchase_service
from ..decorators import require_auth

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
def list_my_purchases():
    """Purchases of the authenticated user, newest first."""
    try:
        purchases = purchase_service.list_user_purchases(g.current_user.id)
        return jsonify([p.to_dict() for p in purchases]), 200
    except Exception:
        current_app.logger.exception("Failed to fetch purchases")
        return jsonify({"message": "Failed to fetch purchases"}), 500
