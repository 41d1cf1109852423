# Overview: Flask API routes for public site settings.

from flask import Blueprint, jsonify, current_app

from ..services import settings_service

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings_route():
    """Public: the storefront shows the deposit world."""
    try:
        return jsonify(settings_service.get_settings().to_dict()), 200
    except Exception:
        current_app.logger.exception("Failed to fetch settings")
        return jsonify({"message": "Failed to fetch settings"}), 500
