# Overview: Flask API routes for the storefront catalog and purchases.

# backend/vendshop/routes/products.py
"""
Storefront routes.

- Catalog reads are public and never expose stock unit strings.
- Purchasing requires authentication; the purchase service does the rest.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import products_service, purchase_service
from ..validation import ValidationError, NotFoundError, ForbiddenError
from ..decorators import require_auth

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """List all products, newest first."""
    try:
        products = products_service.list_products()
        return jsonify([p.to_dict() for p in products]), 200
    except Exception:
        current_app.logger.exception("Failed to fetch products")
        return jsonify({"message": "Failed to fetch products"}), 500


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        return jsonify(products_service.get_product(product_id).to_dict()), 200
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404


@products_bp.post("/<int:product_id>/purchase")
@require_auth
def purchase_route(product_id: int):
    """
    Buy units of a product with the caller's wallet balance.

    Body: {quantity?: number} (clamped to max(1, floor(quantity)))

    Returns {purchases, stockData, quantity}; stockData lists the delivered
    units in delivery order.
    """
    data = request.get_json(silent=True) or {}
    user_id = g.current_user.id

    try:
        result = purchase_service.purchase(user_id, product_id, data.get("quantity", 1))
        current_app.logger.info(
            "User %s bought %sx product %s", user_id, result.quantity, product_id
        )
        return jsonify(result.to_dict()), 200

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except ForbiddenError as e:
        return jsonify({"message": str(e)}), 403
    except ValidationError as e:
        return jsonify({"message": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Purchase failed")
        return jsonify({"message": "Purchase failed"}), 500
