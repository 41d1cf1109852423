# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/vendshop/routes/admin.py
"""
Admin routes.

Provides endpoints for:
- User management (list, ban/unban, wallet credit)
- Catalog management (create, update, delete, add stock)
- Purchase moderation flag (approve / reject; advisory only)
- Ledger views and balance reconciliation
- Site settings

All endpoints require an authenticated administrator.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..models import Product
from ..models.ledger import PURCHASE_STATUS_APPROVED, PURCHASE_STATUS_PENDING, PURCHASE_STATUS_REJECTED
from ..money import from_cents
from ..services import (
    auth_service,
    ledger_service,
    products_service,
    purchase_service,
    settings_service,
    wallet_service,
)
from ..validation import (
    ValidationError,
    NotFoundError,
    ForbiddenError,
    PRODUCT_POLICY,
    enforce_rules_product,
    normalize_product_payload,
    validate_payload,
    validate_stock_units,
)
from ..decorators import require_auth, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_admin
def list_users():
    users = auth_service.list_users()
    return jsonify([u.to_dict() for u in users]), 200


@admin_bp.patch("/users/<int:user_id>/ban")
@require_auth
@require_admin
def ban_user(user_id: int):
    """
    Request body:
    - banned: bool (required)
    """
    data = request.get_json(silent=True) or {}
    banned = data.get("banned")

    if not isinstance(banned, bool):
        return jsonify({"message": "Invalid banned value"}), 400

    try:
        user = auth_service.set_banned(user_id, banned)
        current_app.logger.info("Admin %s set banned=%s on user %s", g.current_user.id, banned, user_id)
        return jsonify(user.to_dict()), 200
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update user")
        return jsonify({"message": "Failed to update user"}), 500


@admin_bp.post("/users/<int:user_id>/balance")
@require_auth
@require_admin
def add_balance(user_id: int):
    """
    Credit a user's wallet (ledger type admin_add).

    Request body:
    - amount: number (required, > 0)
    """
    data = request.get_json(silent=True) or {}

    try:
        balance_cents = wallet_service.admin_credit(user_id, data.get("amount"), actor=g.current_user)
        current_app.logger.info("Admin %s credited user %s", g.current_user.id, user_id)
        return jsonify({"balance": from_cents(balance_cents)}), 200

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except ForbiddenError as e:
        return jsonify({"message": str(e)}), 403
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add balance")
        return jsonify({"message": "Failed to add balance"}), 500


# =============================================================================
# CATALOG MANAGEMENT
# =============================================================================

@admin_bp.get("/products")
@require_auth
@require_admin
def list_products_with_stock():
    products = products_service.list_products()
    return jsonify([p.to_dict(include_stock=True) for p in products]), 200


@admin_bp.post("/products")
@require_auth
@require_admin
def create_product_route():
    """
    Request body:
    - name: str (required)
    - price: number (required, > 0)
    - description, image, category: str (optional)
    - stockData: list[str] (optional)
    """
    try:
        payload = normalize_product_payload(request.get_json(silent=True) or {})
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400

    try:
        product = products_service.create_product(patch=patch)
        return jsonify(product.to_dict(include_stock=True)), 201
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"message": "Failed to create product"}), 500


@admin_bp.patch("/products/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    try:
        payload = normalize_product_payload(request.get_json(silent=True) or {})
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400

    try:
        product = products_service.update_product(product_id=product_id, patch=patch)
        return jsonify(product.to_dict(include_stock=True)), 200
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"message": "Failed to update product"}), 500


@admin_bp.delete("/products/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    if not products_service.delete_product(product_id=product_id):
        return jsonify({"message": "Product not found"}), 404
    return jsonify({"message": "Product deleted"}), 200


@admin_bp.post("/products/<int:product_id>/stock")
@require_auth
@require_admin
def add_stock_route(product_id: int):
    """
    Append stock units to the end of the FIFO list.

    Request body:
    - units: list[str] (required); units already in stock are skipped
    """
    data = request.get_json(silent=True) or {}

    try:
        units = validate_stock_units(data.get("units"))
        product, added = products_service.add_stock(product_id=product_id, units=units)
        return jsonify({"product": product.to_dict(include_stock=True), "added": added}), 200

    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"message": "Failed to add stock"}), 500


# =============================================================================
# PURCHASES & LEDGER
# =============================================================================

@admin_bp.get("/purchases")
@require_auth
@require_admin
def list_all_purchases():
    purchases = purchase_service.list_purchases()
    return jsonify([p.to_dict() for p in purchases]), 200


@admin_bp.get("/purchases/pending")
@require_auth
@require_admin
def list_pending_purchases():
    purchases = purchase_service.list_purchases(status=PURCHASE_STATUS_PENDING)
    return jsonify([p.to_dict() for p in purchases]), 200


def _set_status(purchase_id: int, status: str):
    try:
        purchase = purchase_service.set_purchase_status(purchase_id, status)
        return jsonify(purchase.to_dict()), 200
    except NotFoundError as e:
        return jsonify({"message": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update purchase status")
        return jsonify({"message": "Failed to update purchase"}), 500


@admin_bp.patch("/purchases/<int:purchase_id>/approve")
@require_auth
@require_admin
def approve_purchase(purchase_id: int):
    return _set_status(purchase_id, PURCHASE_STATUS_APPROVED)


@admin_bp.patch("/purchases/<int:purchase_id>/reject")
@require_auth
@require_admin
def reject_purchase(purchase_id: int):
    return _set_status(purchase_id, PURCHASE_STATUS_REJECTED)


@admin_bp.get("/transactions")
@require_auth
@require_admin
def list_all_transactions():
    transactions = ledger_service.list_transactions()
    return jsonify([t.to_dict() for t in transactions]), 200


@admin_bp.get("/ledger/reconcile")
@require_auth
@require_admin
def reconcile_ledger():
    """
    Compare every balance to the signed sum of its ledger entries.
    """
    results = ledger_service.reconcile_all()
    unbalanced = [r.to_dict() for r in results if not r.balanced]
    return jsonify({
        "users": len(results),
        "unbalanced": unbalanced,
        "balanced": not unbalanced,
    }), 200


# =============================================================================
# SETTINGS
# =============================================================================

@admin_bp.patch("/settings")
@require_auth
@require_admin
def update_settings_route():
    """
    Request body:
    - depositWorld: str (required, non-blank)
    """
    data = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(data.get("depositWorld"))
        return jsonify(settings.to_dict()), 200
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"message": "Failed to update settings"}), 500
