# backend/vendshop/services/products_service.py
"""
Catalog Service

Admin CRUD for products plus stock replenishment. Stock writes go through
the same write-transaction discipline as purchases, so an admin edit can
never resurrect units a concurrent purchase has already delivered.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry

PRODUCT_MUTABLE_FIELDS = {"name", "description", "price_cents", "image", "stock_data", "category"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products() -> list[Product]:
    """Newest first, as the storefront shows them."""
    return db.session.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.
    """
    p = Product(stock_data=[], category="general")
    apply_product_patch(p, patch)
    if p.description is None:
        p.description = ""

    db.session.add(p)
    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    def _op():
        begin_write_transaction()
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not p:
            raise NotFoundError("Product not found")
        apply_product_patch(p, patch)
        db.session.commit()
        return p

    return run_with_retry(_op)


def delete_product(*, product_id: int) -> bool:
    """
    Delete a product. Purchase rows keep their snapshots and are not touched.
    """
    p = db.session.query(Product).filter_by(id=product_id).first()
    if not p:
        return False
    db.session.delete(p)
    db.session.commit()
    return True


def add_stock(*, product_id: int, units: list[str]) -> tuple[Product, int]:
    """
    Append units to the tail of the stock list.

    Units already in stock (or repeated in the request) are skipped, so
    the list never holds the same unit twice. Returns (product, added).
    """
    def _op():
        begin_write_transaction()
        p = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not p:
            raise NotFoundError("Product not found")

        stock = list(p.stock_data or [])
        seen = set(stock)
        added = 0
        for unit in units:
            if unit in seen:
                continue
            stock.append(unit)
            seen.add(unit)
            added += 1

        p.stock_data = stock
        db.session.commit()
        return p, added

    return run_with_retry(_op)
