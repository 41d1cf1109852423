# Overview: Service-layer operations for purchases; the stock-backed purchase engine.

"""
Purchase Service - stock units sold against the wallet balance

A purchase moves N units from the head of Product.stock_data to the buyer,
debits price * N from the buyer's balance, and records N Purchase rows plus
one purchase Transaction. All four writes commit together or not at all.

INVARIANTS:
- Units are delivered FIFO (index 0 first) and each unit is sold once.
- A balance never goes negative.
- Every check runs against rows read inside the write transaction, so two
  concurrent buyers of the last unit cannot both succeed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..extensions import db
from ..models import User, Product, Purchase
from ..models.ledger import PURCHASE_STATUSES, PURCHASE_STATUS_PENDING, TX_PURCHASE
from ..validation import ValidationError, NotFoundError, ForbiddenError
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .ledger_service import append_transaction


class PurchaseError(ValidationError):
    """Raised when stock or balance cannot cover a purchase."""


@dataclass
class PurchaseResult:
    purchases: list[Purchase] = field(default_factory=list)
    units_delivered: list[str] = field(default_factory=list)
    quantity: int = 1

    def to_dict(self) -> dict:
        return {
            "purchases": [p.to_dict() for p in self.purchases],
            "stockData": list(self.units_delivered),
            "quantity": self.quantity,
        }


def resolve_quantity(requested) -> int:
    """
    Clamp a requested quantity: max(1, floor(requested)).

    Zero, negative and fractional requests are coerced rather than
    rejected, and anything that is not a finite number counts as 1.
    """
    if requested is None or isinstance(requested, bool):
        return 1
    try:
        value = float(requested)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(value):
        return 1
    return max(1, math.floor(value))


def purchase(user_id: int, product_id: int, quantity=1) -> PurchaseResult:
    """
    Buy `quantity` units of a product for a user.

    Checks, in order: user exists, user not banned, product exists,
    product in stock, enough units, enough balance. The first failing check
    raises and nothing is written.

    Raises:
        NotFoundError: user or product missing
        ForbiddenError: user is banned
        PurchaseError: out of stock, not enough units, insufficient balance
    """
    qty = resolve_quantity(quantity)

    def _op():
        begin_write_transaction()

        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFoundError("User not found")

        if user.is_banned:
            raise ForbiddenError("Your account has been banned")

        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError("Product not found")

        stock = list(product.stock_data or [])
        if not stock:
            raise PurchaseError("Product is out of stock", details={"available": 0})

        if len(stock) < qty:
            raise PurchaseError(
                f"Only {len(stock)} items available",
                details={"available": len(stock), "requested": qty},
            )

        total_cents = product.price_cents * qty
        if user.balance_cents < total_cents:
            raise PurchaseError(
                "Insufficient balance",
                details={"required_cents": total_cents, "balance_cents": user.balance_cents},
            )

        delivered = stock[:qty]
        product.stock_data = stock[qty:]
        user.balance_cents = user.balance_cents - total_cents

        purchases = [
            Purchase(
                user_id=user.id,
                product_id=product.id,
                product_name=product.name,
                price_cents=product.price_cents,
                stock_data=unit,
                status=PURCHASE_STATUS_PENDING,
            )
            for unit in delivered
        ]
        db.session.add_all(purchases)

        append_transaction(
            user_id=user.id,
            tx_type=TX_PURCHASE,
            amount_cents=total_cents,
            description=f"Purchased {qty}x {product.name}",
        )

        db.session.commit()
        return PurchaseResult(purchases=purchases, units_delivered=delivered, quantity=qty)

    return run_with_retry(_op)


def list_user_purchases(user_id: int) -> list[Purchase]:
    """Newest first."""
    return (
        db.session.query(Purchase)
        .filter_by(user_id=user_id)
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        .all()
    )


def list_purchases(status: str | None = None) -> list[Purchase]:
    query = db.session.query(Purchase)
    if status is not None:
        query = query.filter_by(status=status)
    return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).all()


def set_purchase_status(purchase_id: int, status: str) -> Purchase:
    """
    Admin moderation flag. Stock and balance are untouched.
    """
    if status not in PURCHASE_STATUSES:
        raise ValidationError(f"Invalid purchase status: {status}")

    def _op():
        row = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
        if not row:
            raise NotFoundError("Purchase not found")
        row.status = status
        db.session.commit()
        return row

    return run_with_retry(_op)
