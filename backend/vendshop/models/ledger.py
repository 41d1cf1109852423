from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from vendshop.time_utils import to_utc_z


PURCHASE_STATUS_PENDING = "pending"
PURCHASE_STATUS_APPROVED = "approved"
PURCHASE_STATUS_REJECTED = "rejected"

PURCHASE_STATUSES = (
    PURCHASE_STATUS_PENDING,
    PURCHASE_STATUS_APPROVED,
    PURCHASE_STATUS_REJECTED,
)

TX_PURCHASE = "purchase"
TX_TOPUP = "topup"
TX_ADMIN_ADD = "admin_add"
TX_REFUND = "refund"

TRANSACTION_TYPES = (TX_PURCHASE, TX_TOPUP, TX_ADMIN_ADD, TX_REFUND)


class Purchase(db.Model):
    """
    One delivered stock unit.

    product_name and price_cents are snapshots taken at sale time, so the
    row stays meaningful after the product is edited or deleted.
    product_id has no foreign key.

    status is moderation metadata only; nothing gates on it.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_purchases_status",
        ),
        db.Index("ix_purchases_user_date", "user_id", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    price_cents = db.Column(db.BigInteger, nullable=False)
    stock_data = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=PURCHASE_STATUS_PENDING)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "productId": self.product_id,
            "productName": self.product_name,
            "price": from_cents(self.price_cents),
            "priceCents": self.price_cents,
            "stockData": self.stock_data,
            "status": self.status,
            "purchaseDate": to_utc_z(self.purchase_date),
        }


class Transaction(db.Model):
    """
    Append-only wallet ledger entry.

    amount_cents is always positive; the sign comes from type (purchase
    debits, everything else credits). Rows are never updated or deleted.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
        db.Index("ix_transactions_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    description = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.type,
            "amount": from_cents(self.amount_cents),
            "amountCents": self.amount_cents,
            "description": self.description,
            "createdAt": to_utc_z(self.created_at),
        }
