from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from vendshop.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog item sold as discrete, non-fungible stock units.

    stock_data is an ordered list of unit strings (codes, credentials).
    Its length is the available quantity. Index 0 is the oldest unit and
    is delivered first; new units are appended at the end.

    The list is a JSON column, so it must be reassigned (never mutated in
    place) for SQLAlchemy to see the change.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price_cents > 0", name="ck_products_price_positive"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.BigInteger, nullable=False)

    image = db.Column(db.String(1024), nullable=True)
    stock_data = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(64), nullable=False, default="general")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_count}>"

    @property
    def stock_count(self) -> int:
        return len(self.stock_data or [])

    def to_dict(self, include_stock: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": from_cents(self.price_cents),
            "priceCents": self.price_cents,
            "image": self.image,
            "category": self.category,
            "stockCount": self.stock_count,
            "createdAt": to_utc_z(self.created_at),
        }
        # Unit strings are the goods themselves; only admins see them.
        if include_stock:
            data["stockData"] = list(self.stock_data or [])
        return data
