"""
Purchase engine tests.

Verifies:
- Stock is delivered FIFO and each unit is sold once
- Balance, stock, purchase rows and ledger entry change together
- Every failing precondition leaves the database untouched
- Quantity clamping
"""

import math

import pytest

from vendshop.extensions import db
from vendshop.models import User, Product, Purchase, Transaction
from vendshop.models.ledger import PURCHASE_STATUS_APPROVED, PURCHASE_STATUS_PENDING, TX_PURCHASE
from vendshop.services import ledger_service, purchase_service
from vendshop.services.purchase_service import PurchaseError, resolve_quantity
from vendshop.validation import NotFoundError, ForbiddenError


def _snapshot(user_id, product_id):
    db.session.expire_all()
    user = db.session.get(User, user_id)
    product = db.session.get(Product, product_id)
    return {
        "balance_cents": user.balance_cents,
        "stock": list(product.stock_data),
        "purchases": db.session.query(Purchase).count(),
        "transactions": db.session.query(Transaction).count(),
    }


# =============================================================================
# SUCCESSFUL PURCHASES
# =============================================================================


class TestPurchase:

    def test_two_of_three_units(self, user, product):
        """price 10.00, balance 25.00, stock 3, quantity 2."""
        result = purchase_service.purchase(user.id, product.id, 2)

        assert result.quantity == 2
        assert result.units_delivered == ["CODE-1", "CODE-2"]

        db.session.expire_all()
        assert db.session.get(User, user.id).balance_cents == 500
        assert db.session.get(Product, product.id).stock_data == ["CODE-3"]

        rows = db.session.query(Purchase).filter_by(user_id=user.id).order_by(Purchase.id).all()
        assert [r.stock_data for r in rows] == ["CODE-1", "CODE-2"]
        assert all(r.price_cents == 1000 for r in rows)
        assert all(r.product_name == "Seed Pack" for r in rows)
        assert all(r.status == PURCHASE_STATUS_PENDING for r in rows)

        debits = db.session.query(Transaction).filter_by(user_id=user.id, type=TX_PURCHASE).all()
        assert len(debits) == 1
        assert debits[0].amount_cents == 2000
        assert debits[0].description == "Purchased 2x Seed Pack"

    def test_units_delivered_fifo_across_purchases(self, make_user, make_product):
        buyer = make_user(balance=100.00)
        item = make_product(price_cents=100, stock=["a", "b", "c", "d"])

        first = purchase_service.purchase(buyer.id, item.id, 1)
        second = purchase_service.purchase(buyer.id, item.id, 2)

        assert first.units_delivered == ["a"]
        assert second.units_delivered == ["b", "c"]
        db.session.expire_all()
        assert db.session.get(Product, item.id).stock_data == ["d"]

    def test_exact_balance_reaches_zero(self, make_user, make_product):
        buyer = make_user(balance=10.00)
        item = make_product(price_cents=1000, stock=["only"])

        purchase_service.purchase(buyer.id, item.id)

        db.session.expire_all()
        assert db.session.get(User, buyer.id).balance_cents == 0
        assert db.session.get(Product, item.id).stock_data == []

    def test_result_serialises_delivered_units(self, user, product):
        payload = purchase_service.purchase(user.id, product.id, 1).to_dict()
        assert payload["stockData"] == ["CODE-1"]
        assert payload["quantity"] == 1
        assert len(payload["purchases"]) == 1
        assert payload["purchases"][0]["stockData"] == "CODE-1"

    def test_ledger_reconciles_after_purchases(self, user, product):
        purchase_service.purchase(user.id, product.id, 1)
        purchase_service.purchase(user.id, product.id, 1)

        rec = ledger_service.reconcile_user(user.id)
        assert rec.balanced
        assert rec.balance_cents == 500


# =============================================================================
# REFUSED PURCHASES - NOTHING WRITTEN
# =============================================================================


class TestPurchaseRefused:

    def test_insufficient_balance(self, make_user, product):
        buyer = make_user(balance=5.00)
        before = _snapshot(buyer.id, product.id)

        with pytest.raises(PurchaseError) as exc:
            purchase_service.purchase(buyer.id, product.id, 1)

        assert str(exc.value) == "Insufficient balance"
        assert exc.value.details["required_cents"] == 1000
        assert _snapshot(buyer.id, product.id) == before

    def test_out_of_stock(self, user, make_product):
        empty = make_product(stock=[])
        before = _snapshot(user.id, empty.id)

        with pytest.raises(PurchaseError, match="Product is out of stock"):
            purchase_service.purchase(user.id, empty.id)

        assert _snapshot(user.id, empty.id) == before

    def test_not_enough_units(self, make_user, product):
        buyer = make_user(balance=100.00)
        before = _snapshot(buyer.id, product.id)

        with pytest.raises(PurchaseError, match="Only 3 items available"):
            purchase_service.purchase(buyer.id, product.id, 4)

        assert _snapshot(buyer.id, product.id) == before

    def test_stock_checked_before_balance(self, make_user, product):
        broke = make_user(balance=0)
        with pytest.raises(PurchaseError, match="Only 3 items available"):
            purchase_service.purchase(broke.id, product.id, 5)

    def test_banned_user(self, make_user, product):
        banned = make_user(balance=50.00, is_banned=True)
        before = _snapshot(banned.id, product.id)

        with pytest.raises(ForbiddenError, match="Your account has been banned"):
            purchase_service.purchase(banned.id, product.id)

        assert _snapshot(banned.id, product.id) == before

    def test_missing_product(self, user):
        with pytest.raises(NotFoundError, match="Product not found"):
            purchase_service.purchase(user.id, 999_999)

    def test_missing_user(self, product):
        with pytest.raises(NotFoundError, match="User not found"):
            purchase_service.purchase(999_999, product.id)

    def test_session_usable_after_refusal(self, make_user, product):
        buyer = make_user(balance=5.00)
        with pytest.raises(PurchaseError):
            purchase_service.purchase(buyer.id, product.id)

        purchase_service.purchase(
            make_user(balance=20.00).id, product.id
        )
        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_data == ["CODE-2", "CODE-3"]

    def test_failed_ledger_write_rolls_back_everything(self, make_user, product, monkeypatch):
        buyer = make_user(balance=50.00)
        before = _snapshot(buyer.id, product.id)

        def _fail(**kwargs):
            raise RuntimeError("ledger write failed")

        monkeypatch.setattr(purchase_service, "append_transaction", _fail)

        with pytest.raises(RuntimeError, match="ledger write failed"):
            purchase_service.purchase(buyer.id, product.id, 2)

        after = _snapshot(buyer.id, product.id)
        assert after == before
        assert after["stock"] == ["CODE-1", "CODE-2", "CODE-3"]
        assert after["balance_cents"] == 5000


# =============================================================================
# QUANTITY CLAMPING
# =============================================================================


class TestResolveQuantity:

    @pytest.mark.parametrize(
        "requested,expected",
        [
            (1, 1),
            (3, 3),
            (2.9, 2),
            (0, 1),
            (-4, 1),
            (0.5, 1),
            ("2", 2),
            ("abc", 1),
            (None, 1),
            (True, 1),
            ([], 1),
            (math.nan, 1),
            (math.inf, 1),
        ],
    )
    def test_clamps(self, requested, expected):
        assert resolve_quantity(requested) == expected

    def test_zero_quantity_buys_one(self, user, product):
        result = purchase_service.purchase(user.id, product.id, 0)
        assert result.quantity == 1
        assert result.units_delivered == ["CODE-1"]


# =============================================================================
# MODERATION STATUS
# =============================================================================


class TestPurchaseStatus:

    def test_status_change_touches_nothing_else(self, user, product):
        result = purchase_service.purchase(user.id, product.id, 1)
        purchase_id = result.purchases[0].id
        before = _snapshot(user.id, product.id)

        row = purchase_service.set_purchase_status(purchase_id, PURCHASE_STATUS_APPROVED)

        assert row.status == PURCHASE_STATUS_APPROVED
        assert _snapshot(user.id, product.id) == before

    def test_pending_filter(self, user, product):
        result = purchase_service.purchase(user.id, product.id, 2)
        purchase_service.set_purchase_status(result.purchases[0].id, PURCHASE_STATUS_APPROVED)

        pending = purchase_service.list_purchases(status=PURCHASE_STATUS_PENDING)
        assert [p.id for p in pending] == [result.purchases[1].id]

    def test_unknown_purchase(self, db_session):
        with pytest.raises(NotFoundError):
            purchase_service.set_purchase_status(123456, PURCHASE_STATUS_APPROVED)
