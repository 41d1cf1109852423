# Overview: Service-layer operations for the wallet ledger; append, list and reconcile.

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, func

from ..extensions import db
from ..models import Transaction, User
from ..models.ledger import TRANSACTION_TYPES, TX_PURCHASE
from ..validation import NotFoundError
"""
VendShop Wallet Ledger Invariants (authoritative)

- Append-only: transactions are never updated or deleted.
- amount_cents is always > 0; the sign is implied by type.
  purchase is a debit, topup / admin_add / refund are credits.
- Entries are written inside the same DB transaction as the balance change
  they record.
- Starting from a zero balance, the signed sum of a user's entries equals
  User.balance_cents.
"""


@dataclass(frozen=True)
class Reconciliation:
    user_id: int
    balance_cents: int
    ledger_cents: int

    @property
    def difference_cents(self) -> int:
        return self.balance_cents - self.ledger_cents

    @property
    def balanced(self) -> bool:
        return self.difference_cents == 0

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "balanceCents": self.balance_cents,
            "ledgerCents": self.ledger_cents,
            "differenceCents": self.difference_cents,
            "balanced": self.balanced,
        }


def signed_amount_cents(tx: Transaction) -> int:
    return -tx.amount_cents if tx.type == TX_PURCHASE else tx.amount_cents


def append_transaction(
    *,
    user_id: int,
    tx_type: str,
    amount_cents: int,
    description: str,
) -> Transaction:
    """
    Append a ledger entry to the current DB transaction.

    Does not commit; the caller commits together with the balance change.
    """
    if tx_type not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type: {tx_type}")
    if amount_cents <= 0:
        raise ValueError("Transaction amount must be positive")

    tx = Transaction(
        user_id=user_id,
        type=tx_type,
        amount_cents=amount_cents,
        description=description,
    )
    db.session.add(tx)
    db.session.flush()  # ensures tx.id is assigned without committing
    return tx


def list_user_transactions(user_id: int) -> list[Transaction]:
    """Newest first."""
    return (
        db.session.query(Transaction)
        .filter_by(user_id=user_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )


def list_transactions() -> list[Transaction]:
    return (
        db.session.query(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )


def _signed_sum_expr():
    signed = case(
        (Transaction.type == TX_PURCHASE, -Transaction.amount_cents),
        else_=Transaction.amount_cents,
    )
    return func.coalesce(func.sum(signed), 0)


def reconcile_user(user_id: int) -> Reconciliation:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")

    ledger_cents = (
        db.session.query(_signed_sum_expr())
        .filter(Transaction.user_id == user_id)
        .scalar()
    )
    return Reconciliation(
        user_id=user.id,
        balance_cents=user.balance_cents,
        ledger_cents=int(ledger_cents or 0),
    )


def reconcile_all() -> list[Reconciliation]:
    """Reconcile every user in one grouped query."""
    sums = dict(
        db.session.query(Transaction.user_id, _signed_sum_expr())
        .group_by(Transaction.user_id)
        .all()
    )
    users = db.session.query(User).order_by(User.id.asc()).all()
    return [
        Reconciliation(
            user_id=u.id,
            balance_cents=u.balance_cents,
            ledger_cents=int(sums.get(u.id, 0) or 0),
        )
        for u in users
    ]
