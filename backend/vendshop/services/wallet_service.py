# Overview: Service-layer operations for wallet credits; self top-up and admin credit.

from __future__ import annotations

from ..extensions import db
from ..models import User
from ..models.ledger import TX_TOPUP, TX_ADMIN_ADD
from ..money import format_cents
from ..validation import ValidationError, NotFoundError, ForbiddenError, parse_amount_cents
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .ledger_service import append_transaction


ADJUSTMENT_DESCRIPTIONS = {
    TX_TOPUP: "Topped up wallet with {amount}",
    TX_ADMIN_ADD: "Admin added {amount} to wallet",
}


class WalletError(ValidationError):
    """Raised for invalid wallet adjustments."""


def adjust_balance(user_id: int, amount, tx_type: str, actor: User | None = None) -> int:
    """
    Credit a user's wallet and record the ledger entry.

    amount is the client's decimal amount (finite, positive, rounded to
    cents). For admin_add, a supplied actor must be an admin; a missing
    actor means a trusted caller such as the CLI.

    Returns the new balance in cents.
    """
    if tx_type not in ADJUSTMENT_DESCRIPTIONS:
        raise WalletError(f"Unsupported adjustment type: {tx_type}")

    amount_cents = parse_amount_cents(amount)

    if tx_type == TX_ADMIN_ADD and actor is not None and not actor.is_admin:
        raise ForbiddenError("Forbidden - Admin access required")

    def _op():
        begin_write_transaction()

        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFoundError("User not found")

        user.balance_cents = user.balance_cents + amount_cents

        append_transaction(
            user_id=user.id,
            tx_type=tx_type,
            amount_cents=amount_cents,
            description=ADJUSTMENT_DESCRIPTIONS[tx_type].format(amount=format_cents(amount_cents)),
        )

        db.session.commit()
        return user.balance_cents

    return run_with_retry(_op)


def top_up(user_id: int, amount) -> int:
    return adjust_balance(user_id, amount, TX_TOPUP)


def admin_credit(user_id: int, amount, actor: User | None = None) -> int:
    return adjust_balance(user_id, amount, TX_ADMIN_ADD, actor=actor)
