# Overview: Service-layer operations for GrowID binding; one identifier per account.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ValidationError, NotFoundError
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry


class GrowIdTakenError(ValidationError):
    """Raised when another account already holds the GrowID."""

    def __init__(self):
        super().__init__("This GrowID is already taken by another user")


def normalize_grow_id(raw: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("GrowID is required")
    return raw.strip().lower()


def find_user_by_grow_id(grow_id: str) -> User | None:
    return db.session.query(User).filter_by(grow_id=normalize_grow_id(grow_id)).first()


def set_grow_id(user_id: int, raw_grow_id: str) -> User:
    """
    Bind a GrowID to a user.

    Comparison and storage use the lower-cased value. Re-binding the
    caller's own GrowID is a no-op success. The unique index on
    users.grow_id catches a bind that races past the lookup; that
    IntegrityError is reported as GrowIdTakenError.
    """
    normalized = normalize_grow_id(raw_grow_id)

    def _op():
        begin_write_transaction()

        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFoundError("User not found")

        holder = db.session.query(User).filter_by(grow_id=normalized).first()
        if holder is not None and holder.id != user.id:
            raise GrowIdTakenError()

        user.grow_id = normalized
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise GrowIdTakenError()
        return user

    return run_with_retry(_op)
