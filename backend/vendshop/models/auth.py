from __future__ import annotations

from ..extensions import db
from ..money import from_cents
from vendshop.time_utils import to_utc_z


class User(db.Model):
    """
    Marketplace account holding the wallet balance.

    Email and GrowID are stored lower-cased; both are globally unique.
    balance_cents never goes negative: the purchase and wallet services
    enforce it, the CHECK constraint only backs them up.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("balance_cents >= 0", name="ck_users_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    balance_cents = db.Column(db.BigInteger, nullable=False, default=0)

    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_banned = db.Column(db.Boolean, nullable=False, default=False)

    # External game identifier used to correlate offline deliveries
    grow_id = db.Column(db.String(20), nullable=True, unique=True)

    reset_token = db.Column(db.String(64), nullable=True, index=True)
    reset_token_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "balance": from_cents(self.balance_cents),
            "balanceCents": self.balance_cents,
            "isAdmin": self.is_admin,
            "isBanned": self.is_banned,
            "growId": self.grow_id,
            "createdAt": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    Only the SHA-256 hash of the token is stored; the plaintext is handed
    to the client once at login.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
            "lastUsedAt": to_utc_z(self.last_used_at),
            "expiresAt": to_utc_z(self.expires_at),
        }
