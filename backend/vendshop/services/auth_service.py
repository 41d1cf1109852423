# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Accounts are keyed by lower-cased email. Passwords are hashed with bcrypt.
Emails listed in ADMIN_EMAILS are registered as administrators.

Password reset:
- request_password_reset() stores a random token valid for
  PASSWORD_RESET_TTL_MINUTES and hands (email, link) to the notifier.
- reset_password() accepts a live token once, re-hashes the password and
  revokes every session of the account.
"""

import secrets
from datetime import timedelta

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ValidationError, NotFoundError, validate_email
from vendshop.time_utils import utcnow
from . import notification_service
from .session_service import revoke_all_user_sessions


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


class EmailTakenError(ValidationError):
    """Raised when the email is already registered."""

    def __init__(self):
        super().__init__("Email already registered")


def validate_password_strength(password: str) -> None:
    """
    Minimum length only (PASSWORD_MIN_LENGTH, default 6).

    Raises PasswordValidationError if requirements not met.
    """
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 6)
    if not isinstance(password, str) or len(password) < min_length:
        raise PasswordValidationError(f"Password must be at least {min_length} characters")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (BCRYPT_ROUNDS, default 12).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def is_admin_email(email: str) -> bool:
    admins = {e.lower() for e in current_app.config.get("ADMIN_EMAILS", [])}
    return email.lower() in admins


def create_user(email: str, password: str, is_admin: bool | None = None) -> User:
    """
    Create new user with bcrypt password hashing.

    Args:
        email: Unique email (stored lower-cased)
        password: Password meeting strength requirements
        is_admin: Force the admin flag; None derives it from ADMIN_EMAILS

    Raises:
        ValidationError: malformed email
        EmailTakenError: email already registered
        PasswordValidationError: password too weak
    """
    email = validate_email(email)

    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        raise EmailTakenError()

    password_hash = hash_password(password)

    user = User(
        email=email,
        password_hash=password_hash,
        balance_cents=0,
        is_admin=is_admin_email(email) if is_admin is None else is_admin,
        is_banned=False,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise EmailTakenError()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise. Banned users are
    returned; the caller decides how to refuse them.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        return None

    if verify_password(password, user.password_hash):
        return user

    return None


def get_user(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def set_banned(user_id: int, banned: bool) -> User:
    user = get_user(user_id)
    user.is_banned = banned
    db.session.commit()
    return user


def request_password_reset(email: str, base_url: str) -> str:
    """
    Issue a password reset token and notify the account holder.

    Returns the token (callers must not echo it to the client).

    Raises NotFoundError if no account uses the email.
    """
    if not isinstance(email, str):
        raise ValidationError("Invalid email address")

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        raise NotFoundError("No account found with this email")

    ttl = timedelta(minutes=current_app.config.get("PASSWORD_RESET_TTL_MINUTES", 60))
    token = secrets.token_hex(32)
    user.reset_token = token
    user.reset_token_expiry = utcnow() + ttl
    db.session.commit()

    link = f"{base_url.rstrip('/')}/reset-password?token={token}"
    notification_service.get_notifier().send_password_reset(user.email, link)
    return token


def reset_password(token: str, new_password: str) -> User:
    """
    Consume a reset token and set a new password.

    Raises ValidationError for unknown or expired tokens.
    """
    if not isinstance(token, str) or not token:
        raise ValidationError("Invalid or expired reset link")

    user = db.session.query(User).filter_by(reset_token=token).first()
    if not user or not user.reset_token_expiry or user.reset_token_expiry <= utcnow():
        raise ValidationError("Invalid or expired reset link")

    user.password_hash = hash_password(new_password)
    user.reset_token = None
    user.reset_token_expiry = None
    db.session.commit()

    revoke_all_user_sessions(user.id, reason="Password reset")
    return user
