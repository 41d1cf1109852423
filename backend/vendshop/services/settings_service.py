# Overview: Service-layer operations for site settings; lazily created singleton.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Settings
from ..models.settings import SETTINGS_KEY
from ..validation import ValidationError


def get_settings() -> Settings:
    """
    Return the settings row, creating it with an empty deposit world on
    first read. Safe to call repeatedly and concurrently (idempotent).
    """
    settings = db.session.query(Settings).filter_by(key=SETTINGS_KEY).first()
    if settings:
        return settings

    settings = Settings(key=SETTINGS_KEY, deposit_world="")
    db.session.add(settings)
    try:
        db.session.commit()
    except IntegrityError:
        # Another request created it first
        db.session.rollback()
        settings = db.session.query(Settings).filter_by(key=SETTINGS_KEY).one()
    return settings


def update_settings(deposit_world: str) -> Settings:
    if not isinstance(deposit_world, str) or not deposit_world.strip():
        raise ValidationError("Deposit World is required")

    settings = get_settings()
    settings.deposit_world = deposit_world.strip()
    db.session.commit()
    return settings
