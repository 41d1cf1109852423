from __future__ import annotations

from ..extensions import db
from vendshop.time_utils import to_utc_z


SETTINGS_KEY = "global"


class Settings(db.Model):
    """
    Site-wide settings singleton (one row, key="global").

    Created lazily by settings_service.get_settings().
    """
    __tablename__ = "settings"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(32), nullable=False, unique=True, default=SETTINGS_KEY)

    # In-game world where players drop deposits
    deposit_world = db.Column(db.String(255), nullable=False, default="")

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "depositWorld": self.deposit_world,
            "updatedAt": to_utc_z(self.updated_at),
        }
