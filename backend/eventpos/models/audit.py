from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AuditLogEntry(db.Model):
    """Append-only record of a sensitive action. Never updated or deleted."""
    __tablename__ = "audit_log"
    __table_args__ = (
        db.Index("ix_audit_log_timestamp", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    actor_id = db.Column(db.String(64), nullable=False, index=True)
    actor_name = db.Column(db.String(128), nullable=False)

    action = db.Column(db.String(32), nullable=False, index=True)  # constants.AuditAction
    details = db.Column(db.Text, nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_utc_z(self.timestamp),
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "action": self.action,
            "details": self.details,
        }
