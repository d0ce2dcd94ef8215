from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CashboxSession(db.Model):
    """
    Per-operator till session.

    LIFECYCLE:
    - open: accepting sales; total_sales_cents only ever grows
    - closed: counted; closing balance, expected balance and variance fixed

    At most one open session per operator, enforced by a partial unique
    index on (operator_id) WHERE status = 'open'.
    """
    __tablename__ = "cashbox_sessions"
    __table_args__ = (
        db.CheckConstraint("total_sales_cents >= 0", name="ck_cashbox_sessions_sales_non_negative"),
        db.Index(
            "uq_cashbox_sessions_open_operator",
            "operator_id",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        db.Index("ix_cashbox_sessions_opened_at", "opened_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.String(64), nullable=False, index=True)
    operator_name = db.Column(db.String(128), nullable=False)

    status = db.Column(db.String(8), nullable=False, default="open")

    # Cash tracking (all amounts in cents)
    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    closing_balance_cents = db.Column(db.Integer, nullable=True)
    expected_balance_cents = db.Column(db.Integer, nullable=True)  # opening + sales
    variance_cents = db.Column(db.Integer, nullable=True)  # closing - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "operator_name": self.operator_name,
            "status": self.status,
            "opening_balance_cents": self.opening_balance_cents,
            "total_sales_cents": self.total_sales_cents,
            "closing_balance_cents": self.closing_balance_cents,
            "expected_balance_cents": self.expected_balance_cents,
            "variance_cents": self.variance_cents,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "version_id": self.version_id,
        }
