from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Purchase(db.Model):
    """
    Purchase record: the principal ledger entity.

    IDENTIFIER: `id` is the human-readable code (e.g. "CGA0042", "PVB0007")
    minted from the channel counter inside the creating transaction.

    LIFECYCLE (see services/lifecycle_service.py):
        pending  -> paid -> delivered
        pending  -> cancelled
        pre-sale -> pre-sale-confirmed -> paid

    ITEMS: the item list is exhaustive; edits replace it wholesale and the
    stock deltas are derived from it.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_purchases_total_non_negative"),
        db.Index("ix_purchases_channel_date", "channel", "date"),
        db.Index("ix_purchases_customer_date", "customer_identifier", "date"),
    )

    id = db.Column(db.String(32), primary_key=True)
    channel = db.Column(db.String(16), nullable=False, index=True)
    status = db.Column(db.String(24), nullable=False, index=True)

    # Creation time, refreshed when the item list is edited
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    customer_identifier = db.Column(db.String(64), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True, index=True)

    seller_id = db.Column(db.String(64), nullable=True, index=True)
    seller_name = db.Column(db.String(128), nullable=True)

    total_cents = db.Column(db.Integer, nullable=False, default=0)

    # Payment confirmation
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cashier_id = db.Column(db.String(64), nullable=True)
    cashier_name = db.Column(db.String(128), nullable=True)

    confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "PurchaseItem",
        back_populates="purchase",
        order_by="PurchaseItem.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Purchase id={self.id!r} status={self.status!r} total_cents={self.total_cents}>"

    def quantities_by_product(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for item in self.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        return totals

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel": self.channel,
            "status": self.status,
            "date": to_utc_z(self.date),
            "items": [item.to_dict() for item in self.items],
            "customer_identifier": self.customer_identifier,
            "customer_phone": self.customer_phone,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "total_cents": self.total_cents,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier_name,
            "confirmed_at": to_utc_z(self.confirmed_at) if self.confirmed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "version_id": self.version_id,
        }


class PurchaseItem(db.Model):
    """
    Line item snapshot (name and unit price copied from the product at the
    time the line was written). Only `returned` changes after the purchase
    leaves an editable status.
    """
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.String(32), db.ForeignKey("purchases.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    returned = db.Column(db.Boolean, nullable=False, default=False)

    purchase = db.relationship("Purchase", back_populates="items")

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "line_total_cents": self.line_total_cents,
            "returned": bool(self.returned),
        }


class Return(db.Model):
    """
    Item return against a paid or delivered purchase.

    IMMUTABLE: returns are never edited; the purchase item only gets its
    `returned` flag set and the quantity goes back into stock.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_returns_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.String(32), db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    processed_by_id = db.Column(db.String(64), nullable=False)
    processed_by_name = db.Column(db.String(128), nullable=False)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    purchase = db.relationship("Purchase", backref=db.backref("returns", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "amount_cents": self.amount_cents,
            "reason": self.reason,
            "processed_by_id": self.processed_by_id,
            "processed_by_name": self.processed_by_name,
            "returned_at": to_utc_z(self.returned_at),
        }
