from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable product with its live stock counters.

    STOCK: `stock` is real inventory on hand and may never go negative
    (enforced by the inventory service and a CHECK constraint).
    `pre_sale_reserved` forecasts pre-sale demand and never touches stock.

    CONCURRENCY: version_id_col makes every UPDATE conditional on the
    version that was read, so two writers racing for the last unit cannot
    both commit.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("pre_sale_reserved >= 0", name="ck_products_pre_sale_non_negative"),
        db.Index("ix_products_position", "position"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in the smallest currency unit
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    pre_sale_reserved = db.Column(db.Integer, nullable=False, default=0)
    restock_count = db.Column(db.Integer, nullable=False, default=0)

    # Channels where the product is offered: pos, pre-sale, self-service
    availability = db.Column(db.JSON, nullable=False, default=list)
    position = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} name={self.name!r} stock={self.stock}>"

    def is_available_in(self, channel: str) -> bool:
        return channel in (self.availability or [])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "pre_sale_reserved": self.pre_sale_reserved,
            "restock_count": self.restock_count,
            "availability": list(self.availability or []),
            "position": self.position,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseCounter(db.Model):
    """
    Monotonic per-category counter used to mint purchase ids.

    WHY: Counters live in the same transactional store as purchases so the
    increment and the purchase insert commit (or fail) together. Never
    decremented; a cancelled purchase keeps its number.
    """
    __tablename__ = "purchase_counters"
    __table_args__ = (
        db.CheckConstraint("count >= 0", name="ck_purchase_counters_non_negative"),
    )

    key = db.Column(db.String(32), primary_key=True)
    count = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "count": self.count,
            "updated_at": to_utc_z(self.updated_at),
        }
