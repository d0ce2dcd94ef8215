# backend/eventpos/services/products_service.py
"""
Product catalogue service

Catalogue fields (name, price, availability, position) are edited here.
Stock is not: it only moves through the ledger engine, returns and
`restock_product`.
"""
from __future__ import annotations

import uuid

from ..constants import AuditAction, ProductAvailability
from ..errors import ConflictError, ProductNotFound, ValidationError
from ..extensions import db
from ..identity import Actor
from ..models import Product
from . import inventory_service
from .audit_service import append_entry
from .concurrency import run_in_transaction

PRODUCT_MUTABLE_FIELDS = {"name", "price_cents", "availability", "position"}


def _normalize_availability(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, ProductAvailability)):
        value = [value]
    try:
        channels = [ProductAvailability(v).value for v in value]
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return list(dict.fromkeys(channels))


def _check_non_negative(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer")
    return value


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            raise ValidationError(f"Field '{k}' cannot be changed through the catalogue")
        if k == "availability":
            v = _normalize_availability(v)
        elif k in {"price_cents", "position"}:
            v = _check_non_negative(k, v)
        elif k == "name":
            v = (v or "").strip()
            if not v:
                raise ValidationError("name is required")
        setattr(p, k, v)


def create_product(
    name: str,
    price_cents: int,
    *,
    stock: int = 0,
    availability=None,
    product_id: str | None = None,
) -> Product:
    """Add a product at the end of the catalogue order."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    price_cents = _check_non_negative("price_cents", price_cents)
    stock = _check_non_negative("stock", stock)
    channels = _normalize_availability(availability)

    def _op():
        if product_id and db.session.get(Product, product_id) is not None:
            raise ConflictError(f"Product {product_id} already exists")
        position = db.session.query(Product).count()
        product = Product(
            id=product_id or uuid.uuid4().hex[:20],
            name=name,
            price_cents=price_cents,
            stock=stock,
            pre_sale_reserved=0,
            restock_count=0,
            availability=channels,
            position=position,
        )
        db.session.add(product)
        return product

    return run_in_transaction(_op)


def update_product(product_id: str, patch: dict) -> Product:
    def _op():
        product = db.session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        apply_product_patch(product, patch)
        return product

    return run_in_transaction(_op)


def get_product(product_id: str) -> Product | None:
    return db.session.get(Product, product_id)


def list_products(channel: ProductAvailability | str | None = None) -> list[Product]:
    """Catalogue in display order, optionally only products offered on `channel`."""
    products = db.session.query(Product).order_by(Product.position.asc(), Product.name.asc()).all()
    if channel is None:
        return products
    wanted = ProductAvailability(channel).value
    return [p for p in products if p.is_available_in(wanted)]


def reorder_products(product_ids: list[str]) -> list[Product]:
    """Rewrite display positions to follow `product_ids`, in one transaction."""
    def _op():
        products = inventory_service.load_products(product_ids)
        for position, product_id in enumerate(dict.fromkeys(product_ids)):
            products[product_id].position = position
        return [products[pid] for pid in dict.fromkeys(product_ids)]

    return run_in_transaction(_op)


def restock_product(product_id: str, quantity: int, actor: Actor) -> Product:
    """
    Manual restock: stock goes up by `quantity`, the restock counter by one,
    and the action is audited, all atomically.
    """
    def _op():
        product = inventory_service.load_products([product_id])[product_id]
        inventory_service.release(product, quantity)
        product.restock_count = product.restock_count + 1
        append_entry(
            actor,
            AuditAction.STOCK_RESTOCK,
            f"Restocked '{product.name}'. Quantity: +{quantity}.",
        )
        return product

    return run_in_transaction(_op)
