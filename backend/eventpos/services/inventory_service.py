# Overview: Product stock counters; the only code that moves Product.stock.

# backend/eventpos/services/inventory_service.py

from __future__ import annotations

from typing import Iterable

from ..errors import InsufficientStock, InvalidQuantity, ProductNotFound
from ..extensions import db
from ..models import Product
"""
Inventory invariants (authoritative)

- Product.stock is never negative. `reserve` checks before it writes, so a
  failed reservation leaves the product untouched.
- `release` has no upper bound: returns, cancellations and pre-sale
  confirmation may lift stock above any earlier level.
- `reserve_pre_sale` only grows the forecast counter; real stock is not
  consulted or changed.
- These helpers never commit. They run inside `run_in_transaction`, which
  owns the commit and the optimistic version check on every product row.
"""


def load_products(product_ids: Iterable[str]) -> dict[str, Product]:
    """
    Read phase: fetch every product in one query.

    Raises ProductNotFound for the first id that does not exist.
    """
    wanted = list(dict.fromkeys(product_ids))
    if not wanted:
        return {}

    rows = db.session.query(Product).filter(Product.id.in_(wanted)).all()
    products = {p.id: p for p in rows}
    for product_id in wanted:
        if product_id not in products:
            raise ProductNotFound(product_id)
    return products


def _resolve(product: Product | str) -> Product:
    if isinstance(product, Product):
        return product
    found = db.session.get(Product, product)
    if found is None:
        raise ProductNotFound(product)
    return found


def _check_quantity(product_id: str, quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(product_id, quantity)
    return quantity


def check_available(product: Product, quantity: int) -> None:
    """Raise InsufficientStock if taking `quantity` would drive stock negative."""
    if product.stock - quantity < 0:
        raise InsufficientStock(product.id, product.name, quantity, product.stock)


def reserve(product: Product | str, quantity: int) -> Product:
    """Take `quantity` units out of stock, all or nothing."""
    product = _resolve(product)
    quantity = _check_quantity(product.id, quantity)
    check_available(product, quantity)
    product.stock = product.stock - quantity
    return product


def release(product: Product | str, quantity: int) -> Product:
    """Put `quantity` units back into stock."""
    product = _resolve(product)
    quantity = _check_quantity(product.id, quantity)
    product.stock = product.stock + quantity
    return product


def reserve_pre_sale(product: Product | str, quantity: int) -> Product:
    """Record forecast pre-sale demand; stock is left alone."""
    product = _resolve(product)
    quantity = _check_quantity(product.id, quantity)
    product.pre_sale_reserved = product.pre_sale_reserved + quantity
    return product


def get_stock(product_id: str) -> int:
    return _resolve(product_id).stock
