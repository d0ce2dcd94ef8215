"""
Purchase Ledger Engine - atomic purchase operations

WHY: Purchases, product stock, purchase counters and cashbox totals must
move together. Every operation here is one `run_in_transaction` body that
reads everything first, validates, then writes; any failure leaves the
ledger exactly as it was.

OPERATIONS:
- create_purchase:        immediate sale (reserves stock) or pre-sale (forecast only)
- edit_pending_purchase:  replace the item list, moving only the stock deltas
- cancel_purchase:        pending -> cancelled, stock released once
- confirm_pre_sale:       pre-sale -> pre-sale-confirmed, quantities added to stock
- confirm_payment:        -> paid, sale added to the cashier's open session
- deliver_purchase:       paid -> delivered
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from flask import current_app

from ..constants import AuditAction, PurchaseChannel, PurchaseStatus
from ..errors import (
    EmptyCart,
    InvalidQuantity,
    MissingCustomerIdentifier,
    PurchaseNotFound,
    ValidationError,
)
from ..extensions import db
from ..identity import Actor
from ..models import Product, Purchase, PurchaseItem
from ..time_utils import utcnow
from . import cashbox_service, counter_service, inventory_service, lifecycle_service, notification_service
from .audit_service import append_entry
from .concurrency import run_in_transaction


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


def normalize_cart(items: Iterable[CartLine | Mapping] | None) -> list[CartLine]:
    """
    Validate caller cart lines.

    Accepts CartLine objects or mappings with "product_id" (or "id") and
    "quantity".

    Raises:
        EmptyCart: No lines at all
        InvalidQuantity: A quantity that is not a positive integer
    """
    lines: list[CartLine] = []
    for raw in items or []:
        if isinstance(raw, CartLine):
            product_id, quantity = raw.product_id, raw.quantity
        else:
            product_id = raw.get("product_id") or raw.get("id")
            quantity = raw.get("quantity")
        if not product_id:
            raise ValidationError("Each cart line needs a product_id")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(product_id, quantity)
        lines.append(CartLine(product_id=str(product_id), quantity=quantity))

    if not lines:
        raise EmptyCart()
    return lines


def _quantities(lines: list[CartLine]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for line in lines:
        totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
    return totals


def _build_items(
    lines: list[CartLine],
    products: dict[str, Product],
    snapshots: dict[str, tuple[str, int]] | None = None,
) -> list[PurchaseItem]:
    """
    Line items for `lines`. Products found in `snapshots` keep the name and
    unit price already recorded on the purchase; others copy the catalogue.
    """
    snapshots = snapshots or {}
    items = []
    for number, line in enumerate(lines, start=1):
        product = products[line.product_id]
        name, unit_price_cents = snapshots.get(product.id, (product.name, product.price_cents))
        items.append(PurchaseItem(
            line_number=number,
            product_id=product.id,
            name=name,
            unit_price_cents=unit_price_cents,
            quantity=line.quantity,
            returned=False,
        ))
    return items


def _channel(value) -> PurchaseChannel:
    try:
        return PurchaseChannel(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _load_purchase(purchase_id: str) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise PurchaseNotFound(purchase_id)
    return purchase


def _describe_items(purchase: Purchase) -> str:
    return ", ".join(f"{item.name} x{item.quantity}" for item in purchase.items)


def _mark_paid(purchase: Purchase, cashier: Actor, when) -> None:
    purchase.status = PurchaseStatus.PAID.value
    purchase.paid_at = when
    purchase.cashier_id = cashier.id
    purchase.cashier_name = cashier.name


# =============================================================================
# CREATE
# =============================================================================

def create_purchase(
    items: Iterable[CartLine | Mapping],
    customer_identifier: str | None,
    *,
    channel: PurchaseChannel | str = PurchaseChannel.IMMEDIATE,
    customer_phone: str | None = None,
    seller: Actor | None = None,
    collect_payment: bool = False,
) -> Purchase:
    """
    Create a purchase and mint its id.

    Immediate sales take every line out of stock or fail as a whole with
    InsufficientStock; pre-sales only grow each product's pre-sale forecast.

    With `collect_payment` (immediate sales by a seller) the purchase is
    also paid and added to the seller's open cashbox session in the same
    transaction.

    Raises:
        EmptyCart, InvalidQuantity, MissingCustomerIdentifier,
        ProductNotFound, InsufficientStock, NoActiveSession, TransactionFailed
    """
    channel = _channel(channel)
    lines = normalize_cart(items)
    customer_identifier = (customer_identifier or "").strip()
    if not customer_identifier:
        raise MissingCustomerIdentifier()
    if collect_payment and (seller is None or channel is not PurchaseChannel.IMMEDIATE):
        raise ValidationError("Collecting payment at creation requires a seller and an immediate sale")

    wanted = _quantities(lines)

    def _op():
        # Read phase
        products = inventory_service.load_products(wanted)
        counter = counter_service.read_counter(channel.value)
        till = cashbox_service.require_active_session(seller.id) if collect_payment else None

        if channel is PurchaseChannel.IMMEDIATE:
            for product_id, quantity in wanted.items():
                inventory_service.check_available(products[product_id], quantity)

        # Write phase
        for line in lines:
            if channel is PurchaseChannel.IMMEDIATE:
                inventory_service.reserve(products[line.product_id], line.quantity)
            else:
                inventory_service.reserve_pre_sale(products[line.product_id], line.quantity)

        count = counter_service.advance(channel.value, counter)
        now = utcnow()

        purchase = Purchase(
            id=counter_service.format_purchase_id(channel, products[lines[0].product_id].name, count),
            channel=channel.value,
            status=(
                PurchaseStatus.PENDING.value
                if channel is PurchaseChannel.IMMEDIATE
                else PurchaseStatus.PRE_SALE.value
            ),
            date=now,
            customer_identifier=customer_identifier,
            customer_phone=(customer_phone or "").strip() or None,
            seller_id=seller.id if seller else None,
            seller_name=seller.name if seller else None,
        )
        purchase.items = _build_items(lines, products)
        purchase.total_cents = sum(item.line_total_cents for item in purchase.items)
        db.session.add(purchase)

        if seller:
            append_entry(
                seller,
                AuditAction.PURCHASE_CREATE,
                f"Purchase {purchase.id} ({channel.value}) for {customer_identifier}: "
                f"{_describe_items(purchase)}. Total {purchase.total_cents}.",
            )

        if collect_payment:
            lifecycle_service.require_transition(purchase, PurchaseStatus.PAID)
            _mark_paid(purchase, seller, now)
            cashbox_service.add_sale(seller.id, purchase.total_cents, session=till)
            append_entry(
                seller,
                AuditAction.PAYMENT_CONFIRM,
                f"Payment collected at sale for purchase {purchase.id}. Amount {purchase.total_cents}.",
            )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info(
        "Created purchase %s (%s, status=%s, total=%s)",
        purchase.id, purchase.channel, purchase.status, purchase.total_cents,
    )
    return purchase


def submit_self_service_purchase(
    items: Iterable[CartLine | Mapping],
    customer_identifier: str | None,
    *,
    channel: PurchaseChannel | str = PurchaseChannel.PRE_SALE,
    customer_phone: str | None = None,
    dispatcher: notification_service.Dispatcher | None = None,
) -> tuple[Purchase, bool]:
    """
    Customer-facing checkout: create the purchase, then send the summary to
    the customer's phone. Returns (purchase, notified); a failed
    notification never undoes the purchase.
    """
    purchase = create_purchase(
        items,
        customer_identifier,
        channel=channel,
        customer_phone=customer_phone,
    )
    notified = notification_service.send_purchase_notification(
        purchase, purchase.customer_phone, dispatcher=dispatcher
    )
    return purchase, notified


# =============================================================================
# EDIT / CANCEL
# =============================================================================

def edit_pending_purchase(
    purchase_id: str,
    new_items: Iterable[CartLine | Mapping],
    actor: Actor | None = None,
) -> Purchase:
    """
    Replace a pending purchase's item list.

    Two phases: compute the signed per-product delta between the old and
    new lists and validate every increase against current stock, then apply
    all releases and reservations. If any increase cannot be covered the
    whole edit fails with InsufficientStock and nothing changes.
    """
    lines = normalize_cart(new_items)
    new_quantities = _quantities(lines)

    def _op():
        # Read phase
        purchase = _load_purchase(purchase_id)
        lifecycle_service.require_status(purchase, lifecycle_service.EDITABLE_STATUSES, "edit")
        old_quantities = purchase.quantities_by_product()
        snapshots = {}
        for item in purchase.items:
            snapshots.setdefault(item.product_id, (item.name, item.unit_price_cents))
        products = inventory_service.load_products(list(old_quantities) + list(new_quantities))

        # Compute phase
        deltas = {
            product_id: new_quantities.get(product_id, 0) - old_quantities.get(product_id, 0)
            for product_id in sorted(set(old_quantities) | set(new_quantities))
        }
        for product_id, delta in deltas.items():
            if delta > 0:
                inventory_service.check_available(products[product_id], delta)

        # Apply phase
        for product_id, delta in deltas.items():
            if delta < 0:
                inventory_service.release(products[product_id], -delta)
            elif delta > 0:
                inventory_service.reserve(products[product_id], delta)

        purchase.items = _build_items(lines, products, snapshots)
        purchase.total_cents = sum(item.line_total_cents for item in purchase.items)
        purchase.date = utcnow()

        if actor:
            append_entry(
                actor,
                AuditAction.PURCHASE_EDIT,
                f"Purchase {purchase.id} items changed to: {_describe_items(purchase)}. "
                f"Total {purchase.total_cents}.",
            )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info("Edited purchase %s (total=%s)", purchase.id, purchase.total_cents)
    return purchase


def cancel_purchase(purchase_id: str, actor: Actor | None = None) -> Purchase:
    """
    Cancel a pending purchase and put its quantities back into stock.

    A purchase that is no longer pending (including one already cancelled)
    fails with InvalidStateTransition, so stock is released exactly once.
    """
    def _op():
        purchase = _load_purchase(purchase_id)
        lifecycle_service.require_transition(purchase, PurchaseStatus.CANCELLED)
        products = inventory_service.load_products(item.product_id for item in purchase.items)

        for item in purchase.items:
            inventory_service.release(products[item.product_id], item.quantity)

        purchase.status = PurchaseStatus.CANCELLED.value
        purchase.cancelled_at = utcnow()

        if actor:
            append_entry(
                actor,
                AuditAction.PURCHASE_CANCEL,
                f"Purchase {purchase.id} cancelled; released {_describe_items(purchase)}.",
            )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info("Cancelled purchase %s", purchase.id)
    return purchase


# =============================================================================
# CONFIRMATIONS
# =============================================================================

def confirm_pre_sale(purchase_id: str, actor: Actor) -> Purchase:
    """
    Confirm a pre-sale: each item's quantity is added to product stock and
    the purchase becomes pre-sale-confirmed.

    NOTE: stock goes up here, not down. Forecast demand becomes inventory
    available for redemption; pre_sale_reserved is left as recorded.
    """
    def _op():
        purchase = _load_purchase(purchase_id)
        lifecycle_service.require_transition(purchase, PurchaseStatus.PRE_SALE_CONFIRMED)
        products = inventory_service.load_products(item.product_id for item in purchase.items)

        for item in purchase.items:
            inventory_service.release(products[item.product_id], item.quantity)

        purchase.status = PurchaseStatus.PRE_SALE_CONFIRMED.value
        purchase.confirmed_at = utcnow()

        append_entry(
            actor,
            AuditAction.PRESALE_CONFIRM,
            f"Pre-sale {purchase.id} confirmed; stock added: {_describe_items(purchase)}.",
        )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info("Confirmed pre-sale %s", purchase.id)
    return purchase


def confirm_payment(purchase_id: str, actor: Actor, *, record_in_cashbox: bool | None = None) -> Purchase:
    """
    Mark a purchase paid.

    When the cashbox is the system of record (CASHBOX_REQUIRED_FOR_PAYMENT,
    or `record_in_cashbox`), the total is added to the cashier's open
    session in the same transaction; no open session means NoActiveSession
    and the purchase stays unpaid.
    """
    allowed_from = frozenset(
        PurchaseStatus(status) for status in current_app.config.get("PAYMENT_SOURCE_STATUSES", ("pending",))
    )
    if record_in_cashbox is None:
        record_in_cashbox = current_app.config.get("CASHBOX_REQUIRED_FOR_PAYMENT", True)

    def _op():
        purchase = _load_purchase(purchase_id)
        lifecycle_service.require_transition(purchase, PurchaseStatus.PAID, allowed_from=allowed_from)
        till = cashbox_service.require_active_session(actor.id) if record_in_cashbox else None

        _mark_paid(purchase, actor, utcnow())
        if till is not None:
            cashbox_service.add_sale(actor.id, purchase.total_cents, session=till)

        append_entry(
            actor,
            AuditAction.PAYMENT_CONFIRM,
            f"Payment confirmed for purchase {purchase.id}. Amount {purchase.total_cents}.",
        )
        return purchase

    purchase = run_in_transaction(_op)
    current_app.logger.info("Payment confirmed for purchase %s by %s", purchase.id, actor.id)
    return purchase


def deliver_purchase(purchase_id: str, actor: Actor) -> Purchase:
    def _op():
        purchase = _load_purchase(purchase_id)
        lifecycle_service.require_transition(purchase, PurchaseStatus.DELIVERED)
        purchase.status = PurchaseStatus.DELIVERED.value
        purchase.delivered_at = utcnow()
        append_entry(actor, AuditAction.PURCHASE_DELIVER, f"Purchase {purchase.id} delivered.")
        return purchase

    return run_in_transaction(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_purchase_by_id(purchase_id: str) -> Purchase | None:
    code = (purchase_id or "").strip().upper()
    if not code:
        return None
    return db.session.get(Purchase, code)


def get_purchases_by_customer_identifier(customer_identifier: str) -> list[Purchase]:
    return (
        db.session.query(Purchase)
        .filter(Purchase.customer_identifier == (customer_identifier or "").strip())
        .order_by(Purchase.date.desc())
        .all()
    )


def get_purchases_by_customer_phone(customer_phone: str) -> list[Purchase]:
    return (
        db.session.query(Purchase)
        .filter(Purchase.customer_phone == (customer_phone or "").strip())
        .order_by(Purchase.date.desc())
        .all()
    )


def get_recent_purchases(channel: PurchaseChannel | str, limit: int = 10) -> list[Purchase]:
    return (
        db.session.query(Purchase)
        .filter(Purchase.channel == _channel(channel).value)
        .order_by(Purchase.date.desc(), Purchase.id.desc())
        .limit(limit)
        .all()
    )


def list_purchases(status: PurchaseStatus | str | None = None) -> list[Purchase]:
    query = db.session.query(Purchase)
    if status is not None:
        query = query.filter(Purchase.status == PurchaseStatus(status).value)
    return query.order_by(Purchase.date.desc()).all()
