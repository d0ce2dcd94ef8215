"""
Return Processing Service

WHY: Customers hand back items from paid or delivered purchases. A return
is its own record; the purchase keeps its status and only the returned
item is flagged.

DESIGN PRINCIPLES:
- Returns reference the original purchase for traceability
- The returned quantity goes back into stock in the same transaction
- An item can be returned once
- Immutable audit trail (returns are never edited)
"""

from __future__ import annotations

from ..constants import AuditAction
from ..errors import ItemAlreadyReturned, ValidationError
from ..extensions import db
from ..identity import Actor
from ..models import Return
from ..time_utils import utcnow
from . import inventory_service, lifecycle_service
from .audit_service import append_entry
from .concurrency import run_in_transaction
from .purchase_service import _load_purchase


def return_item(purchase_id: str, product_id: str, actor: Actor, reason: str | None = None) -> Return:
    """
    Return every unit of one purchase line to stock.

    Raises:
        PurchaseNotFound: Unknown purchase
        InvalidStateTransition: Purchase is not paid or delivered
        ValidationError: Product is not on the purchase
        ItemAlreadyReturned: The line was already returned
    """
    def _op():
        purchase = _load_purchase(purchase_id)
        lifecycle_service.require_status(purchase, lifecycle_service.RETURNABLE_STATUSES, "return")

        item = next((i for i in purchase.items if i.product_id == product_id and not i.returned), None)
        if item is None:
            if any(i.product_id == product_id for i in purchase.items):
                raise ItemAlreadyReturned(purchase.id, product_id)
            raise ValidationError(f"Product {product_id} is not part of purchase {purchase.id}")

        product = inventory_service.load_products([product_id])[product_id]

        inventory_service.release(product, item.quantity)
        # Concurrent returns of this line conflict on the product version.
        item.returned = True

        record = Return(
            purchase_id=purchase.id,
            product_id=product_id,
            product_name=item.name,
            quantity=item.quantity,
            amount_cents=item.line_total_cents,
            reason=reason,
            processed_by_id=actor.id,
            processed_by_name=actor.name,
            returned_at=utcnow(),
        )
        db.session.add(record)

        append_entry(
            actor,
            AuditAction.ITEM_RETURN,
            f"Returned {item.name} x{item.quantity} from purchase {purchase.id}."
            + (f" Reason: {reason}" if reason else ""),
        )
        return record

    return run_in_transaction(_op)


def list_returns(purchase_id: str | None = None) -> list[Return]:
    """Returns, most recent first."""
    query = db.session.query(Return)
    if purchase_id is not None:
        query = query.filter_by(purchase_id=purchase_id)
    return query.order_by(Return.returned_at.desc(), Return.id.desc()).all()
