"""Enumerations shared by the ledger models and services.

Statuses, channels and audit actions are stored as their string values so
rows stay readable in the database and in exported records.
"""

from __future__ import annotations

from enum import Enum


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    PRE_SALE = "pre-sale"
    PRE_SALE_CONFIRMED = "pre-sale-confirmed"


class PurchaseChannel(str, Enum):
    """How a purchase was taken; also the purchase counter category."""

    IMMEDIATE = "immediate"
    PRE_SALE = "pre-sale"


# Human-readable purchase id prefixes per channel
CHANNEL_PREFIXES = {
    PurchaseChannel.IMMEDIATE: "CG",
    PurchaseChannel.PRE_SALE: "PV",
}


class ProductAvailability(str, Enum):
    POS = "pos"
    PRE_SALE = "pre-sale"
    SELF_SERVICE = "self-service"


class AuditAction(str, Enum):
    """Closed set of actions recorded in the audit trail."""

    PURCHASE_CREATE = "PURCHASE_CREATE"
    PURCHASE_EDIT = "PURCHASE_EDIT"
    PURCHASE_CANCEL = "PURCHASE_CANCEL"
    PRESALE_CONFIRM = "PRESALE_CONFIRM"
    PAYMENT_CONFIRM = "PAYMENT_CONFIRM"
    PURCHASE_DELIVER = "PURCHASE_DELIVER"
    ITEM_RETURN = "ITEM_RETURN"
    STOCK_RESTOCK = "STOCK_RESTOCK"
    CASHBOX_OPEN = "CASHBOX_OPEN"
    CASHBOX_CLOSE = "CASHBOX_CLOSE"


class CashboxStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


__all__ = [
    "PurchaseStatus",
    "PurchaseChannel",
    "CHANNEL_PREFIXES",
    "ProductAvailability",
    "AuditAction",
    "CashboxStatus",
]
