# Overview: Outbound purchase confirmations; fire-and-forget, never touches the ledger.

from __future__ import annotations

from typing import Protocol

import httpx
from flask import current_app

from ..constants import PurchaseStatus
from ..models import Purchase


class Dispatcher(Protocol):
    def send(self, to: str, message: str) -> bool: ...


class WebhookDispatcher:
    """
    Posts {"to": ..., "message": ...} JSON to a messaging gateway.

    Any 2xx response counts as delivered.
    """

    def __init__(self, url: str, token: str | None = None, timeout: float = 10.0):
        self.url = url
        self.token = token
        self.timeout = timeout

    def send(self, to: str, message: str) -> bool:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = httpx.post(
            self.url,
            json={"to": to, "message": message},
            headers=headers,
            timeout=self.timeout,
        )
        return response.is_success


def get_dispatcher() -> Dispatcher | None:
    """Dispatcher configured for the current app, or None when disabled."""
    url = current_app.config.get("NOTIFY_WEBHOOK_URL")
    if not url:
        return None
    return WebhookDispatcher(
        url,
        token=current_app.config.get("NOTIFY_WEBHOOK_TOKEN"),
        timeout=current_app.config.get("NOTIFY_TIMEOUT", 10.0),
    )


def format_amount(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def format_purchase_message(purchase: Purchase, event_name: str | None = None) -> str:
    """Human-readable purchase summary for the customer."""
    if event_name is None:
        event_name = current_app.config.get("EVENT_NAME", "School Event")

    is_pre_sale = purchase.status == PurchaseStatus.PRE_SALE.value
    lines = [
        "Pre-sale registered!" if is_pre_sale else "Purchase registered!",
        "",
        f"Thank you for your purchase at {event_name}. "
        "Show this code at the cashier to pay and collect your products.",
        "",
        f"Code: {purchase.id}",
        f"Date: {purchase.date:%Y-%m-%d %H:%M}",
        f"Customer ID: {purchase.customer_identifier}",
        "",
        "Summary:",
    ]
    for item in purchase.items:
        lines.append(f"- {item.name} (x{item.quantity}) - {format_amount(item.line_total_cents)}")
    lines.extend(["", f"Total to pay: {format_amount(purchase.total_cents)}"])
    return "\n".join(lines)


def send_purchase_notification(
    purchase: Purchase,
    phone: str | None,
    dispatcher: Dispatcher | None = None,
) -> bool:
    """
    Send the purchase summary to `phone`.

    Returns whether delivery succeeded. Failures are logged and reported
    through the return value only; the purchase is already committed and is
    never affected.
    """
    if not phone:
        current_app.logger.info("No phone number for purchase %s; skipping notification", purchase.id)
        return False

    if dispatcher is None:
        dispatcher = get_dispatcher()
    if dispatcher is None:
        current_app.logger.info("Notifications disabled; purchase %s not sent", purchase.id)
        return False

    try:
        delivered = dispatcher.send(phone, format_purchase_message(purchase))
    except Exception:
        # Any dispatcher failure; the purchase is already committed
        current_app.logger.exception("Failed to send notification for purchase %s", purchase.id)
        return False

    if delivered:
        current_app.logger.info("Notification sent for purchase %s to %s", purchase.id, phone)
    else:
        current_app.logger.warning("Notification for purchase %s was rejected by the gateway", purchase.id)
    return bool(delivered)
