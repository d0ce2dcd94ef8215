# Overview: Ledger error taxonomy shared by every service.

"""
Every failure the ledger surfaces to callers is a ``LedgerError``.

- 4xx-style errors describe a rejected request; nothing was written.
- ``TransactionConflict`` is internal: the transaction coordinator retries it.
- ``TransactionFailed`` is what callers see once retries are exhausted.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger errors."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        rv = dict(self.details)
        rv["error"] = type(self).__name__
        rv["message"] = self.message
        return rv


class ValidationError(LedgerError):
    """400-level input problem."""


class EmptyCart(ValidationError):
    def __init__(self, message: str = "Cart has no items"):
        super().__init__(message)


class InvalidQuantity(ValidationError):
    def __init__(self, product_id: str, quantity):
        super().__init__(
            f"Quantity for product {product_id} must be a positive integer",
            details={"product_id": product_id, "quantity": quantity},
        )


class MissingCustomerIdentifier(ValidationError):
    def __init__(self, message: str = "Customer identifier is required"):
        super().__init__(message)


class NotFoundError(LedgerError):
    status_code = 404


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})


class PurchaseNotFound(NotFoundError):
    def __init__(self, purchase_id: str):
        super().__init__(f"Purchase {purchase_id} not found", details={"purchase_id": purchase_id})


class SessionNotFound(NotFoundError):
    def __init__(self, session_id):
        super().__init__(f"Cashbox session {session_id} not found", details={"session_id": session_id})


class ConflictError(LedgerError):
    """409-level business rule conflict."""

    status_code = 409


class InsufficientStock(ConflictError):
    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}: requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available": available,
            },
        )


class InvalidStateTransition(ConflictError):
    def __init__(self, purchase_id: str, from_status: str, to_status: str):
        super().__init__(
            f"Purchase {purchase_id} cannot move from {from_status} to {to_status}",
            details={"purchase_id": purchase_id, "from_status": from_status, "to_status": to_status},
        )


class ItemAlreadyReturned(ConflictError):
    def __init__(self, purchase_id: str, product_id: str):
        super().__init__(
            f"Item {product_id} of purchase {purchase_id} was already returned",
            details={"purchase_id": purchase_id, "product_id": product_id},
        )


class SessionAlreadyOpen(ConflictError):
    def __init__(self, operator_id: str, session_id=None):
        super().__init__(
            f"Operator {operator_id} already has an open cashbox session",
            details={"operator_id": operator_id, "session_id": session_id},
        )


class SessionAlreadyClosed(ConflictError):
    def __init__(self, session_id):
        super().__init__(f"Cashbox session {session_id} is already closed", details={"session_id": session_id})


class NoActiveSession(ConflictError):
    def __init__(self, operator_id: str):
        super().__init__(
            f"Operator {operator_id} has no open cashbox session",
            details={"operator_id": operator_id},
        )


class NotOwner(LedgerError):
    status_code = 403

    def __init__(self, session_id, operator_id: str):
        super().__init__(
            f"Cashbox session {session_id} belongs to another operator",
            details={"session_id": session_id, "operator_id": operator_id},
        )


class TransactionConflict(LedgerError):
    """A concurrent writer changed data this transaction read."""

    status_code = 409


class TransactionFailed(LedgerError):
    """Conflicts persisted past the retry budget."""

    status_code = 503
