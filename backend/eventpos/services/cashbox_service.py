"""
Cashbox Session Service

WHY: Track each operator's till from opening to closing and accumulate the
sales they collect, for cash accountability.

DESIGN PRINCIPLES:
- One open session per operator at a time
- Sessions are immutable once closed
- total_sales only grows, and only from inside a committed sale transaction
- Variance tracking (expected vs counted cash) at close
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..constants import AuditAction, CashboxStatus
from ..errors import (
    NoActiveSession,
    NotOwner,
    SessionAlreadyClosed,
    SessionAlreadyOpen,
    SessionNotFound,
    ValidationError,
)
from ..extensions import db
from ..identity import Actor
from ..models import CashboxSession
from ..time_utils import utcnow
from .audit_service import append_entry
from .concurrency import run_in_transaction


def _check_amount(name: str, amount_cents) -> int:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents < 0:
        raise ValidationError(f"{name} must be a non-negative integer amount in cents")
    return amount_cents


def get_active_session(operator_id: str) -> CashboxSession | None:
    """The operator's open session, if any."""
    return db.session.query(CashboxSession).filter_by(
        operator_id=operator_id,
        status=CashboxStatus.OPEN.value,
    ).first()


def get_session(session_id: int) -> CashboxSession | None:
    return db.session.get(CashboxSession, session_id)


def list_session_history(operator_id: str | None = None) -> list[CashboxSession]:
    """All sessions, most recently opened first."""
    query = db.session.query(CashboxSession)
    if operator_id is not None:
        query = query.filter_by(operator_id=operator_id)
    return query.order_by(CashboxSession.opened_at.desc(), CashboxSession.id.desc()).all()


def open_session(actor: Actor, opening_balance_cents: int) -> CashboxSession:
    """
    Open a till for `actor`.

    Raises:
        SessionAlreadyOpen: If the operator already has an open session
    """
    opening_balance_cents = _check_amount("opening_balance_cents", opening_balance_cents)

    def _op():
        existing = get_active_session(actor.id)
        if existing:
            raise SessionAlreadyOpen(actor.id, existing.id)

        session = CashboxSession(
            operator_id=actor.id,
            operator_name=actor.name,
            status=CashboxStatus.OPEN.value,
            opening_balance_cents=opening_balance_cents,
            total_sales_cents=0,
            opened_at=utcnow(),
        )
        db.session.add(session)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the race against a concurrent open for the same operator
            raise SessionAlreadyOpen(actor.id)

        append_entry(
            actor,
            AuditAction.CASHBOX_OPEN,
            f"Cashbox opened with opening balance {opening_balance_cents}.",
        )
        return session

    return run_in_transaction(_op)


def close_session(session_id: int, closing_balance_cents: int, actor: Actor) -> CashboxSession:
    """
    Close a session and compute its cash variance.

    Raises:
        SessionNotFound, SessionAlreadyClosed, NotOwner
    """
    closing_balance_cents = _check_amount("closing_balance_cents", closing_balance_cents)

    def _op():
        session = db.session.get(CashboxSession, session_id)
        if not session:
            raise SessionNotFound(session_id)
        if session.status != CashboxStatus.OPEN.value:
            raise SessionAlreadyClosed(session_id)
        if session.operator_id != actor.id:
            raise NotOwner(session_id, actor.id)

        expected = session.opening_balance_cents + session.total_sales_cents

        session.status = CashboxStatus.CLOSED.value
        session.closed_at = utcnow()
        session.closing_balance_cents = closing_balance_cents
        session.expected_balance_cents = expected
        session.variance_cents = closing_balance_cents - expected

        append_entry(
            actor,
            AuditAction.CASHBOX_CLOSE,
            f"Cashbox closed with closing balance {closing_balance_cents} "
            f"(expected {expected}, variance {session.variance_cents}).",
        )
        return session

    return run_in_transaction(_op)


def require_active_session(operator_id: str) -> CashboxSession:
    """Read phase helper for sale transactions."""
    session = get_active_session(operator_id)
    if session is None:
        raise NoActiveSession(operator_id)
    return session


def add_sale(operator_id: str, amount_cents: int, session: CashboxSession | None = None) -> CashboxSession:
    """
    Add a committed sale amount to the operator's open session.

    Must be called from inside the sale's own `run_in_transaction` body so
    the sale and the session total commit together. Callers that follow the
    read-then-write order pass the session they loaded with
    `require_active_session`.
    """
    amount_cents = _check_amount("amount_cents", amount_cents)
    if session is None:
        session = require_active_session(operator_id)
    elif session.operator_id != operator_id or session.status != CashboxStatus.OPEN.value:
        raise NoActiveSession(operator_id)

    session.total_sales_cents = session.total_sales_cents + amount_cents
    return session


def record_sale(operator_id: str, amount_cents: int) -> CashboxSession:
    """Standalone sale accounting in its own transaction."""
    return run_in_transaction(lambda: add_sale(operator_id, amount_cents))
