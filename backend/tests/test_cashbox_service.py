import pytest

from eventpos.constants import AuditAction, CashboxStatus
from eventpos.errors import (
    NoActiveSession,
    NotOwner,
    SessionAlreadyClosed,
    SessionAlreadyOpen,
    SessionNotFound,
    ValidationError,
)
from eventpos.identity import Actor
from eventpos.models import CashboxSession
from eventpos.services import audit_service, cashbox_service


def test_open_sale_and_second_open(db_session, cashier):
    session = cashbox_service.open_session(cashier, 10000)
    assert session.status == CashboxStatus.OPEN.value
    assert session.total_sales_cents == 0

    cashbox_service.record_sale(cashier.id, 5000)
    assert cashbox_service.get_active_session(cashier.id).total_sales_cents == 5000

    with pytest.raises(SessionAlreadyOpen):
        cashbox_service.open_session(cashier, 0)
    assert db_session.query(CashboxSession).count() == 1


def test_operators_have_independent_sessions(db_session, cashier, seller):
    mine = cashbox_service.open_session(cashier, 100)
    theirs = cashbox_service.open_session(seller, 200)

    cashbox_service.record_sale(seller.id, 700)

    assert cashbox_service.get_session(mine.id).total_sales_cents == 0
    assert cashbox_service.get_session(theirs.id).total_sales_cents == 700


def test_close_computes_variance(db_session, cashier):
    session = cashbox_service.open_session(cashier, 10000)
    cashbox_service.record_sale(cashier.id, 5000)
    cashbox_service.record_sale(cashier.id, 2500)

    closed = cashbox_service.close_session(session.id, 17000, cashier)

    assert closed.status == CashboxStatus.CLOSED.value
    assert closed.expected_balance_cents == 17500
    assert closed.variance_cents == -500
    assert closed.closed_at is not None
    assert cashbox_service.get_active_session(cashier.id) is None


def test_close_errors(db_session, cashier, seller):
    with pytest.raises(SessionNotFound):
        cashbox_service.close_session(999, 0, cashier)

    session = cashbox_service.open_session(cashier, 0)
    with pytest.raises(NotOwner):
        cashbox_service.close_session(session.id, 0, seller)

    cashbox_service.close_session(session.id, 0, cashier)
    with pytest.raises(SessionAlreadyClosed):
        cashbox_service.close_session(session.id, 0, cashier)


def test_reopen_after_close(db_session, cashier):
    first = cashbox_service.open_session(cashier, 0)
    cashbox_service.close_session(first.id, 0, cashier)

    second = cashbox_service.open_session(cashier, 500)

    assert second.id != first.id
    assert [s.id for s in cashbox_service.list_session_history(cashier.id)][0] == second.id


def test_sale_without_session(db_session, cashier):
    with pytest.raises(NoActiveSession):
        cashbox_service.record_sale(cashier.id, 100)


@pytest.mark.parametrize("amount", [-1, 1.5, "100", None])
def test_amounts_must_be_non_negative_cents(db_session, cashier, amount):
    with pytest.raises(ValidationError):
        cashbox_service.open_session(cashier, amount)


def test_open_and_close_are_audited(db_session):
    op = Actor("op9", "Night Shift")
    session = cashbox_service.open_session(op, 100)
    cashbox_service.close_session(session.id, 100, op)

    actions = [e.action for e in audit_service.list_entries(actor_id="op9")]
    assert sorted(actions) == sorted([AuditAction.CASHBOX_OPEN.value, AuditAction.CASHBOX_CLOSE.value])
