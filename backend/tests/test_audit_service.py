import pytest

from eventpos.constants import AuditAction
from eventpos.models import AuditLogEntry
from eventpos.services import audit_service
from eventpos.services.concurrency import run_in_transaction


def test_entries_are_appended_with_the_transaction(db_session, admin):
    run_in_transaction(lambda: audit_service.append_entry(admin, AuditAction.STOCK_RESTOCK, "p1 +10"))

    [entry] = audit_service.list_entries()
    assert entry.actor_id == admin.id
    assert entry.actor_name == admin.name
    assert entry.action == "STOCK_RESTOCK"
    assert entry.details == "p1 +10"
    assert entry.timestamp is not None


def test_entries_roll_back_with_failed_transaction(db_session, admin):
    def _op():
        audit_service.append_entry(admin, AuditAction.PURCHASE_CANCEL, "never happened")
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_in_transaction(_op)

    assert db_session.query(AuditLogEntry).count() == 0


def test_unknown_action_rejected(db_session, admin):
    with pytest.raises(ValueError):
        audit_service.append_entry(admin, "DELETE_EVERYTHING")


def test_filters_and_newest_first(db_session, admin, cashier):
    run_in_transaction(lambda: audit_service.append_entry(admin, AuditAction.STOCK_RESTOCK, "first"))
    run_in_transaction(lambda: audit_service.append_entry(cashier, AuditAction.CASHBOX_OPEN, "second"))
    run_in_transaction(lambda: audit_service.append_entry(admin, AuditAction.STOCK_RESTOCK, "third"))

    assert [e.details for e in audit_service.list_entries()] == ["third", "second", "first"]
    assert [e.details for e in audit_service.list_entries(actor_id=cashier.id)] == ["second"]
    assert len(audit_service.list_entries(action="STOCK_RESTOCK")) == 2
    assert len(audit_service.list_entries(limit=1)) == 1
