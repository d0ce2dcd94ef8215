import pytest

from eventpos.constants import AuditAction, PurchaseStatus
from eventpos.errors import InvalidStateTransition, ItemAlreadyReturned, ValidationError
from eventpos.models import Product
from eventpos.services import audit_service, purchase_service, return_service


@pytest.fixture
def paid_purchase(db_session, arepa, empanada, cashier, open_till):
    purchase = purchase_service.create_purchase(
        [{"product_id": "p1", "quantity": 2}, {"product_id": "p2", "quantity": 3}], "STU-001"
    )
    return purchase_service.confirm_payment(purchase.id, cashier)


def test_return_puts_stock_back(db_session, paid_purchase, cashier):
    record = return_service.return_item(paid_purchase.id, "p2", cashier, reason="Cold")

    assert record.quantity == 3
    assert record.amount_cents == 9000
    assert record.processed_by_id == cashier.id
    assert db_session.get(Product, "p2").stock == 10

    purchase = purchase_service.get_purchase_by_id(paid_purchase.id)
    assert purchase.status == PurchaseStatus.PAID.value
    assert {i.product_id: i.returned for i in purchase.items} == {"p1": False, "p2": True}
    [entry] = audit_service.list_entries(action=AuditAction.ITEM_RETURN)
    assert "Cold" in entry.details


def test_item_returned_once(db_session, paid_purchase, cashier):
    return_service.return_item(paid_purchase.id, "p1", cashier)

    with pytest.raises(ItemAlreadyReturned):
        return_service.return_item(paid_purchase.id, "p1", cashier)
    assert db_session.get(Product, "p1").stock == 5
    assert len(return_service.list_returns(paid_purchase.id)) == 1


def test_product_not_on_purchase(db_session, paid_purchase, make_product, cashier):
    make_product("p3", "Limonada", stock=1)
    with pytest.raises(ValidationError):
        return_service.return_item(paid_purchase.id, "p3", cashier)


def test_pending_purchase_cannot_be_returned(db_session, arepa, cashier):
    purchase = purchase_service.create_purchase([{"product_id": "p1", "quantity": 1}], "STU-001")

    with pytest.raises(InvalidStateTransition):
        return_service.return_item(purchase.id, "p1", cashier)
    assert db_session.get(Product, "p1").stock == 4


def test_delivered_purchase_can_be_returned(db_session, paid_purchase, cashier):
    purchase_service.deliver_purchase(paid_purchase.id, cashier)

    return_service.return_item(paid_purchase.id, "p1", cashier)

    assert db_session.get(Product, "p1").stock == 5
