import pytest

from eventpos.constants import PurchaseChannel
from eventpos.extensions import db
from eventpos.models import PurchaseCounter
from eventpos.services import counter_service
from eventpos.services.concurrency import run_in_transaction


def test_first_increment_creates_counter_at_one(db_session):
    assert counter_service.current_value("immediate") == 0

    value = run_in_transaction(lambda: counter_service.next_value("immediate"))

    assert value == 1
    assert counter_service.current_value("immediate") == 1


def test_categories_are_independent(db_session):
    for _ in range(3):
        run_in_transaction(lambda: counter_service.next_value("immediate"))
    run_in_transaction(lambda: counter_service.next_value("pre-sale"))

    assert counter_service.current_value("immediate") == 3
    assert counter_service.current_value("pre-sale") == 1


def test_rolled_back_increment_is_not_kept(db_session):
    def _op():
        counter_service.next_value("immediate")
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        run_in_transaction(_op)

    assert db.session.get(PurchaseCounter, "immediate") is None


@pytest.mark.parametrize(
    "channel,name,count,expected",
    [
        (PurchaseChannel.IMMEDIATE, "Arepa", 1, "CGA0001"),
        (PurchaseChannel.PRE_SALE, "brownie", 42, "PVB0042"),
        ("immediate", "empanada", 12345, "CGE12345"),
        ("pre-sale", "7up", 3, "PVU0003"),
        ("immediate", "", 9, "CGX0009"),
        ("immediate", None, 9, "CGX0009"),
    ],
)
def test_format_purchase_id(channel, name, count, expected):
    assert counter_service.format_purchase_id(channel, name, count) == expected


def test_unknown_channel_is_rejected():
    with pytest.raises(ValueError):
        counter_service.format_purchase_id("mail-order", "Arepa", 1)
