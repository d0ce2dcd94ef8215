import pytest

from eventpos.errors import InsufficientStock, InvalidQuantity, ProductNotFound
from eventpos.services import inventory_service
from eventpos.services.concurrency import run_in_transaction


def test_reserve_and_release(arepa):
    run_in_transaction(lambda: inventory_service.reserve("p1", 2))
    assert inventory_service.get_stock("p1") == 3

    run_in_transaction(lambda: inventory_service.release("p1", 4))
    assert inventory_service.get_stock("p1") == 7


def test_reserve_exact_stock_reaches_zero(arepa):
    run_in_transaction(lambda: inventory_service.reserve("p1", 5))
    assert inventory_service.get_stock("p1") == 0


def test_reserve_more_than_stock_changes_nothing(arepa):
    with pytest.raises(InsufficientStock) as excinfo:
        run_in_transaction(lambda: inventory_service.reserve("p1", 6))

    assert excinfo.value.details["available"] == 5
    assert excinfo.value.details["requested_quantity"] == 6
    assert inventory_service.get_stock("p1") == 5


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
def test_non_positive_or_non_integer_quantity(arepa, quantity):
    with pytest.raises(InvalidQuantity):
        run_in_transaction(lambda: inventory_service.reserve("p1", quantity))
    assert inventory_service.get_stock("p1") == 5


def test_unknown_product(db_session):
    with pytest.raises(ProductNotFound):
        inventory_service.get_stock("nope")
    with pytest.raises(ProductNotFound):
        inventory_service.load_products(["nope"])


def test_pre_sale_reservation_leaves_stock_alone(arepa):
    product = run_in_transaction(lambda: inventory_service.reserve_pre_sale("p1", 20))

    assert product.pre_sale_reserved == 20
    assert product.stock == 5
