import pytest

from eventpos.constants import AuditAction
from eventpos.errors import ConflictError, InvalidQuantity, ProductNotFound, ValidationError
from eventpos.services import audit_service, products_service


def test_create_appends_to_catalogue_order(db_session, make_product):
    make_product("p1", "Arepa")
    make_product("p2", "Empanada")
    generated = products_service.create_product("Limonada", 4000)

    assert [p.id for p in products_service.list_products()] == ["p1", "p2", generated.id]
    assert generated.position == 2
    assert generated.stock == 0


def test_duplicate_id_rejected(db_session, make_product):
    make_product("p1", "Arepa")
    with pytest.raises(ConflictError):
        products_service.create_product("Other", 100, product_id="p1")


def test_list_by_channel(db_session, make_product):
    make_product("p1", "Arepa", availability=("pos",))
    make_product("p2", "Empanada", availability=("pos", "pre-sale"))

    assert [p.id for p in products_service.list_products("pre-sale")] == ["p2"]
    assert products_service.list_products("self-service") == []


def test_update_catalogue_fields(db_session, arepa):
    updated = products_service.update_product("p1", {"name": "Arepa Rellena", "price_cents": 6000})

    assert updated.name == "Arepa Rellena"
    assert updated.price_cents == 6000


@pytest.mark.parametrize("patch", [
    {"stock": 100},
    {"price_cents": -5},
    {"name": "  "},
    {"availability": ["drive-thru"]},
])
def test_invalid_patches(db_session, arepa, patch):
    with pytest.raises(ValidationError):
        products_service.update_product("p1", patch)
    assert products_service.get_product("p1").stock == 5


def test_update_unknown_product(db_session):
    with pytest.raises(ProductNotFound):
        products_service.update_product("nope", {"name": "x"})


def test_reorder(db_session, arepa, empanada, make_product):
    make_product("p3", "Limonada")

    products_service.reorder_products(["p3", "p1", "p2"])

    assert [p.id for p in products_service.list_products()] == ["p3", "p1", "p2"]


def test_restock_is_counted_and_audited(db_session, arepa, admin):
    product = products_service.restock_product("p1", 10, admin)

    assert product.stock == 15
    assert product.restock_count == 1
    [entry] = audit_service.list_entries(action=AuditAction.STOCK_RESTOCK)
    assert entry.actor_id == admin.id
    assert "+10" in entry.details


def test_restock_requires_positive_quantity(db_session, arepa, admin):
    with pytest.raises(InvalidQuantity):
        products_service.restock_product("p1", 0, admin)
    assert products_service.get_product("p1").restock_count == 0
    assert audit_service.list_entries() == []
