from eventpos.models import Product
from eventpos.services import cashbox_service, purchase_service


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


def test_seed_and_list_products(app, db_session):
    result = _invoke(app, "products", "seed")
    assert result.exit_code == 0, result.output
    assert "Created product p1" in result.output

    again = _invoke(app, "products", "seed")
    assert "skipping seed" in again.output

    listing = _invoke(app, "products", "list", "--channel", "pre-sale")
    assert listing.exit_code == 0
    assert "Arepa" in listing.output
    assert "Limonada" not in listing.output


def test_restock_command(app, db_session, arepa):
    result = _invoke(app, "products", "restock", "p1", "7", "--actor-id", "admin-1", "--actor-name", "Admin")

    assert result.exit_code == 0, result.output
    assert db_session.get(Product, "p1").stock == 12


def test_restock_unknown_product_fails_cleanly(app, db_session):
    result = _invoke(app, "products", "restock", "nope", "1", "--actor-id", "a", "--actor-name", "A")

    assert result.exit_code != 0
    assert "ProductNotFound" in result.output


def test_show_and_cancel_purchase(app, db_session, arepa):
    purchase = purchase_service.create_purchase([{"product_id": "p1", "quantity": 2}], "STU-001")

    shown = _invoke(app, "purchases", "show", purchase.id.lower())
    assert shown.exit_code == 0, shown.output
    assert "Arepa x2" in shown.output
    assert "[pending]" in shown.output

    cancelled = _invoke(app, "purchases", "cancel", purchase.id, "--actor-id", "op1", "--actor-name", "Cashier One")
    assert cancelled.exit_code == 0, cancelled.output

    again = _invoke(app, "purchases", "cancel", purchase.id, "--actor-id", "op1", "--actor-name", "Cashier One")
    assert again.exit_code != 0
    assert "InvalidStateTransition" in again.output


def test_cashbox_commands(app, db_session):
    opened = _invoke(app, "cashbox", "open", "10000", "--actor-id", "op1", "--actor-name", "Cashier One")
    assert opened.exit_code == 0, opened.output

    session = cashbox_service.get_active_session("op1")
    cashbox_service.record_sale("op1", 5000)

    closed = _invoke(
        app, "cashbox", "close", str(session.id), "14000",
        "--actor-id", "op1", "--actor-name", "Cashier One",
    )
    assert closed.exit_code == 0, closed.output
    assert "variance $-10.00" in closed.output

    listing = _invoke(app, "cashbox", "sessions", "--operator-id", "op1")
    assert "Cashier One" in listing.output
    assert "closed" in listing.output


def test_audit_list(app, db_session):
    _invoke(app, "cashbox", "open", "0", "--actor-id", "op1", "--actor-name", "Cashier One")

    result = _invoke(app, "audit", "list", "--action", "CASHBOX_OPEN")

    assert result.exit_code == 0
    assert "CASHBOX_OPEN" in result.output
    assert "Cashier One" in result.output
