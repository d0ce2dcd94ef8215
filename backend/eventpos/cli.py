# Overview: Flask CLI command groups for bootstrap, inspection, and cashier operations.

# backend/eventpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Ledger bootstrap:
# - python -m flask ledger init-db
#   Create all ledger tables (idempotent).
# - python -m flask ledger reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Products:
# - python -m flask products seed
#   Add the demo catalogue if no products exist.
# - python -m flask products list [--channel pre-sale]
# - python -m flask products restock p1 10 --actor-id admin --actor-name "Admin"
#
# Purchases:
# - python -m flask purchases show CGA0001
# - python -m flask purchases cancel CGA0001 --actor-id cashier --actor-name "Cashier"
#
# Cashbox:
# - python -m flask cashbox open 10000 --actor-id cashier --actor-name "Cashier"
# - python -m flask cashbox close 1 15000 --actor-id cashier --actor-name "Cashier"
# - python -m flask cashbox sessions [--operator-id cashier] [--limit 20]
#
# Audit:
# - python -m flask audit list [--action PAYMENT_CONFIRM] [--limit 50]

import click
from flask.cli import with_appcontext

from .constants import AuditAction, ProductAvailability
from .errors import LedgerError
from .extensions import db
from .identity import Actor, VALID_ROLES
from .models import Product
from .services import audit_service, cashbox_service, products_service, purchase_service


DEMO_PRODUCTS = [
    ("p1", "Arepa", 5000, 50, ["pos", "pre-sale", "self-service"]),
    ("p2", "Empanada", 3000, 80, ["pos", "pre-sale", "self-service"]),
    ("p3", "Limonada", 4000, 40, ["pos", "self-service"]),
    ("p4", "Brownie", 3500, 30, ["pos", "pre-sale"]),
]


def actor_options(f):
    f = click.option('--actor-role', type=click.Choice(sorted(VALID_ROLES)), default='cashier', show_default=True)(f)
    f = click.option('--actor-name', required=True, help='Display name of the acting user')(f)
    f = click.option('--actor-id', required=True, help='ID of the acting user')(f)
    return f


def _fail(exc: LedgerError):
    raise click.ClickException(f"{type(exc).__name__}: {exc.message}")


def _money(cents) -> str:
    if cents is None:
        return "-"
    return f"${cents / 100:,.2f}"


@click.group('ledger')
def ledger_group():
    """Ledger bootstrap commands."""


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Ledger tables ready")


@ledger_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('products')
def products_group():
    """Product catalogue and stock commands."""


@products_group.command('seed')
@with_appcontext
def seed_products():
    """Add the demo catalogue when the product table is empty."""
    if db.session.query(Product).count():
        click.echo("WARN Products already exist, skipping seed.")
        return
    for product_id, name, price_cents, stock, availability in DEMO_PRODUCTS:
        products_service.create_product(
            name, price_cents, stock=stock, availability=availability, product_id=product_id
        )
        click.echo(f"PASS Created product {product_id}: {name}")


@products_group.command('list')
@click.option('--channel', type=click.Choice([c.value for c in ProductAvailability]), help='Only products offered on this channel')
@with_appcontext
def list_products_cli(channel):
    products = products_service.list_products(channel)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<22} {'Name':<24} {'Price':>12} {'Stock':>7} {'Pre-sale':>9} {'Restocks':>9}")
    click.echo("="*90)
    for p in products:
        click.echo(f"{p.id:<22} {p.name[:24]:<24} {_money(p.price_cents):>12} {p.stock:>7} "
                   f"{p.pre_sale_reserved:>9} {p.restock_count:>9}")
    click.echo("="*90 + "\n")


@products_group.command('restock')
@click.argument('product_id')
@click.argument('quantity', type=int)
@actor_options
@with_appcontext
def restock_cli(product_id, quantity, actor_id, actor_name, actor_role):
    try:
        product = products_service.restock_product(product_id, quantity, Actor(actor_id, actor_name, actor_role))
    except LedgerError as exc:
        _fail(exc)
    click.echo(f"PASS {product.name} stock is now {product.stock}")


@click.group('purchases')
def purchases_group():
    """Purchase inspection and cashier commands."""


@purchases_group.command('show')
@click.argument('purchase_id')
@with_appcontext
def show_purchase(purchase_id):
    purchase = purchase_service.get_purchase_by_id(purchase_id)
    if purchase is None:
        raise click.ClickException(f"Purchase {purchase_id} not found")

    click.echo(f"{purchase.id}  [{purchase.status}]  {purchase.date:%Y-%m-%d %H:%M}")
    click.echo(f"Customer: {purchase.customer_identifier}  Phone: {purchase.customer_phone or '-'}")
    for item in purchase.items:
        flag = " (returned)" if item.returned else ""
        click.echo(f"  {item.name} x{item.quantity} @ {_money(item.unit_price_cents)}{flag}")
    click.echo(f"Total: {_money(purchase.total_cents)}")


@purchases_group.command('cancel')
@click.argument('purchase_id')
@actor_options
@with_appcontext
def cancel_purchase_cli(purchase_id, actor_id, actor_name, actor_role):
    try:
        purchase = purchase_service.cancel_purchase(purchase_id, Actor(actor_id, actor_name, actor_role))
    except LedgerError as exc:
        _fail(exc)
    click.echo(f"PASS Purchase {purchase.id} cancelled")


@click.group('cashbox')
def cashbox_group():
    """Cashbox session commands."""


@cashbox_group.command('open')
@click.argument('opening_balance_cents', type=int)
@actor_options
@with_appcontext
def open_cashbox(opening_balance_cents, actor_id, actor_name, actor_role):
    try:
        session = cashbox_service.open_session(Actor(actor_id, actor_name, actor_role), opening_balance_cents)
    except LedgerError as exc:
        _fail(exc)
    click.echo(f"PASS Opened session {session.id} for {session.operator_name}")


@cashbox_group.command('close')
@click.argument('session_id', type=int)
@click.argument('closing_balance_cents', type=int)
@actor_options
@with_appcontext
def close_cashbox(session_id, closing_balance_cents, actor_id, actor_name, actor_role):
    try:
        session = cashbox_service.close_session(session_id, closing_balance_cents, Actor(actor_id, actor_name, actor_role))
    except LedgerError as exc:
        _fail(exc)
    click.echo(f"PASS Closed session {session.id}. Expected {_money(session.expected_balance_cents)}, "
               f"variance {_money(session.variance_cents)}")


@cashbox_group.command('sessions')
@click.option('--operator-id', help='Filter by operator')
@click.option('--limit', type=int, default=20, help='Max sessions to show')
@with_appcontext
def list_sessions_cli(operator_id, limit):
    """
    List cashbox sessions, most recent first.

    Example:
        flask cashbox sessions
        flask cashbox sessions --operator-id op1
    """
    sessions = cashbox_service.list_session_history(operator_id)[:limit]

    if not sessions:
        click.echo("No sessions found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<5} {'Operator':<20} {'Status':<8} {'Opened':<20} {'Sales':>14} {'Closing':>14} {'Variance':>12}")
    click.echo("="*110)

    for session in sessions:
        click.echo(f"{session.id:<5} {session.operator_name[:20]:<20} {session.status:<8} "
                   f"{str(session.opened_at)[:19]:<20} {_money(session.total_sales_cents):>14} "
                   f"{_money(session.closing_balance_cents):>14} {_money(session.variance_cents):>12}")

    click.echo("="*110 + "\n")


@click.group('audit')
def audit_group():
    """Audit trail inspection."""


@audit_group.command('list')
@click.option('--action', type=click.Choice([a.value for a in AuditAction]), help='Filter by action')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_audit_cli(action, limit):
    entries = audit_service.list_entries(action=action, limit=limit)
    if not entries:
        click.echo("No audit entries found.")
        return
    for entry in entries:
        click.echo(f"{str(entry.timestamp)[:19]}  {entry.action:<18} {entry.actor_name:<20} {entry.details}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
    app.cli.add_command(products_group)
    app.cli.add_command(purchases_group)
    app.cli.add_command(cashbox_group)
    app.cli.add_command(audit_group)
