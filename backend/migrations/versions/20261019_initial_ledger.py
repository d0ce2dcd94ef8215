"""Initial ledger schema: products, counters, purchases, returns, cashbox, audit

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. Products with live stock, pre-sale reservation and restock counters
2. Purchase counters (one row per channel prefix)
3. Purchases and purchase items (snapshot of name and unit price)
4. Returns against paid or delivered purchases
5. Cashbox sessions (one open session per operator)
6. Append-only audit log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS TABLE
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pre_sale_reserved', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('restock_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('availability', sa.JSON(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('pre_sale_reserved >= 0', name='ck_products_pre_sale_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_position', ['position'], unique=False)

    # ==========================================================================
    # 2. PURCHASE COUNTERS TABLE
    # ==========================================================================
    op.create_table('purchase_counters',
        sa.Column('key', sa.String(length=32), nullable=False),
        sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('count >= 0', name='ck_purchase_counters_non_negative'),
        sa.PrimaryKeyConstraint('key'),
    )

    # ==========================================================================
    # 3. PURCHASES AND PURCHASE ITEMS
    # ==========================================================================
    op.create_table('purchases',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('channel', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('customer_identifier', sa.String(length=64), nullable=False),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('seller_id', sa.String(length=64), nullable=True),
        sa.Column('seller_name', sa.String(length=128), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cashier_id', sa.String(length=64), nullable=True),
        sa.Column('cashier_name', sa.String(length=128), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('total_cents >= 0', name='ck_purchases_total_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchases_channel'), ['channel'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_customer_phone'), ['customer_phone'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchases_seller_id'), ['seller_id'], unique=False)
        batch_op.create_index('ix_purchases_channel_date', ['channel', 'date'], unique=False)
        batch_op.create_index('ix_purchases_customer_date', ['customer_identifier', 'date'], unique=False)

    op.create_table('purchase_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.String(length=32), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('returned', sa.Boolean(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_purchase_items_quantity_positive'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_items_purchase_id'), ['purchase_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_items_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 4. RETURNS TABLE
    # ==========================================================================
    op.create_table('returns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('processed_by_id', sa.String(length=64), nullable=False),
        sa.Column('processed_by_name', sa.String(length=128), nullable=False),
        sa.Column('returned_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_returns_quantity_positive'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('returns', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_returns_purchase_id'), ['purchase_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_returns_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_returns_returned_at'), ['returned_at'], unique=False)

    # ==========================================================================
    # 5. CASHBOX SESSIONS TABLE
    # ==========================================================================
    op.create_table('cashbox_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('operator_id', sa.String(length=64), nullable=False),
        sa.Column('operator_name', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False, server_default='open'),
        sa.Column('opening_balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sales_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('closing_balance_cents', sa.Integer(), nullable=True),
        sa.Column('expected_balance_cents', sa.Integer(), nullable=True),
        sa.Column('variance_cents', sa.Integer(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('total_sales_cents >= 0', name='ck_cashbox_sessions_sales_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cashbox_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cashbox_sessions_operator_id'), ['operator_id'], unique=False)
        batch_op.create_index('ix_cashbox_sessions_opened_at', ['opened_at'], unique=False)
        batch_op.create_index(
            'uq_cashbox_sessions_open_operator',
            ['operator_id'],
            unique=True,
            sqlite_where=sa.text("status = 'open'"),
            postgresql_where=sa.text("status = 'open'"),
        )

    # ==========================================================================
    # 6. AUDIT LOG TABLE
    # ==========================================================================
    op.create_table('audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('actor_name', sa.String(length=128), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('details', sa.Text(), nullable=False, server_default=''),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('audit_log', schema=None) as batch_op:
        batch_op.create_index('ix_audit_log_timestamp', ['timestamp'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_log_actor_id'), ['actor_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_log_action'), ['action'], unique=False)


def downgrade():
    with op.batch_alter_table('audit_log', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_audit_log_action'))
        batch_op.drop_index(batch_op.f('ix_audit_log_actor_id'))
        batch_op.drop_index('ix_audit_log_timestamp')
    op.drop_table('audit_log')

    with op.batch_alter_table('cashbox_sessions', schema=None) as batch_op:
        batch_op.drop_index('uq_cashbox_sessions_open_operator')
        batch_op.drop_index('ix_cashbox_sessions_opened_at')
        batch_op.drop_index(batch_op.f('ix_cashbox_sessions_operator_id'))
    op.drop_table('cashbox_sessions')

    with op.batch_alter_table('returns', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_returns_returned_at'))
        batch_op.drop_index(batch_op.f('ix_returns_product_id'))
        batch_op.drop_index(batch_op.f('ix_returns_purchase_id'))
    op.drop_table('returns')

    with op.batch_alter_table('purchase_items', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_purchase_items_product_id'))
        batch_op.drop_index(batch_op.f('ix_purchase_items_purchase_id'))
    op.drop_table('purchase_items')

    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.drop_index('ix_purchases_customer_date')
        batch_op.drop_index('ix_purchases_channel_date')
        batch_op.drop_index(batch_op.f('ix_purchases_seller_id'))
        batch_op.drop_index(batch_op.f('ix_purchases_customer_phone'))
        batch_op.drop_index(batch_op.f('ix_purchases_date'))
        batch_op.drop_index(batch_op.f('ix_purchases_status'))
        batch_op.drop_index(batch_op.f('ix_purchases_channel'))
    op.drop_table('purchases')

    op.drop_table('purchase_counters')

    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index('ix_products_position')
    op.drop_table('products')
