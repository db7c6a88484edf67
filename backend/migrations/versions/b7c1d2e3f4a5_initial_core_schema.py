"""initial core schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the sale transaction and cash reconciliation schema:
- products: catalog rows whose stock counter the core mutates
- clients: customers created on demand at checkout
- sales / sale_lines: sale documents with cost snapshots
- cash_movements: manual incomes and expenses
- cash_closures: immutable end-of-day snapshots
- document_sequences: atomic sale numbering
- ledger_events: append-only audit trail
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products: stock >= 0 enforced by the database as well as the service
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_stock', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_barcode', 'products', ['barcode'])
    op.create_index('ix_products_status', 'products', ['status'])
    op.create_index('ix_products_status_stock', 'products', ['status', 'stock'])
    # Barcodes are unique among ACTIVE products only
    op.create_index(
        'uq_products_active_barcode', 'products', ['barcode'], unique=True,
        sqlite_where=sa.text("status = 'ACTIVE' AND barcode IS NOT NULL"),
        postgresql_where=sa.text("status = 'ACTIVE' AND barcode IS NOT NULL"),
    )

    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_clients_name', 'clients', ['name'])

    # ============================================================================
    # sales: ACTIVE -> VOIDED only, never deleted
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_number', sa.String(length=50), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False),
        sa.Column('change_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('voided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('voided_by_actor_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_number', name='uq_sales_sale_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_actor_id', 'sales', ['actor_id'])
    op.create_index('ix_sales_client_id', 'sales', ['client_id'])
    op.create_index('ix_sales_payment_method', 'sales', ['payment_method'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_status_created', 'sales', ['status', 'created_at'])

    # ============================================================================
    # sale_lines: barcode/description/cost are snapshots, not catalog reads
    # ============================================================================
    op.create_table(
        'sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_barcode', sa.String(length=64), nullable=True),
        sa.Column('product_description', sa.Text(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_lines_sale_id', 'sale_lines', ['sale_id'])
    op.create_index('ix_sale_lines_product_id', 'sale_lines', ['product_id'])

    op.create_table(
        'cash_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('amount_cents > 0', name='ck_cash_movements_amount_positive'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cash_movements_actor_id', 'cash_movements', ['actor_id'])
    op.create_index('ix_cash_movements_created_at', 'cash_movements', ['created_at'])
    op.create_index('ix_cash_movements_type_created', 'cash_movements', ['type', 'created_at'])

    # ============================================================================
    # cash_closures: immutable snapshots, never updated after insert
    # ============================================================================
    op.create_table(
        'cash_closures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('sales_cash_cents', sa.Integer(), nullable=False),
        sa.Column('sales_digital_cents', sa.Integer(), nullable=False),
        sa.Column('manual_incomes_cents', sa.Integer(), nullable=False),
        sa.Column('manual_expenses_cents', sa.Integer(), nullable=False),
        sa.Column('expected_cash_cents', sa.Integer(), nullable=False),
        sa.Column('counted_cash_cents', sa.Integer(), nullable=False),
        sa.Column('difference_cents', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cash_closures_actor_id', 'cash_closures', ['actor_id'])
    op.create_index('ix_cash_closures_business_date', 'cash_closures', ['business_date'])
    op.create_index('ix_cash_closures_created', 'cash_closures', ['created_at'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_doc_sequences_type'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'ledger_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('event_category', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_ledger_events_event_type', 'ledger_events', ['event_type'])
    op.create_index('ix_ledger_events_event_category', 'ledger_events', ['event_category'])
    op.create_index('ix_ledger_events_entity_type', 'ledger_events', ['entity_type'])
    op.create_index('ix_ledger_events_entity_id', 'ledger_events', ['entity_id'])
    op.create_index('ix_ledger_events_actor_id', 'ledger_events', ['actor_id'])
    op.create_index('ix_ledger_events_sale_id', 'ledger_events', ['sale_id'])
    op.create_index('ix_ledger_events_occurred_at', 'ledger_events', ['occurred_at'])
    op.create_index('ix_ledger_events_category_occurred', 'ledger_events',
                    ['event_category', 'occurred_at'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('ledger_events')
    op.drop_table('document_sequences')
    op.drop_table('cash_closures')
    op.drop_table('cash_movements')
    op.drop_table('sale_lines')
    op.drop_table('sales')
    op.drop_table('clients')
    op.drop_table('products')
