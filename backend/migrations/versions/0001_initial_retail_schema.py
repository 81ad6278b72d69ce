"""initial retail schema

Revision ID: 0001_initial_retail
Revises:
Create Date: 2026-02-05 00:00:00.000000

Creates the catalog (categories, subcategories, attribute definitions,
suppliers, product variants, products), purchasing (purchases, purchase
items), sales (sales, sale items, payments) and document sequence tables.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_retail'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name='created_at'):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # Catalog
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=128), nullable=True),
        _timestamp(),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)

    op.create_table(
        'subcategories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('category_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=128), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_subcategories_category_id', 'subcategories', ['category_id'])
    op.create_index('ix_subcategories_slug', 'subcategories', ['slug'], unique=True)

    op.create_table(
        'attribute_definitions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('category_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('data_type', sa.String(length=16), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('analytics_enabled', sa.Boolean(), nullable=False),
        sa.Column('enum_values', sa.JSON(), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('category_id', 'key', name='uq_attribute_definitions_category_key'),
    )
    op.create_index('ix_attribute_definitions_category_id', 'attribute_definitions', ['category_id'])

    op.create_table(
        'suppliers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=True),
        _timestamp(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_suppliers_code', 'suppliers', ['code'], unique=True)

    op.create_table(
        'product_variants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('category_id', sa.String(length=36), nullable=False),
        sa.Column('subcategory_id', sa.String(length=36), nullable=True),
        sa.Column('attributes', sa.JSON(), nullable=False),
        sa.Column('mrp', sa.Numeric(12, 2), nullable=False),
        sa.Column('default_selling_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('max_discount_percent', sa.Numeric(5, 2), nullable=False),
        _timestamp(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subcategory_id'], ['subcategories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('default_selling_price <= mrp', name='ck_product_variants_price_within_mrp'),
        sa.CheckConstraint(
            'max_discount_percent >= 0 AND max_discount_percent <= 100',
            name='ck_product_variants_discount_range',
        ),
    )
    op.create_index('ix_product_variants_category_id', 'product_variants', ['category_id'])
    op.create_index('ix_product_variants_subcategory_id', 'product_variants', ['subcategory_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sku', sa.String(length=128), nullable=False),
        sa.Column('product_variant_id', sa.String(length=36), nullable=False),
        sa.Column('supplier_id', sa.String(length=36), nullable=False),
        sa.Column('quantity_in_stock', sa.Integer(), nullable=False),
        _timestamp(),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['product_variant_id'], ['product_variants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_variant_id', 'supplier_id', name='uq_products_variant_supplier'),
        sa.CheckConstraint('quantity_in_stock >= 0', name='ck_products_stock_non_negative'),
    )
    op.create_index('ix_products_sku', 'products', ['sku'], unique=True)
    op.create_index('ix_products_product_variant_id', 'products', ['product_variant_id'])
    op.create_index('ix_products_supplier_id', 'products', ['supplier_id'])

    # ============================================================================
    # Purchasing: cost layers
    # ============================================================================
    op.create_table(
        'purchases',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('supplier_id', sa.String(length=36), nullable=False),
        sa.Column('purchased_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('invoice_no', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('extra_charges', sa.Numeric(12, 2), nullable=True),
        _timestamp(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchases_supplier_id', 'purchases', ['supplier_id'])
    op.create_index('ix_purchases_purchased_at', 'purchases', ['purchased_at'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('purchase_id', sa.String(length=36), nullable=False),
        sa.Column('product_variant_id', sa.String(length=36), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('effective_unit_cost', sa.Numeric(12, 2), nullable=False),
        _timestamp(),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_variant_id'], ['product_variants.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_items_purchase_id', 'purchase_items', ['purchase_id'])
    op.create_index('ix_purchase_items_product_variant_id', 'purchase_items', ['product_variant_id'])

    # ============================================================================
    # Sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('bill_number', sa.String(length=64), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        _timestamp(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sales_bill_number', 'sales', ['bill_number'], unique=True)
    op.create_index('ix_sales_sold_at', 'sales', ['sold_at'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(12, 2), nullable=False),
        _timestamp(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.String(length=36), nullable=False),
        sa.Column('mode', sa.String(length=32), nullable=False),
        sa.Column('provider', sa.String(length=64), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        _timestamp(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_sale_id', 'payments', ['sale_id'])

    # ============================================================================
    # document_sequences: per-day bill number counters
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('period_key', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'period_key', name='uq_doc_sequences_type_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])


def downgrade():
    op.drop_table('document_sequences')
    op.drop_table('payments')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('purchase_items')
    op.drop_table('purchases')
    op.drop_table('products')
    op.drop_table('product_variants')
    op.drop_table('suppliers')
    op.drop_table('attribute_definitions')
    op.drop_table('subcategories')
    op.drop_table('categories')
