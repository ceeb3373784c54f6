"""initial fulfillment schema

Revision ID: f0a1b2c3d4e5
Revises:
Create Date: 2026-10-18 00:00:00.000000

This migration creates the fulfillment schema from scratch:
- brands, products, product_variants: catalog with mrp/percentage pricing
- vendors, vendor_brands: PRIME/SHOP vendor directory
- vendor_product_pricing, vendor_variant_stock: per-vendor cost and stock
- orders, order_items: routed orders with frozen line pricing
- sale_records: append-only sales history written after a claim
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'f0a1b2c3d4e5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # brands
    # ============================================================================
    op.create_table(
        'brands',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # products: plain products carry mrp/percentages, variant products don't
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.Column('is_prime', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('has_variants', sa.Boolean(), nullable=False, server_default='0'),

        # Price terms (derived columns recomputed on every change)
        sa.Column('mrp_cents', sa.Integer(), nullable=True),
        sa.Column('selling_percentage', sa.Float(), nullable=True),
        sa.Column('purchase_percentage', sa.Float(), nullable=True),
        sa.Column('selling_price_cents', sa.Integer(), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=True),
        sa.Column('discount_percentage', sa.Float(), nullable=True),

        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_brand_id', 'products', ['brand_id'])
    op.create_index('ix_products_brand_active', 'products', ['brand_id', 'is_active'])
    op.create_index('ix_products_prime', 'products', ['is_prime'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(length=64), nullable=False),
        sa.Column('mrp_cents', sa.Integer(), nullable=False),
        sa.Column('selling_percentage', sa.Float(), nullable=False),
        sa.Column('purchase_percentage', sa.Float(), nullable=False, server_default='60'),
        sa.Column('selling_price_cents', sa.Integer(), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=True),
        sa.Column('discount_percentage', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'label', name='uq_product_variants_product_label'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    # ============================================================================
    # vendors: PRIME vendors claim prime orders, the SHOP vendor fulfils regular ones
    # ============================================================================
    op.create_table(
        'vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('vendor_class', sa.String(length=16), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pickup_pincode', sa.String(length=16), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendors_class_approved', 'vendors', ['vendor_class', 'is_approved'])

    op.create_table(
        'vendor_brands',
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('brand_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['brand_id'], ['brands.id'], ),
        sa.PrimaryKeyConstraint('vendor_id', 'brand_id')
    )

    # ============================================================================
    # vendor_product_pricing: one row per (vendor, product)
    # ============================================================================
    op.create_table(
        'vendor_product_pricing',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('purchase_percentage', sa.Float(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('available_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sold_website', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_id', 'product_id', name='uq_vendor_pricing_vendor_product'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendor_product_pricing_vendor_id', 'vendor_product_pricing', ['vendor_id'])
    op.create_index('ix_vendor_product_pricing_product_id', 'vendor_product_pricing', ['product_id'])
    op.create_index('ix_vendor_pricing_vendor_active', 'vendor_product_pricing', ['vendor_id', 'is_active'])

    op.create_table(
        'vendor_variant_stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entry_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('available_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sold_website', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['entry_id'], ['vendor_product_pricing.id'], ),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entry_id', 'variant_id', name='uq_vendor_variant_stock_entry_variant'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendor_variant_stock_entry_id', 'vendor_variant_stock', ['entry_id'])
    op.create_index('ix_vendor_variant_stock_variant_id', 'vendor_variant_stock', ['variant_id'])

    # ============================================================================
    # orders: status + assigned_vendor_id are only ever claimed through a
    # conditional UPDATE; version_id bumps on every such write
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('is_prime', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('assigned_vendor_id', sa.Integer(), nullable=True),

        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_purchase_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_profit_cents', sa.Integer(), nullable=False, server_default='0'),

        sa.Column('delivery_street', sa.String(length=255), nullable=False),
        sa.Column('delivery_city', sa.String(length=120), nullable=False),
        sa.Column('delivery_state', sa.String(length=120), nullable=False),
        sa.Column('delivery_pincode', sa.String(length=16), nullable=False),

        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['assigned_vendor_id'], ['vendors.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_assigned_vendor_id', 'orders', ['assigned_vendor_id'])
    op.create_index('ix_orders_delivery_pincode', 'orders', ['delivery_pincode'])
    op.create_index('ix_orders_status_prime_assigned', 'orders', ['status', 'is_prime', 'assigned_vendor_id'])
    op.create_index('ix_orders_customer_created', 'orders', ['customer_id', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=True),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('purchase_subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('profit_cents', sa.Integer(), nullable=False),
        sa.Column('profit_percentage', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'], ),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'line_number', name='uq_order_items_order_line'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    # ============================================================================
    # sale_records: append-only, one row per claimed order line
    # ============================================================================
    op.create_table(
        'sale_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('sale_type', sa.String(length=16), nullable=False, server_default='WEBSITE'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_purchase_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=True),
        sa.Column('total_selling_cents', sa.Integer(), nullable=True),
        sa.Column('profit_cents', sa.Integer(), nullable=True),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_records_vendor_id', 'sale_records', ['vendor_id'])
    op.create_index('ix_sale_records_product_id', 'sale_records', ['product_id'])
    op.create_index('ix_sale_records_order_id', 'sale_records', ['order_id'])
    op.create_index('ix_sale_records_vendor_sold', 'sale_records', ['vendor_id', 'sold_at'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('sale_records')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('vendor_variant_stock')
    op.drop_table('vendor_product_pricing')
    op.drop_table('vendor_brands')
    op.drop_table('vendors')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('brands')
