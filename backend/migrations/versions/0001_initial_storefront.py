"""initial storefront tables

Revision ID: 0001_initial_storefront
Revises: 
Create Date: 2026-10-17
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_storefront'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='user'),
        sa.Column('phone_number', sa.String(length=32)),
        sa.Column('country_code', sa.String(length=8), server_default='+48'),
        sa.Column('company_name', sa.String(length=128)),
        sa.Column('locale', sa.String(length=8), server_default='pl'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
        sa.Column('banned', sa.Boolean(), server_default=sa.text('0')),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('actor_role', sa.String(length=32)),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64)),
        sa.Column('entity_id', sa.String(length=128)),
        sa.Column('meta', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])

    op.create_table('categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('slug', sa.String(length=150), nullable=False, unique=True),
        sa.Column('is_visible', sa.Boolean(), server_default=sa.text('1')),
        sa.Column('image_link', sa.String(length=512)),
        *_timestamps(),
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'])

    op.create_table('category_translations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('category_slug', sa.String(length=150), sa.ForeignKey('categories.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False),
        sa.Column('locale', sa.String(length=8), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.UniqueConstraint('category_slug', 'locale', name='uq_category_translation'),
    )

    op.create_table('subcategories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('slug', sa.String(length=150), nullable=False, unique=True),
        sa.Column('category_slug', sa.String(length=150), sa.ForeignKey('categories.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False),
        sa.Column('is_visible', sa.Boolean(), server_default=sa.text('1')),
        *_timestamps(),
    )
    op.create_index('ix_subcategories_slug', 'subcategories', ['slug'])
    op.create_index('ix_subcategories_category_slug', 'subcategories', ['category_slug'])

    op.create_table('subcategory_translations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('subcategory_slug', sa.String(length=150), sa.ForeignKey('subcategories.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False),
        sa.Column('locale', sa.String(length=8), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.UniqueConstraint('subcategory_slug', 'locale', name='uq_subcategory_translation'),
    )

    op.create_table('brands',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('alias', sa.String(length=150), nullable=False, unique=True),
        sa.Column('image_link', sa.String(length=512), nullable=False, server_default=''),
        sa.Column('is_visible', sa.Boolean(), server_default=sa.text('1')),
        *_timestamps(),
    )
    op.create_index('ix_brands_alias', 'brands', ['alias'])

    op.create_table('warehouse_countries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slug', sa.String(length=64), nullable=False, unique=True),
        sa.Column('country_code', sa.String(length=8), nullable=False),
        sa.Column('phone_code', sa.String(length=8)),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
    )

    op.create_table('warehouses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), unique=True),
        sa.Column('displayed_name', sa.String(length=128), nullable=False),
        sa.Column('is_visible', sa.Boolean(), server_default=sa.text('1')),
        sa.Column('country_slug', sa.String(length=64), sa.ForeignKey('warehouse_countries.slug', ondelete='SET NULL', onupdate='CASCADE')),
        *_timestamps(),
    )
    op.create_index('ix_warehouses_name', 'warehouses', ['name'])

    op.create_table('items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('article_id', sa.String(length=64), nullable=False),
        sa.Column('slug', sa.String(length=200), nullable=False, unique=True),
        sa.Column('alias', sa.String(length=200)),
        sa.Column('is_displayed', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('sell_counter', sa.Integer(), server_default='0'),
        sa.Column('warranty_length', sa.Integer(), nullable=False, server_default='12'),
        sa.Column('warranty_type', sa.String(length=32), nullable=False, server_default='manufacturer'),
        sa.Column('brand_slug', sa.String(length=150), sa.ForeignKey('brands.alias', ondelete='SET NULL', onupdate='CASCADE')),
        sa.Column('category_slug', sa.String(length=150), nullable=False),
        sa.Column('image_links', sa.JSON()),
        sa.Column('linked_items', sa.JSON()),
        *_timestamps(),
    )
    op.create_index('ix_items_article_id', 'items', ['article_id'])
    op.create_index('ix_items_slug', 'items', ['slug'])
    op.create_index('ix_items_brand_slug', 'items', ['brand_slug'])
    op.create_index('ix_items_category_slug', 'items', ['category_slug'])

    op.create_table('item_details',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_slug', sa.String(length=200), sa.ForeignKey('items.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False),
        sa.Column('locale', sa.String(length=8), nullable=False, server_default='pl'),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('specifications', sa.Text()),
        sa.Column('seller', sa.String(length=128)),
        sa.Column('discount', sa.Float()),
        sa.Column('popularity', sa.Integer()),
        sa.Column('meta_description', sa.Text()),
        sa.Column('meta_keywords', sa.Text()),
        sa.UniqueConstraint('item_slug', 'locale', name='uq_item_details_locale'),
    )
    op.create_index('ix_item_details_item_slug', 'item_details', ['item_slug'])

    op.create_table('item_prices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_slug', sa.String(length=200), sa.ForeignKey('items.slug', ondelete='CASCADE', onupdate='CASCADE'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('promotion_price', sa.Float()),
        sa.Column('promo_code', sa.String(length=64)),
        sa.Column('promo_start_date', sa.DateTime(timezone=True)),
        sa.Column('promo_end_date', sa.DateTime(timezone=True)),
        sa.Column('badge', sa.String(length=32), nullable=False, server_default='ABSENT'),
        *_timestamps(),
        sa.UniqueConstraint('item_slug', 'warehouse_id', name='uq_item_price_warehouse'),
    )
    op.create_index('ix_item_prices_item_slug', 'item_prices', ['item_slug'])
    op.create_index('ix_item_prices_warehouse_id', 'item_prices', ['warehouse_id'])

    op.create_table('item_price_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_price_id', sa.Integer(), sa.ForeignKey('item_prices.id', ondelete='SET NULL')),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('promotion_price', sa.Float()),
        sa.Column('promo_code', sa.String(length=64)),
        sa.Column('promo_start_date', sa.DateTime(timezone=True)),
        sa.Column('promo_end_date', sa.DateTime(timezone=True)),
        sa.Column('badge', sa.String(length=32), nullable=False, server_default='ABSENT'),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_item_price_history_item_wh_recorded', 'item_price_history', ['item_id', 'warehouse_id', 'recorded_at'])

    op.create_table('currency_exchange',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('from_currency', sa.String(length=3), nullable=False),
        sa.Column('to_currency', sa.String(length=3), nullable=False),
        sa.Column('rate', sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('from_currency', 'to_currency', name='uq_currency_exchange_pair'),
    )

    op.create_table('carts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='PENDING'),
        *_timestamps(),
    )
    op.create_index('ix_carts_user_id', 'carts', ['user_id'])

    op.create_table('cart_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cart_id', sa.Integer(), sa.ForeignKey('carts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), sa.ForeignKey('warehouses.id', ondelete='SET NULL')),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_cart_items_cart_id', 'cart_items', ['cart_id'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='NEW'),
        sa.Column('total_price', sa.String(length=64), nullable=False, server_default='0'),
        sa.Column('original_total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR'),
        sa.Column('line_items', sa.JSON()),
        sa.Column('delivery_id', sa.String(length=128)),
        sa.Column('comment', sa.Text()),
        *_timestamps(),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table('payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='PENDING'),
        sa.Column('method', sa.String(length=32)),
        sa.Column('transaction_id', sa.String(length=128)),
        sa.Column('error_message', sa.Text()),
        *_timestamps(),
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])

    op.create_table('uploaded_images',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('path', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('mime_type', sa.String(length=64), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('path', 'file_name', name='uq_uploaded_image_path'),
    )
    op.create_index('ix_uploaded_images_file_name', 'uploaded_images', ['file_name'])
    op.create_index('ix_uploaded_images_path', 'uploaded_images', ['path'])


def downgrade():
    for table in (
        'uploaded_images', 'payments', 'orders', 'cart_items', 'carts', 'currency_exchange',
        'item_price_history', 'item_prices', 'item_details', 'items', 'warehouses',
        'warehouse_countries', 'brands', 'subcategory_translations', 'subcategories',
        'category_translations', 'categories', 'audit_logs', 'users',
    ):
        op.drop_table(table)
