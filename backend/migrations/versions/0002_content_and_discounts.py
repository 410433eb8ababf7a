"""pages, banners and discount levels

Revision ID: 0002_content_and_discounts
Revises: 0001_initial_storefront
Create Date: 2026-10-17
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0002_content_and_discounts'
down_revision = '0001_initial_storefront'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('page_content',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('locale', sa.String(length=5), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('is_published', sa.Boolean(), server_default=sa.text('1')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('slug', 'locale', name='uq_page_slug_locale'),
    )
    op.create_index('ix_page_content_slug', 'page_content', ['slug'])

    op.create_table('banners',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=255)),
        sa.Column('image_url', sa.String(length=512), nullable=False),
        sa.Column('link_url', sa.String(length=512)),
        sa.Column('position', sa.String(length=50), nullable=False),
        sa.Column('device', sa.String(length=20), nullable=False, server_default='desktop'),
        sa.Column('locale', sa.String(length=5), nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='0'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_banners_position', 'banners', ['position'])

    op.create_table('discount_levels',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('level', sa.Integer(), nullable=False, unique=True),
        sa.Column('discount_percentage', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table('discount_level_users',
        sa.Column('discount_level_id', sa.Integer(), sa.ForeignKey('discount_levels.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index('ix_discount_level_users_user_id', 'discount_level_users', ['user_id'])


def downgrade():
    for table in ('discount_level_users', 'discount_levels', 'banners', 'page_content'):
        op.drop_table(table)
