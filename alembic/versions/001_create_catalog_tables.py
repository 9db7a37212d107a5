"""Create catalog tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LIVE = sa.text('deleted_at IS NULL')


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def deleted_at() -> sa.Column:
    return sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True)


def upgrade() -> None:
    """Create category, attribute, product, option and variant tables."""
    # Category tree
    op.create_table(
        'category',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('parent_id', sa.BigInteger(), sa.ForeignKey('category.id'), nullable=True, index=True),
        sa.Column('seller_id', sa.BigInteger(), nullable=True, index=True),
        *timestamps(),
        deleted_at(),
    )
    op.create_index(
        'uq_category_parent_seller_name',
        'category',
        [sa.text('coalesce(parent_id, 0)'), sa.text('coalesce(seller_id, 0)'), 'name'],
        unique=True,
        postgresql_where=LIVE,
    )

    # Attribute definitions and their category links
    op.create_table(
        'attribute_definition',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('data_type', sa.String(20), nullable=False, server_default='string'),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('allowed_values', sa.JSON(), nullable=True),
        *timestamps(),
    )

    op.create_table(
        'category_attribute',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.BigInteger(),
                  sa.ForeignKey('category.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('attribute_definition_id', sa.BigInteger(),
                  sa.ForeignKey('attribute_definition.id'), nullable=False, index=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_searchable', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_filterable', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('default_value', sa.String(255), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('category_id', 'attribute_definition_id', name='uq_category_attribute'),
    )

    # Products
    op.create_table(
        'product',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('seller_id', sa.BigInteger(), nullable=False),
        sa.Column('category_id', sa.BigInteger(), sa.ForeignKey('category.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('brand', sa.String(100), nullable=True, index=True),
        sa.Column('base_sku', sa.String(100), nullable=True),
        sa.Column('short_description', sa.String(500), nullable=True),
        sa.Column('long_description', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False, server_default='[]'),
        *timestamps(),
        deleted_at(),
    )
    op.create_index('ix_product_seller_category', 'product', ['seller_id', 'category_id'])
    op.create_index(
        'uq_product_seller_base_sku',
        'product',
        ['seller_id', 'base_sku'],
        unique=True,
        postgresql_where=LIVE,
    )

    # Options and their values
    op.create_table(
        'product_option',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.BigInteger(), sa.ForeignKey('product.id'), nullable=False, index=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        deleted_at(),
    )
    op.create_index(
        'uq_product_option_name',
        'product_option',
        ['product_id', 'name'],
        unique=True,
        postgresql_where=LIVE,
    )

    op.create_table(
        'product_option_value',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('option_id', sa.BigInteger(),
                  sa.ForeignKey('product_option.id'), nullable=False, index=True),
        sa.Column('value', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('color_code', sa.String(7), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        deleted_at(),
    )
    op.create_index(
        'uq_product_option_value',
        'product_option_value',
        ['option_id', 'value'],
        unique=True,
        postgresql_where=LIVE,
    )

    # Variants and their option signatures
    op.create_table(
        'product_variant',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.BigInteger(), sa.ForeignKey('product.id'), nullable=False, index=True),
        sa.Column('seller_id', sa.BigInteger(), nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('allow_purchase', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_popular', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        deleted_at(),
    )
    op.create_index('ix_product_variant_product_sku', 'product_variant', ['product_id', 'sku'])
    op.create_index(
        'uq_product_variant_seller_sku',
        'product_variant',
        ['seller_id', 'sku'],
        unique=True,
        postgresql_where=LIVE,
    )

    op.create_table(
        'variant_option_value',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('variant_id', sa.BigInteger(),
                  sa.ForeignKey('product_variant.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('option_id', sa.BigInteger(),
                  sa.ForeignKey('product_option.id'), nullable=False, index=True),
        sa.Column('option_value_id', sa.BigInteger(),
                  sa.ForeignKey('product_option_value.id'), nullable=False, index=True),
        *timestamps(),
        sa.UniqueConstraint('variant_id', 'option_id', name='uq_variant_option_value'),
    )

    # Product attribute values and package options
    op.create_table(
        'product_attribute',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.BigInteger(), sa.ForeignKey('product.id'), nullable=False, index=True),
        sa.Column('attribute_definition_id', sa.BigInteger(),
                  sa.ForeignKey('attribute_definition.id'), nullable=False, index=True),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        deleted_at(),
    )
    op.create_index(
        'uq_product_attribute',
        'product_attribute',
        ['product_id', 'attribute_definition_id'],
        unique=True,
        postgresql_where=LIVE,
    )

    op.create_table(
        'package_option',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.BigInteger(), sa.ForeignKey('product.id'), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        *timestamps(),
        deleted_at(),
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_table('package_option')
    op.drop_table('product_attribute')
    op.drop_table('variant_option_value')
    op.drop_table('product_variant')
    op.drop_table('product_option_value')
    op.drop_table('product_option')
    op.drop_table('product')
    op.drop_table('category_attribute')
    op.drop_table('attribute_definition')
    op.drop_table('category')
