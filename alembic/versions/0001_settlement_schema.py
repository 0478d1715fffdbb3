"""settlement_schema

Revision ID: 0001_settlement_schema
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_settlement_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, nullable=True, **kwargs):
    return sa.Column(name, sa.Numeric(10, 2), nullable=nullable, **kwargs)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('user_type', sa.String(32), nullable=False),
        sa.Column('market', sa.String(2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('seller_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        _money('price', nullable=False),
        _money('base_price'),
        sa.Column('base_currency', sa.String(3), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('has_variants', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('affiliate_commission', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_products_seller_id', 'products', ['seller_id'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        _money('price'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('combination', postgresql.JSONB(), nullable=True),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False, unique=True),
        sa.Column('seller_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('customer_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('affiliate_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('referral_code', sa.String(50), nullable=True),
        _money('total_amount', nullable=False),
        _money('total_amount_base'),
        sa.Column('buyer_currency', sa.String(3), nullable=True),
        sa.Column('seller_base_currency', sa.String(3), nullable=True),
        sa.Column('exchange_rate', sa.Numeric(10, 4), nullable=True),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('tracking_id', sa.String(100), nullable=True),
        sa.Column('status_explanation', sa.Text(), nullable=True),
        sa.Column('shipping_address', postgresql.JSONB(), nullable=True),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('seller_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('admin_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_settled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_updated_at', 'orders', ['updated_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('price', nullable=False),
        _money('base_price'),
        sa.Column('base_currency', sa.String(3), nullable=True),
        sa.Column('variant_id', sa.Uuid(), sa.ForeignKey('product_variants.id'), nullable=True),
        sa.Column('variant_combination', postgresql.JSONB(), nullable=True),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'affiliate_referrals',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('affiliate_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('referral_code', sa.String(50), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('total_orders', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_affiliate_referrals_affiliate_id', 'affiliate_referrals', ['affiliate_id'])

    op.create_table(
        'affiliate_commissions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('affiliate_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=False),
        _money('order_item_amount', nullable=False),
        sa.Column('commission_percent', sa.Numeric(5, 2), nullable=False),
        _money('commission_amount', nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_affiliate_commissions_affiliate_id', 'affiliate_commissions', ['affiliate_id'])
    op.create_index('ix_affiliate_commissions_order_id', 'affiliate_commissions', ['order_id'])

    op.create_table(
        'invoices',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('invoice_number', sa.String(64), nullable=False, unique=True),
        sa.Column('seller_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('week_start_date', sa.Date(), nullable=False),
        sa.Column('week_end_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(32), nullable=False),
        _money('total_amount', nullable=False, server_default='0'),
        _money('total_amount_mkd', nullable=False, server_default='0'),
        _money('total_amount_eur', nullable=False, server_default='0'),
        sa.Column('order_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('payment_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_invoices_seller_id', 'invoices', ['seller_id'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])

    op.create_table(
        'invoice_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('invoice_id', sa.Uuid(), sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('delivery_date', sa.DateTime(), nullable=False),
        _money('product_price', nullable=False),
        _money('product_price_mkd'),
        _money('product_price_eur'),
        sa.Column('platform_fee_percent', sa.Numeric(5, 2), nullable=False),
        _money('platform_fee', nullable=False),
        _money('platform_fee_mkd'),
        _money('platform_fee_eur'),
        sa.Column('affiliate_fee_percent', sa.Numeric(5, 2), nullable=True),
        _money('affiliate_fee', nullable=False, server_default='0'),
        _money('affiliate_fee_mkd'),
        _money('affiliate_fee_eur'),
        _money('total_owed', nullable=False),
        _money('total_owed_mkd'),
        _money('total_owed_eur'),
    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])
    op.create_index('ix_invoice_items_order_id', 'invoice_items', ['order_id'])

    op.create_table(
        'seller_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('seller_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('platform_fee_percent', sa.Numeric(5, 2), nullable=True),
        sa.Column('shipping_countries', postgresql.JSONB(), nullable=True),
        sa.Column('notifications_orders', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('telegram_chat_id', sa.String(64), nullable=True),
        sa.Column('payment_restricted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_restricted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'platform_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('key', sa.String(32), nullable=False, unique=True),
        sa.Column('platform_fee_percent', sa.Numeric(5, 2), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('platform_settings')
    op.drop_table('seller_settings')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('affiliate_commissions')
    op.drop_table('affiliate_referrals')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('users')
