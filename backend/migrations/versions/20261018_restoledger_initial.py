"""Initial ledger schema: customers, wallets, loyalty, orders, settings, notifications

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

Money columns are integer cents throughout.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. CUSTOMERS, WALLETS, WALLET HISTORY
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('country_code', sa.String(length=8), nullable=True),
        sa.Column('mobile_number', sa.String(length=32), nullable=True),
        sa.Column('referral_code', sa.String(length=16), nullable=False),
        sa.Column('referred_by_customer_id', sa.Integer(), nullable=True),
        sa.Column('referral_bonus_awarded', sa.Boolean(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['referred_by_customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referral_code', name='uq_customers_referral_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_referred_by', ['referred_by_customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_customers_email'), ['email'], unique=False)
        batch_op.create_index(batch_op.f('ix_customers_mobile_number'), ['mobile_number'], unique=False)

    op.create_table('customer_wallets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('balance_cents >= 0', name='ck_customer_wallets_balance_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', name='uq_customer_wallets_customer'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customer_wallets', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_customer_wallets_customer_id'), ['customer_id'], unique=False)

    op.create_table('wallet_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=8), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('balance_after_cents', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=True),
        sa.Column('payment_request_id', sa.String(length=128), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('amount_cents > 0', name='ck_wallet_txns_amount_positive'),
        sa.CheckConstraint('balance_after_cents >= 0', name='ck_wallet_txns_balance_after_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('wallet_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_wallet_txns_customer_created', ['customer_id', 'created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_wallet_transactions_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_wallet_transactions_transaction_type'), ['transaction_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_wallet_transactions_source'), ['source'], unique=False)
        batch_op.create_index(batch_op.f('ix_wallet_transactions_order_number'), ['order_number'], unique=False)

    # ==========================================================================
    # 2. ORDERS, PAYMENTS, SEQUENCES, CART
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('restaurant_user_id', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=True),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('vat_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('gross_total_cents', sa.Integer(), nullable=False),
        sa.Column('wallet_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('paid_total_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ready_estimate_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_mode', sa.String(length=32), nullable=True),
        sa.Column('payment_request_id', sa.String(length=128), nullable=True),
        sa.Column('instore', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('allergy_note', sa.String(length=500), nullable=True),
        sa.Column('car_color', sa.String(length=64), nullable=True),
        sa.Column('reg_number', sa.String(length=32), nullable=True),
        sa.Column('owner_name', sa.String(length=128), nullable=True),
        sa.Column('mobile_number', sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index('ix_orders_order_number', ['order_number'], unique=False)
        batch_op.create_index('ix_orders_status_ready_estimate', ['status', 'ready_estimate_at'], unique=False)
        batch_op.create_index('ix_orders_customer_created', ['customer_id', 'created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_orders_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_orders_restaurant_user_id'), ['restaurant_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_orders_status'), ['status'], unique=False)

    op.create_table('order_payment_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('payment_request_id', sa.String(length=128), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='success'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_payment_history', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_order_payment_history_order_number'), ['order_number'], unique=False)

    op.create_table('order_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('prefix', name='uq_order_sequences_prefix'),
        sqlite_autoincrement=True
    )

    op.create_table('cart_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('restaurant_user_id', sa.Integer(), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('vat_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('note', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', 'product_id', name='uq_cart_items_customer_product'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cart_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cart_items_customer_id'), ['customer_id'], unique=False)

    # ==========================================================================
    # 3. LOYALTY
    # ==========================================================================
    op.create_table('loyalty_earnings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('points_earned', sa.Integer(), nullable=False),
        sa.Column('points_remaining', sa.Integer(), nullable=False),
        sa.Column('available_from', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('points_earned > 0', name='ck_loyalty_earnings_points_positive'),
        sa.CheckConstraint(
            'points_remaining >= 0 AND points_remaining <= points_earned',
            name='ck_loyalty_earnings_remaining_range',
        ),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('loyalty_earnings', schema=None) as batch_op:
        batch_op.create_index('ix_loyalty_earnings_customer_expires', ['customer_id', 'expires_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_loyalty_earnings_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_loyalty_earnings_order_id'), ['order_id'], unique=False)

    op.create_table('loyalty_redemptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('points_redeemed', sa.Integer(), nullable=False),
        sa.Column('wallet_amount_cents', sa.Integer(), nullable=False),
        sa.Column('wallet_transaction_id', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['wallet_transaction_id'], ['wallet_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wallet_transaction_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('loyalty_redemptions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_loyalty_redemptions_customer_id'), ['customer_id'], unique=False)

    # ==========================================================================
    # 4. SETTINGS AND NOTIFICATIONS
    # ==========================================================================
    op.create_table('business_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('signup_bonus_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('referral_bonus_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('minimum_order_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('minimum_cart_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_per_unit', sa.Numeric(10, 4), nullable=False, server_default='1'),
        sa.Column('redeem_rate_points', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('redeem_rate_value_cents', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('accrual_delay_hours', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('expiry_days', sa.Integer(), nullable=False, server_default='30'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_type', sa.String(length=16), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('order_number', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.create_index('ix_notifications_user', ['user_type', 'user_id'], unique=False)

    op.create_table('push_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_type', sa.String(length=16), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=512), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_type', 'user_id', 'token', name='uq_push_tokens_user_token'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('push_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_push_tokens_user_id'), ['user_id'], unique=False)


def downgrade():
    op.drop_table('push_tokens')
    op.drop_table('notifications')
    op.drop_table('business_settings')
    op.drop_table('loyalty_redemptions')
    op.drop_table('loyalty_earnings')
    op.drop_table('cart_items')
    op.drop_table('order_sequences')
    op.drop_table('order_payment_history')
    op.drop_table('orders')
    op.drop_table('wallet_transactions')
    op.drop_table('customer_wallets')
    op.drop_table('customers')
