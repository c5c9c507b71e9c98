"""Initial ledger schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Tables:
- donors, campaign_contents, campaigns, subscriptions, transactions
- one meta table per entity: (meta_id, owner_id, meta_key, meta_value)
- settings
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('modified_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _meta_table(name: str, owner: str) -> None:
    op.create_table(
        name,
        sa.Column('meta_id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey(f'{owner}.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('meta_key', sa.String(255), nullable=False, index=True),
        sa.Column('meta_value', sa.JSON(), nullable=True),
    )


def upgrade() -> None:
    transactionstatus = postgresql.ENUM('pending', 'completed', 'refunded', 'cancelled', 'failed', name='transactionstatus', create_type=False)
    transactiontype = postgresql.ENUM('one_time', 'weekly', 'monthly', 'quarterly', 'annually', name='transactiontype', create_type=False)
    subscriptionstatus = postgresql.ENUM('pending', 'active', 'paused', 'cancelled', 'expired', 'failed', name='subscriptionstatus', create_type=False)

    transactionstatus.create(op.get_bind(), checkfirst=True)
    transactiontype.create(op.get_bind(), checkfirst=True)
    subscriptionstatus.create(op.get_bind(), checkfirst=True)

    # Donors
    op.create_table(
        'donors',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=True, index=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('name_prefix', sa.String(20), nullable=False, server_default=''),
        sa.Column('phone', sa.String(50), nullable=False, server_default=''),
        sa.Column('total_donated', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_tip', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('transaction_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('first_transaction_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_transaction_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Campaign content entries
    op.create_table(
        'campaign_contents',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Campaign ledger rows
    op.create_table(
        'campaigns',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('content_id', sa.Integer(), sa.ForeignKey('campaign_contents.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('goal_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_raised', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('transaction_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='usd'),
        sa.Column('date_start', sa.Date(), nullable=True),
        sa.Column('date_end', sa.Date(), nullable=True),
        *_timestamps(),
    )

    # Subscriptions (before transactions, which reference them)
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('status', subscriptionstatus, nullable=False, server_default='pending', index=True),
        sa.Column('donor_id', sa.Integer(), sa.ForeignKey('donors.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaigns.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('initial_transaction_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('fee_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('tip_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='usd'),
        sa.Column('frequency', sa.String(20), nullable=False, server_default='monthly'),
        sa.Column('payment_gateway', sa.String(50), nullable=False, server_default=''),
        sa.Column('gateway_subscription_id', sa.String(255), nullable=True),
        sa.Column('gateway_customer_id', sa.String(255), nullable=True),
        sa.Column('renewal_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_renewed', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('date_next_renewal', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_cancelled', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_expired', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Transactions
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('status', transactionstatus, nullable=False, server_default='pending', index=True),
        sa.Column('type', transactiontype, nullable=False, server_default='one_time'),
        sa.Column('donor_id', sa.Integer(), sa.ForeignKey('donors.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('subscription_id', sa.Integer(), sa.ForeignKey('subscriptions.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('transactions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('campaign_id', sa.Integer(), sa.ForeignKey('campaigns.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('source_id', sa.Integer(), nullable=True, index=True),
        sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('fee_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('tip_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='usd'),
        sa.Column('completed_amount', sa.BigInteger(), nullable=True),
        sa.Column('completed_tip_amount', sa.BigInteger(), nullable=True),
        sa.Column('payment_gateway', sa.String(50), nullable=False, server_default=''),
        sa.Column('gateway_transaction_id', sa.String(255), nullable=True, unique=True),
        sa.Column('gateway_subscription_id', sa.String(255), nullable=True),
        sa.Column('is_anonymous', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('donor_ip', sa.String(45), nullable=False, server_default=''),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # Metadata
    _meta_table('donor_meta', 'donors')
    _meta_table('campaign_meta', 'campaigns')
    _meta_table('transaction_meta', 'transactions')
    _meta_table('subscription_meta', 'subscriptions')

    # Plugin settings
    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(100), nullable=False, unique=True),
        sa.Column('value', sa.JSON(), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('settings')
    op.drop_table('subscription_meta')
    op.drop_table('transaction_meta')
    op.drop_table('campaign_meta')
    op.drop_table('donor_meta')
    op.drop_table('transactions')
    op.drop_table('subscriptions')
    op.drop_table('campaigns')
    op.drop_table('campaign_contents')
    op.drop_table('donors')

    op.execute('DROP TYPE IF EXISTS subscriptionstatus')
    op.execute('DROP TYPE IF EXISTS transactiontype')
    op.execute('DROP TYPE IF EXISTS transactionstatus')
