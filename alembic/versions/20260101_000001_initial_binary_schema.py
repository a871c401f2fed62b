"""Initial binary plan schema

Revision ID: 20260101_000001
Revises:
Create Date: 2026-01-01

Creates members (binary tree), packages, wallet_transactions (ledger),
investments and pv_history tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create binary plan tables."""
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sponsor_id', sa.Integer(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('side', sa.String(length=10), nullable=False),
        sa.Column('is_root', sa.Boolean(), nullable=True),
        sa.Column('left_volume', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('right_volume', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('self_volume', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('referral_code', sa.String(length=20), nullable=False),
        sa.Column('profile_id', sa.String(length=20), nullable=True),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sponsor_id'], ['members.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['parent_id'], ['members.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('parent_id', 'side', name='uq_members_parent_side'),
        sa.UniqueConstraint('is_root', name='uq_members_single_root'),
        sa.UniqueConstraint('profile_id'),
        sa.CheckConstraint(
            "side IN ('left', 'right', 'none')", name='check_member_side_valid'
        ),
        sa.CheckConstraint(
            'left_volume >= 0', name='check_member_left_volume_non_negative'
        ),
        sa.CheckConstraint(
            'right_volume >= 0', name='check_member_right_volume_non_negative'
        ),
        sa.CheckConstraint(
            'self_volume >= 0', name='check_member_self_volume_non_negative'
        ),
    )
    op.create_index('ix_members_sponsor_id', 'members', ['sponsor_id'])
    op.create_index('ix_members_parent_id', 'members', ['parent_id'])
    op.create_index(
        'ix_members_referral_code', 'members', ['referral_code'], unique=True
    )
    op.create_index(
        'ix_members_wallet_address', 'members', ['wallet_address'], unique=True
    )

    op.create_table(
        'packages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('percent_yield', sa.DECIMAL(precision=5, scale=2), nullable=False),
        sa.Column('period_days', sa.Integer(), nullable=False),
        sa.Column('usd_amount', sa.DECIMAL(precision=12, scale=2), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'wallet_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=40), nullable=False),
        sa.Column('in_amount', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('out_amount', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('approval_status', sa.String(length=20), nullable=False),
        sa.Column('detail', sa.Text(), nullable=True),
        sa.Column('reference', sa.String(length=80), nullable=True),
        sa.Column('created_by', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('type', 'reference', name='uq_wallet_tx_type_reference'),
        sa.CheckConstraint('in_amount >= 0', name='check_wallet_tx_in_non_negative'),
        sa.CheckConstraint('out_amount >= 0', name='check_wallet_tx_out_non_negative'),
    )
    op.create_index(
        'ix_wallet_transactions_member_id', 'wallet_transactions', ['member_id']
    )
    op.create_index(
        'ix_wallet_transactions_approval_status',
        'wallet_transactions',
        ['approval_status'],
    )
    op.create_index(
        'idx_wallet_tx_member_type', 'wallet_transactions', ['member_id', 'type']
    )
    op.create_index(
        'idx_wallet_tx_member_created',
        'wallet_transactions',
        ['member_id', 'created_at'],
    )

    op.create_table(
        'investments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('package_id', sa.Integer(), nullable=False),
        sa.Column('invested_amount', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('usd_amount', sa.DECIMAL(precision=12, scale=2), nullable=False),
        sa.Column('token_price_usd', sa.DECIMAL(precision=24, scale=12), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('detail', sa.String(length=255), nullable=True),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('next_yield_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'invested_amount > 0', name='check_investment_amount_positive'
        ),
        sa.CheckConstraint(
            "status IN ('active', 'completed')", name='check_investment_status_valid'
        ),
    )
    op.create_index('ix_investments_member_id', 'investments', ['member_id'])
    op.create_index(
        'idx_investment_member_status', 'investments', ['member_id', 'status']
    )

    op.create_table(
        'pv_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event', sa.String(length=20), nullable=False),
        sa.Column('left_delta', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('right_delta', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('self_delta', sa.DECIMAL(precision=38, scale=8), nullable=False),
        sa.Column('from_member_id', sa.Integer(), nullable=False),
        sa.Column('to_member_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['from_member_id'], ['members.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['to_member_id'], ['members.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_pv_history_to_member', 'pv_history', ['to_member_id', 'created_at']
    )


def downgrade() -> None:
    """Drop binary plan tables."""
    op.drop_index('idx_pv_history_to_member', table_name='pv_history')
    op.drop_table('pv_history')

    op.drop_index('idx_investment_member_status', table_name='investments')
    op.drop_index('ix_investments_member_id', table_name='investments')
    op.drop_table('investments')

    op.drop_index('idx_wallet_tx_member_created', table_name='wallet_transactions')
    op.drop_index('idx_wallet_tx_member_type', table_name='wallet_transactions')
    op.drop_index(
        'ix_wallet_transactions_approval_status', table_name='wallet_transactions'
    )
    op.drop_index('ix_wallet_transactions_member_id', table_name='wallet_transactions')
    op.drop_table('wallet_transactions')

    op.drop_table('packages')

    op.drop_index('ix_members_wallet_address', table_name='members')
    op.drop_index('ix_members_referral_code', table_name='members')
    op.drop_index('ix_members_parent_id', table_name='members')
    op.drop_index('ix_members_sponsor_id', table_name='members')
    op.drop_table('members')
