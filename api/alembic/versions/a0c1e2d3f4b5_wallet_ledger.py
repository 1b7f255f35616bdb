"""wallet ledger, credits and withdrawals

Revision ID: a0c1e2d3f4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a0c1e2d3f4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'wallets',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('balance', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('deposit_balance', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('winnings_balance', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('bonus_balance', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('is_blocked', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('deposit_balance >= 0', name='ck_wallet_deposit_non_negative'),
        sa.CheckConstraint('winnings_balance >= 0', name='ck_wallet_winnings_non_negative'),
        sa.CheckConstraint('bonus_balance >= 0', name='ck_wallet_bonus_non_negative'),
    )

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('balance_after', sa.Numeric(14, 2), nullable=False),
        sa.Column('balance_type', sa.String(20), nullable=True),
        sa.Column('reference_id', sa.String(64), nullable=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('idempotency_key', sa.String(128), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_user_created', 'transactions', ['user_id', 'created_at'])

    op.create_table(
        'credits',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('amount', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_unlimited', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('last_free_credit', sa.Date(), nullable=True),
        sa.Column('free_remaining', sa.Integer(), server_default='0', nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_credits_amount_non_negative'),
    )

    op.create_table(
        'bonus_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('admin_id', sa.String(36), nullable=True),
        sa.Column('bonus_type', sa.String(30), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('amount_type', sa.String(20), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_bonus_records_user_id', 'bonus_records', ['user_id'])
    op.create_index('ix_bonus_records_user_created', 'bonus_records', ['user_id', 'created_at'])

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('pix_key', sa.String(140), nullable=False),
        sa.Column('pix_key_type', sa.String(20), server_default='cpf', nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('rejection_reason', sa.String(255), nullable=True),
        sa.Column('processed_by', sa.String(36), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('admin_notes', sa.String(255), nullable=True),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_withdrawal_requests_user_id', 'withdrawal_requests', ['user_id'])
    op.create_index('ix_withdrawal_user_status', 'withdrawal_requests', ['user_id', 'status'])

    op.create_table(
        'admin_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('admin_id', sa.String(36), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('target_type', sa.String(30), nullable=False),
        sa.Column('target_id', sa.String(64), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_admin_logs_admin_id', 'admin_logs', ['admin_id'])
    op.create_index('ix_admin_logs_target', 'admin_logs', ['target_type', 'target_id'])

    op.create_table(
        'system_settings',
        sa.Column('key', sa.String(50), primary_key=True),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('updated_by', sa.String(36), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'platform_revenue',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('credit_sale_revenue', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('credit_usage_revenue', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('bet_fee_revenue', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('total', sa.Numeric(14, 2), server_default='0', nullable=False),
        sa.Column('version', sa.Integer(), server_default='1', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_platform_revenue_date', 'platform_revenue', ['date'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_platform_revenue_date', 'platform_revenue')
    op.drop_table('platform_revenue')
    op.drop_table('system_settings')
    op.drop_index('ix_admin_logs_target', 'admin_logs')
    op.drop_index('ix_admin_logs_admin_id', 'admin_logs')
    op.drop_table('admin_logs')
    op.drop_index('ix_withdrawal_user_status', 'withdrawal_requests')
    op.drop_index('ix_withdrawal_requests_user_id', 'withdrawal_requests')
    op.drop_table('withdrawal_requests')
    op.drop_index('ix_bonus_records_user_created', 'bonus_records')
    op.drop_index('ix_bonus_records_user_id', 'bonus_records')
    op.drop_table('bonus_records')
    op.drop_table('credits')
    op.drop_index('ix_transactions_user_created', 'transactions')
    op.drop_index('ix_transactions_user_id', 'transactions')
    op.drop_table('transactions')
    op.drop_table('wallets')
