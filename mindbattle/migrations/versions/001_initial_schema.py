"""Create MindBattle tables.

Revision ID: initial_001
Revises:
Create Date: 2026-10-19

Users (keyed by email), their wallet transactions and contest history,
contests, the admin audit log and key/value game settings.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "initial_001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'users',
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('wallet_balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('role', sa.String(30), nullable=True),
        sa.Column('banned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('registration_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('email'),
    )

    op.create_table(
        'transactions',
        sa.Column('transaction_id', sa.String(64), nullable=False),
        sa.Column('user_email', sa.String(255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('updated_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_email'], ['users.email'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('transaction_id'),
    )
    op.create_index('ix_transactions_user_email', 'transactions', ['user_email'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])
    op.create_index('ix_transactions_user_created', 'transactions', ['user_email', 'created_at'])

    op.create_table(
        'contests',
        sa.Column('contest_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('entry_fee', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('prize_pool', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(30), nullable=False, server_default='Draft'),
        sa.Column('registration_start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('registration_end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('contest_start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('max_participants', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('rules', sa.Text(), nullable=False, server_default=''),
        sa.Column('questions', sa.JSON(), nullable=False),
        sa.Column('participants', sa.JSON(), nullable=False),
        sa.Column('format', sa.String(20), nullable=False, server_default='KBC'),
        sa.Column('timer_type', sa.String(20), nullable=False, server_default='per_question'),
        sa.Column('time_per_question', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('total_contest_time', sa.Integer(), nullable=True),
        sa.Column('number_of_questions', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('results', sa.JSON(), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False, server_default='Medium'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('contest_id'),
    )
    op.create_index('ix_contests_status', 'contests', ['status'])
    op.create_index('ix_contests_contest_start_date', 'contests', ['contest_start_date'])

    op.create_table(
        'contest_history',
        sa.Column('history_id', sa.String(64), nullable=False),
        sa.Column('user_email', sa.String(255), nullable=False),
        sa.Column('contest_id', sa.String(64), nullable=False),
        sa.Column('contest_title', sa.String(200), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('result', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_email'], ['users.email'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('history_id'),
    )
    op.create_index('ix_contest_history_contest_id', 'contest_history', ['contest_id'])
    op.create_index('ix_contest_history_user_created', 'contest_history', ['user_email', 'created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('log_id', sa.String(64), nullable=False),
        sa.Column('admin_email', sa.String(255), nullable=False),
        sa.Column('admin_name', sa.String(100), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('details', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('log_id'),
    )
    op.create_index('ix_audit_logs_admin_email', 'audit_logs', ['admin_email'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])

    op.create_table(
        'game_settings',
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('key'),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('game_settings')

    op.drop_index('ix_audit_logs_created_at', table_name='audit_logs')
    op.drop_index('ix_audit_logs_action', table_name='audit_logs')
    op.drop_index('ix_audit_logs_admin_email', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_contest_history_user_created', table_name='contest_history')
    op.drop_index('ix_contest_history_contest_id', table_name='contest_history')
    op.drop_table('contest_history')

    op.drop_index('ix_contests_contest_start_date', table_name='contests')
    op.drop_index('ix_contests_status', table_name='contests')
    op.drop_table('contests')

    op.drop_index('ix_transactions_user_created', table_name='transactions')
    op.drop_index('ix_transactions_created_at', table_name='transactions')
    op.drop_index('ix_transactions_status', table_name='transactions')
    op.drop_index('ix_transactions_type', table_name='transactions')
    op.drop_index('ix_transactions_user_email', table_name='transactions')
    op.drop_table('transactions')

    op.drop_table('users')
