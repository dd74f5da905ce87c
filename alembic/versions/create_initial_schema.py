"""create_initial_schema

Revision ID: create_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'members',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_number', sa.String(20), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('gender', sa.String(6), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('national_id_number', sa.String(50), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('email_address', sa.String(255), nullable=True),
        sa.Column('residence', sa.String(100), nullable=False),
        sa.Column('next_of_kin', sa.JSON(), nullable=False),
        sa.Column('registration_date', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('wallet_balance', sa.Numeric(12, 2), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_member_number', 'members', ['member_number'], unique=True)
    op.create_index('ix_members_name', 'members', ['name'])

    op.create_table(
        'dependants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('gender', sa.String(6), nullable=False),
        sa.Column('relationship', sa.String(50), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('is_disabled', sa.Boolean(), nullable=True),
        sa.Column('is_eligible', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dependants_member_id', 'dependants', ['member_id'])

    op.create_table(
        'residences',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('case_number', sa.String(20), nullable=False),
        sa.Column('affected_member_id', sa.Uuid(), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('dependant_id', sa.Uuid(), sa.ForeignKey('dependants.id'), nullable=True),
        sa.Column('case_type', sa.String(9), nullable=False),
        sa.Column('contribution_per_member', sa.Numeric(12, 2), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('expected_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('actual_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('is_finalized', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cases_case_number', 'cases', ['case_number'], unique=True)
    op.create_index('ix_cases_affected_member_id', 'cases', ['affected_member_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('case_id', sa.Uuid(), sa.ForeignKey('cases.id'), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('transaction_type', sa.String(30), nullable=False),
        sa.Column('mpesa_reference', sa.String(50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('operation_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_member_id', 'transactions', ['member_id'])
    op.create_index('ix_transactions_case_id', 'transactions', ['case_id'])
    op.create_index('ix_transactions_transaction_type', 'transactions', ['transaction_type'])
    op.create_index('ix_transactions_operation_id', 'transactions', ['operation_id'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])

    op.create_table(
        'wrong_mpesa_transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('mpesa_reference', sa.String(50), nullable=True),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('payer_name', sa.String(200), nullable=True),
        sa.Column('account_reference', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_wrong_mpesa_transactions_mpesa_reference', 'wrong_mpesa_transactions', ['mpesa_reference'])
    op.create_index('ix_wrong_mpesa_transactions_resolved_at', 'wrong_mpesa_transactions', ['resolved_at'])

    op.create_table(
        'settings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('registration_fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('renewal_fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('penalty_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('member_id_start', sa.Integer(), nullable=True),
        sa.Column('case_id_start', sa.Integer(), nullable=True),
        sa.Column('organization_name', sa.String(200), nullable=False),
        sa.Column('organization_email', sa.String(255), nullable=True),
        sa.Column('organization_phone', sa.String(20), nullable=True),
        sa.Column('paybill_number', sa.String(20), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(11), nullable=False),
        sa.Column('member_id', sa.Uuid(), sa.ForeignKey('members.id'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_member_id', 'users', ['member_id'])


def downgrade() -> None:
    op.drop_table('users')
    op.drop_table('settings')
    op.drop_table('wrong_mpesa_transactions')
    op.drop_table('transactions')
    op.drop_table('cases')
    op.drop_table('residences')
    op.drop_table('dependants')
    op.drop_table('members')
