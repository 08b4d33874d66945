"""Initial schema - users, currencies, exchange_rates

Revision ID: 0001
Revises: None
Create Date: 2025-12-20
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables."""

    # ===========================================
    # 1. USERS TABLE
    # ===========================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('email', sa.String(255), unique=True, index=True, nullable=False),
        sa.Column('username', sa.String(100), unique=True, index=True, nullable=False),
        sa.Column('role', sa.Enum('admin', 'user', name='user_role'), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # ===========================================
    # 2. CURRENCIES TABLE
    # ===========================================
    op.create_table(
        'currencies',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('code', sa.String(10), unique=True, index=True, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('symbol', sa.String(10), nullable=False),
        sa.Column(
            'currency_type',
            sa.Enum('fiat', 'cryptocurrency', 'precious_metal', name='currency_type'),
            nullable=False,
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )

    # ===========================================
    # 3. EXCHANGE_RATES TABLE
    # ===========================================
    op.create_table(
        'exchange_rates',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('from_currency', sa.String(10), nullable=False),
        sa.Column('to_currency', sa.String(10), nullable=False),
        sa.Column('rate', sa.Numeric(38, 20), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('from_currency', 'to_currency', name='uq_exchange_rates_pair'),
    )
    op.create_index('ix_exchange_rates_pair', 'exchange_rates', ['from_currency', 'to_currency'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_exchange_rates_pair', table_name='exchange_rates')
    op.drop_table('exchange_rates')
    op.drop_table('currencies')
    op.drop_table('users')
    sa.Enum(name='currency_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
