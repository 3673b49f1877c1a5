"""create ledger tables

Revision ID: 3c1d7e2a9b40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d7e2a9b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    from sqlalchemy import inspect as sa_inspect
    conn = op.get_bind()
    existing = set(sa_inspect(conn).get_table_names())

    if 'asset_classes' not in existing:
        op.create_table(
            'asset_classes',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('color', sa.String(length=7), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'name', name='uix_asset_class_user_name'),
        )

    if 'accounts' not in existing:
        op.create_table(
            'accounts',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('account_type', sa.String(), nullable=False),
            sa.Column('category', sa.String(), nullable=False),
            sa.Column('current_balance', sa.Numeric(18, 4), nullable=False),
            sa.Column('asset_class_id', sa.String(length=36), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['asset_class_id'], ['asset_classes.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_accounts_user_id', 'accounts', ['user_id'])

    if 'transactions' not in existing:
        op.create_table(
            'transactions',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('account_id', sa.String(length=36), nullable=True),
            sa.Column('transaction_type', sa.String(), nullable=False),
            sa.Column('amount', sa.Numeric(18, 4), nullable=False),
            sa.Column('transaction_date', sa.Date(), nullable=False),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('transaction_metadata', sa.JSON(), nullable=True),
            sa.Column('ticker', sa.String(), nullable=True),
            sa.Column('quantity', sa.Numeric(18, 8), nullable=True),
            sa.Column('price', sa.Numeric(18, 6), nullable=True),
            sa.Column('ledger_applied', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.CheckConstraint('amount >= 0', name='ck_transaction_amount_non_negative'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
        op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])
        op.create_index('ix_transactions_transaction_date', 'transactions', ['transaction_date'])

    if 'holdings' not in existing:
        op.create_table(
            'holdings',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('account_id', sa.String(length=36), nullable=False),
            sa.Column('symbol', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('asset_type', sa.String(), nullable=False),
            sa.Column('quantity', sa.Numeric(18, 8), nullable=False),
            sa.Column('cost_basis', sa.Numeric(18, 4), nullable=False),
            sa.Column('current_price', sa.Numeric(18, 6), nullable=False),
            sa.Column('current_value', sa.Numeric(18, 4), nullable=False),
            sa.Column('import_source', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.CheckConstraint('quantity >= 0', name='ck_holding_quantity_non_negative'),
            sa.ForeignKeyConstraint(['account_id'], ['accounts.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('account_id', 'symbol', name='uix_holding_account_symbol'),
        )
        op.create_index('ix_holdings_user_id', 'holdings', ['user_id'])
        op.create_index('ix_holdings_account_id', 'holdings', ['account_id'])

    if 'holding_lots' not in existing:
        op.create_table(
            'holding_lots',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('account_id', sa.String(length=36), nullable=False),
            sa.Column('holding_id', sa.String(length=36), nullable=False),
            sa.Column('transaction_id', sa.String(length=36), nullable=True),
            sa.Column('symbol', sa.String(), nullable=False),
            sa.Column('purchase_date', sa.Date(), nullable=False),
            sa.Column('quantity', sa.Numeric(18, 8), nullable=False),
            sa.Column('quantity_remaining', sa.Numeric(18, 8), nullable=False),
            sa.Column('cost_per_share', sa.Numeric(18, 6), nullable=False),
            sa.Column('total_cost', sa.Numeric(18, 4), nullable=False),
            sa.Column('lot_status', sa.String(), nullable=False),
            sa.Column('source', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.CheckConstraint('cost_per_share >= 0', name='ck_holding_lot_cost_non_negative'),
            sa.CheckConstraint('quantity > 0', name='ck_holding_lot_quantity_positive'),
            sa.CheckConstraint('quantity_remaining >= 0', name='ck_holding_lot_remaining_non_negative'),
            sa.ForeignKeyConstraint(['account_id'], ['accounts.id']),
            sa.ForeignKeyConstraint(['holding_id'], ['holdings.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_holding_lots_holding_id', 'holding_lots', ['holding_id'])
        op.create_index('ix_holding_lots_transaction_id', 'holding_lots', ['transaction_id'])

    if 'portfolio_snapshots' not in existing:
        op.create_table(
            'portfolio_snapshots',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('snapshot_date', sa.Date(), nullable=False),
            sa.Column('total_assets', sa.Numeric(18, 2), nullable=False),
            sa.Column('total_liabilities', sa.Numeric(18, 2), nullable=False),
            sa.Column('net_worth', sa.Numeric(18, 2), nullable=False),
            sa.Column('asset_class_breakdown', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'snapshot_date', name='uix_portfolio_snapshot_user_date'),
        )
        op.create_index('ix_portfolio_snapshots_user_id', 'portfolio_snapshots', ['user_id'])

    if 'statement_imports' not in existing:
        op.create_table(
            'statement_imports',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('filename', sa.String(), nullable=False),
            sa.Column('file_type', sa.String(), nullable=False),
            sa.Column('file_path', sa.String(), nullable=False),
            sa.Column('file_size', sa.BigInteger(), nullable=False),
            sa.Column('broker_name', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('uploaded_at', sa.DateTime(), nullable=False),
            sa.Column('processed_at', sa.DateTime(), nullable=True),
            sa.Column('validation_summary', sa.JSON(), nullable=False),
            sa.Column('error_message', sa.Text(), nullable=True),
            sa.Column('trade_count', sa.Integer(), nullable=False),
            sa.CheckConstraint(
                "status IN ('pending', 'processing', 'completed', 'failed')",
                name='ck_statement_import_status',
            ),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_statement_imports_user_id', 'statement_imports', ['user_id'])

    if 'parsed_trades' not in existing:
        op.create_table(
            'parsed_trades',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('import_id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('symbol', sa.String(), nullable=False),
            sa.Column('action', sa.String(), nullable=False),
            sa.Column('shares', sa.Numeric(18, 8), nullable=True),
            sa.Column('price', sa.Numeric(18, 6), nullable=True),
            sa.Column('amount', sa.Numeric(18, 4), nullable=True),
            sa.Column('trade_date', sa.Date(), nullable=True),
            sa.Column('account_name', sa.String(), nullable=True),
            sa.Column('confidence_score', sa.Numeric(3, 2), nullable=False),
            sa.Column('validation_status', sa.String(), nullable=False),
            sa.Column('validation_errors', sa.JSON(), nullable=False),
            sa.Column('raw_text_snippet', sa.Text(), nullable=True),
            sa.Column('is_selected', sa.Boolean(), nullable=False),
            sa.Column('transaction_id', sa.String(length=36), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.CheckConstraint(
                'confidence_score >= 0 AND confidence_score <= 1',
                name='ck_parsed_trade_confidence_range',
            ),
            sa.CheckConstraint(
                "validation_status IN ('valid', 'warning', 'error', 'pending')",
                name='ck_parsed_trade_validation_status',
            ),
            sa.ForeignKeyConstraint(['import_id'], ['statement_imports.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_parsed_trades_import_id', 'parsed_trades', ['import_id'])
        op.create_index('ix_parsed_trades_user_id', 'parsed_trades', ['user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'parsed_trades',
        'statement_imports',
        'portfolio_snapshots',
        'holding_lots',
        'holdings',
        'transactions',
        'accounts',
        'asset_classes',
    ):
        op.drop_table(table)
