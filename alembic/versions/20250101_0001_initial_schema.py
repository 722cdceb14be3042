"""initial schema

Revision ID: 20250101_0001
Revises:
Create Date: 2025-01-01 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20250101_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('customers',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('first_name', sa.String(length=100), nullable=False),
                    sa.Column('last_name', sa.String(length=100), nullable=False),
                    sa.Column('full_name', sa.String(length=255)),
                    sa.Column('tax_id', sa.String(length=20), nullable=False),
                    sa.Column('email', sa.String(length=180)),
                    sa.Column('phone', sa.String(length=50)),
                    sa.Column('billing_address', sa.Text()),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(timezone=True)),
                    )
    op.create_index('ix_customers_tax_id', 'customers', ['tax_id'], unique=True)
    op.create_index('ix_customers_full_name', 'customers', ['full_name'])

    op.create_table('invoices',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('number', sa.String(length=20), nullable=False),
                    sa.Column('date', sa.DateTime(timezone=True), nullable=False),
                    sa.Column('amount', sa.Float(), nullable=False),
                    sa.Column('currency', sa.String(length=3), nullable=False),
                    sa.Column('full_name', sa.String(length=50), nullable=False),
                    sa.Column('phone', sa.String(length=50)),
                    sa.Column('address', sa.String(length=250)),
                    sa.Column('email', sa.String(length=100)),
                    sa.Column('tax_id', sa.String(length=15)),
                    sa.Column('customer_id', sa.Integer(),
                              sa.ForeignKey('customers.id'), nullable=True),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    )
    op.create_index('ix_invoices_number', 'invoices', ['number'], unique=True)
    op.create_index('ix_invoices_tax_id', 'invoices', ['tax_id'])
    op.create_index('idx_invoice_date_number', 'invoices', ['date', 'number'])

    op.create_table('invoice_lines',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('invoice_id', sa.Integer(),
                              sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False),
                    sa.Column('concept', sa.String(length=255)),
                    sa.Column('description', sa.Text()),
                    sa.Column('quantity', sa.Integer(), nullable=False),
                    sa.Column('price', sa.Float(), nullable=False),
                    sa.Column('amount', sa.Float(), nullable=False),
                    )
    op.create_index('ix_invoice_lines_invoice_id', 'invoice_lines', ['invoice_id'])

    op.create_table('counters',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('name', sa.String(length=50), nullable=False, unique=True),
                    sa.Column('value', sa.Text(), nullable=False),
                    )

    op.create_table('audit_trails',
                    sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'),
                              primary_key=True, autoincrement=True),
                    sa.Column('entity_type', sa.String(length=100), nullable=False),
                    sa.Column('entity_id', sa.String(length=100), nullable=False),
                    sa.Column('operation', sa.String(length=20), nullable=False),
                    sa.Column('changes', sa.JSON(), nullable=False),
                    sa.Column('changed_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.Column('ip_address', sa.String(length=45)),
                    sa.Column('user_agent', sa.Text()),
                    )
    op.create_index('idx_audit_entity', 'audit_trails', ['entity_type', 'entity_id'])


def downgrade() -> None:
    op.drop_index('idx_audit_entity', table_name='audit_trails')
    op.drop_table('audit_trails')
    op.drop_table('counters')
    op.drop_index('ix_invoice_lines_invoice_id', table_name='invoice_lines')
    op.drop_table('invoice_lines')
    op.drop_index('idx_invoice_date_number', table_name='invoices')
    op.drop_index('ix_invoices_tax_id', table_name='invoices')
    op.drop_index('ix_invoices_number', table_name='invoices')
    op.drop_table('invoices')
    op.drop_index('ix_customers_full_name', table_name='customers')
    op.drop_index('ix_customers_tax_id', table_name='customers')
    op.drop_table('customers')
