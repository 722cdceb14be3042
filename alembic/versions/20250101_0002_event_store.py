"""event store

Revision ID: 20250101_0002
Revises: 20250101_0001
Create Date: 2025-01-01 00:00:01.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20250101_0002'
down_revision: Union[str, None] = '20250101_0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('event_store',
                    sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'),
                              primary_key=True, autoincrement=True),
                    sa.Column('aggregate_type', sa.String(length=100), nullable=False),
                    sa.Column('aggregate_id', sa.String(length=36), nullable=False),
                    sa.Column('event_name', sa.String(length=255), nullable=False),
                    sa.Column('payload', sa.JSON(), nullable=False),
                    sa.Column('occurred_on', sa.DateTime(timezone=True), nullable=False),
                    sa.Column('version', sa.Integer(), nullable=False),
                    )
    op.create_index('idx_es_aggregate', 'event_store', ['aggregate_type', 'aggregate_id'])
    op.create_index('idx_es_event_name', 'event_store', ['event_name'])
    op.create_index('idx_es_occurred_on', 'event_store', ['occurred_on'])


def downgrade() -> None:
    op.drop_index('idx_es_occurred_on', table_name='event_store')
    op.drop_index('idx_es_event_name', table_name='event_store')
    op.drop_index('idx_es_aggregate', table_name='event_store')
    op.drop_table('event_store')
