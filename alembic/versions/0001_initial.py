"""create cache_entries

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'cache_entries',
        sa.Column('key', sa.String(), primary_key=True, nullable=False),
        sa.Column('resource', sa.String(), nullable=False),
        sa.Column('items', sa.Text(), nullable=False),
        sa.Column('stored_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_cache_entries_resource', 'cache_entries', ['resource'])


def downgrade() -> None:
    op.drop_index('ix_cache_entries_resource', table_name='cache_entries')
    op.drop_table('cache_entries')
