"""
Create shops and bundles tables

Revision ID: 0001_create_shops_and_bundles
Revises:
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

# revision identifiers, used by Alembic.
revision: str = '0001_create_shops_and_bundles'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'shops',
        sa.Column('shop_domain', sa.String(), primary_key=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('scope', sa.Text(), nullable=True),
        sa.Column('installed_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()')),
    )
    op.create_table(
        'bundles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('shop', sa.String(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('handle', sa.String(255), nullable=False),
        sa.Column('products', sa.Text(), nullable=False),
        sa.Column('discount_type', sa.String(20), nullable=False, server_default='percentage'),
        sa.Column('discount_value', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.UniqueConstraint('shop', 'handle', name='uq_bundle_shop_handle'),
    )
    op.create_index('ix_bundles_shop', 'bundles', ['shop'])


def downgrade() -> None:
    op.drop_index('ix_bundles_shop', table_name='bundles')
    op.drop_table('bundles')
    op.drop_table('shops')
