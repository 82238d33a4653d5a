"""
Track the mirrored price rule and an optimistic-lock version on bundles

Revision ID: 0002_price_rule_and_version
Revises: 0001_create_shops_and_bundles
Create Date: 2026-10-09
"""
from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

# revision identifiers, used by Alembic.
revision: str = '0002_price_rule_and_version'
down_revision: Union[str, None] = '0001_create_shops_and_bundles'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('bundles', sa.Column('price_rule_id', sa.String(64), nullable=True))
    op.add_column('bundles', sa.Column('version', sa.Integer(), nullable=False, server_default='1'))


def downgrade() -> None:
    op.drop_column('bundles', 'version')
    op.drop_column('bundles', 'price_rule_id')
