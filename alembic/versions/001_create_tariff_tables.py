"""create_tariff_tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TARIFF_COLUMNS = [
    'box_delivery_base',
    'box_delivery_coef_expr',
    'box_delivery_liter',
    'box_delivery_marketplace_base',
    'box_delivery_marketplace_coef_expr',
    'box_delivery_marketplace_liter',
    'box_storage_base',
    'box_storage_coef_expr',
    'box_storage_liter',
]


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('warehouses'):
        op.create_table('warehouses',
        sa.Column('warehouse_name', sa.String(length=255), nullable=False),
        sa.Column('date', sa.Date(), server_default=sa.text('CURRENT_DATE'), nullable=False),
        *[sa.Column(name, sa.Numeric(), nullable=True) for name in TARIFF_COLUMNS],
        sa.PrimaryKeyConstraint('warehouse_name', 'date')
        )

    if not inspector.has_table('wh_tariffs'):
        op.create_table('wh_tariffs',
        sa.Column('warehouse_name', sa.String(length=255), nullable=False),
        sa.Column('date', sa.Date(), server_default=sa.text('CURRENT_DATE'), nullable=False),
        sa.Column('dt_next_box', sa.String(length=64), nullable=True),
        sa.Column('dt_till_max', sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint('warehouse_name', 'date')
        )

    if not inspector.has_table('wh_location'):
        op.create_table('wh_location',
        sa.Column('warehouse_name', sa.String(length=255), nullable=False),
        sa.Column('geo_name', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('warehouse_name')
        )


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('wh_tariffs', 'warehouses', 'wh_location'):
        if inspector.has_table(table):
            op.drop_table(table)
