"""Add csv_uploads.claimed_at, widen marketing_metrics figures to NUMERIC(20, 2)

Revision ID: 8b41e6c0d2f3
Revises: 3f9a1c2d7e54
Create Date: 2026-10-18 15:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b41e6c0d2f3'
down_revision: Union[str, None] = '3f9a1c2d7e54'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FIGURES = {
    'conversion_rate': sa.Numeric(12, 2),
    'click_through_rate': sa.Numeric(12, 2),
    'roi': sa.Numeric(14, 2),
    'average_cpc': sa.Numeric(14, 2),
}


def upgrade() -> None:
    op.add_column('csv_uploads', sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True))
    with op.batch_alter_table('marketing_metrics') as batch:
        for name, old_type in FIGURES.items():
            batch.alter_column(name, type_=sa.Numeric(20, 2), existing_type=old_type,
                               existing_nullable=False)


def downgrade() -> None:
    with op.batch_alter_table('marketing_metrics') as batch:
        for name, old_type in FIGURES.items():
            batch.alter_column(name, type_=old_type, existing_type=sa.Numeric(20, 2),
                               existing_nullable=False)
    op.drop_column('csv_uploads', 'claimed_at')
