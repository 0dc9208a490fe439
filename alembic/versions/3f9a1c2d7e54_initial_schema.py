"""Initial schema: users, csv_uploads, marketing_metrics, ai_insights

Revision ID: 3f9a1c2d7e54
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e54'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.Text(), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False, server_default=''),
        sa.Column('first_name', sa.Text(), nullable=False, server_default=''),
        sa.Column('last_name', sa.Text(), nullable=False, server_default=''),
        sa.Column('role', sa.Text(), nullable=False, server_default='client'),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )

    op.create_table('csv_uploads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('filename', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.Text(), nullable=False, server_default='received'),
        sa.Column('storage_key', sa.Text(), nullable=False),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('row_count', sa.Integer(), nullable=True),
        sa.Column('skipped_rows', sa.JSON(), nullable=True),
        sa.Column('error_code', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('stage_timings', sa.JSON(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_csv_uploads_user_id', 'csv_uploads', ['user_id'])

    op.create_table('marketing_metrics',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('csv_upload_id', sa.Integer(), nullable=False),
        sa.Column('conversion_rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('click_through_rate', sa.Numeric(12, 2), nullable=False),
        sa.Column('roi', sa.Numeric(14, 2), nullable=False),
        sa.Column('average_cpc', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_impressions', sa.Numeric(20, 2), nullable=True),
        sa.Column('total_clicks', sa.Numeric(20, 2), nullable=True),
        sa.Column('total_conversions', sa.Numeric(20, 2), nullable=True),
        sa.Column('total_cost', sa.Numeric(20, 2), nullable=True),
        sa.Column('total_revenue', sa.Numeric(20, 2), nullable=True),
        sa.Column('row_count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['csv_upload_id'], ['csv_uploads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('csv_upload_id'),
    )
    op.create_index('ix_marketing_metrics_user_id', 'marketing_metrics', ['user_id'])

    op.create_table('ai_insights',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('metric_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['metric_id'], ['marketing_metrics.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ai_insights_user_id', 'ai_insights', ['user_id'])
    op.create_index('ix_ai_insights_metric_id', 'ai_insights', ['metric_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_ai_insights_metric_id', 'ai_insights')
    op.drop_index('ix_ai_insights_user_id', 'ai_insights')
    op.drop_table('ai_insights')
    op.drop_index('ix_marketing_metrics_user_id', 'marketing_metrics')
    op.drop_table('marketing_metrics')
    op.drop_index('ix_csv_uploads_user_id', 'csv_uploads')
    op.drop_table('csv_uploads')
    op.drop_table('users')
