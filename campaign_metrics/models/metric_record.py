"""
MetricRecord model — the computed-metrics snapshot for one upload.

Exactly one row per upload; re-processing replaces it. Rows are never updated.
"""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func

from campaign_metrics.database import Base


def _fmt(value):
    return None if value is None else str(value)


class MetricRecord(Base):
    __tablename__ = 'marketing_metrics'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    csv_upload_id = Column(
        Integer, ForeignKey('csv_uploads.id', ondelete='CASCADE'),
        nullable=False, unique=True,
    )
    conversion_rate = Column(Numeric(20, 2), nullable=False)      # %
    click_through_rate = Column(Numeric(20, 2), nullable=False)   # %
    roi = Column(Numeric(20, 2), nullable=False)                  # %, may be negative
    average_cpc = Column(Numeric(20, 2), nullable=False)          # currency
    total_impressions = Column(Numeric(20, 2), default=0)
    total_clicks = Column(Numeric(20, 2), default=0)
    total_conversions = Column(Numeric(20, 2), default=0)
    total_cost = Column(Numeric(20, 2), default=0)
    total_revenue = Column(Numeric(20, 2), default=0)
    row_count = Column(Integer, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'csvUploadId': self.csv_upload_id,
            'conversionRate': _fmt(self.conversion_rate),
            'clickThroughRate': _fmt(self.click_through_rate),
            'roi': _fmt(self.roi),
            'averageCpc': _fmt(self.average_cpc),
            'totals': {
                'impressions': _fmt(self.total_impressions),
                'clicks': _fmt(self.total_clicks),
                'conversions': _fmt(self.total_conversions),
                'cost': _fmt(self.total_cost),
                'revenue': _fmt(self.total_revenue),
            },
            'rowCount': self.row_count or 0,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
