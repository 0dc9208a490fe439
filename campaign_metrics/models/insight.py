"""
Insight model — narrative card derived from a MetricRecord.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from campaign_metrics.database import Base


class Insight(Base):
    __tablename__ = 'ai_insights'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    metric_id = Column(
        Integer, ForeignKey('marketing_metrics.id', ondelete='CASCADE'),
        nullable=False, index=True,
    )
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(Text, nullable=False)   # conversion / audience / channel / spend
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'metricId': self.metric_id,
            'title': self.title,
            'content': self.content,
            'category': self.category,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
