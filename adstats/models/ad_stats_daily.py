"""
AdStatsDaily model — current-truth aggregate for one entity on one date.

Counters are sums over every raw row for the key; ratios are re-derived from
those sums on each aggregation.
"""
from sqlalchemy import Column, Integer, Text, Float, Date, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from adstats.database import Base


class AdStatsDaily(Base):
    __tablename__ = 'ad_stats_daily'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'entity_type', 'entity_id', 'stat_date',
                         name='uq_ad_stats_daily_entity_date'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False)
    stat_date = Column(Date, nullable=False)

    spend = Column(Float, default=0.0)
    impressions = Column(Integer, default=0)
    link_clicks = Column(Integer, default=0)
    content_views = Column(Integer, default=0)
    add_to_cart = Column(Integer, default=0)
    checkout_initiated = Column(Integer, default=0)
    purchases = Column(Integer, default=0)
    purchase_value = Column(Float, default=0.0)

    cpm = Column(Float, default=0.0)
    ctr = Column(Float, default=0.0)
    cpc = Column(Float, default=0.0)
    cost_per_purchase = Column(Float, default=0.0)
    roas = Column(Float, default=0.0)

    raw_row_count = Column(Integer, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
