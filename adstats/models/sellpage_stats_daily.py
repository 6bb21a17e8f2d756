"""
SellpageStatsDaily model — per-sellpage, per-channel daily rollup of campaign stats.
"""
from sqlalchemy import Column, Integer, Text, Float, Date, DateTime, UniqueConstraint
from sqlalchemy.sql import func

from adstats.database import Base


class SellpageStatsDaily(Base):
    __tablename__ = 'sellpage_stats_daily'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'sellpage_id', 'stat_date', 'ad_source',
                         name='uq_sellpage_stats_daily_page_date_source'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Text, nullable=False)
    sellpage_id = Column(Text, nullable=False)
    stat_date = Column(Date, nullable=False)
    ad_source = Column(Text, nullable=False)

    revenue = Column(Float, default=0.0)           # summed purchase value
    orders_count = Column(Integer, default=0)      # summed purchases
    ad_spend = Column(Float, default=0.0)
    impressions = Column(Integer, default=0)
    link_clicks = Column(Integer, default=0)
    content_views = Column(Integer, default=0)
    add_to_cart = Column(Integer, default=0)
    checkout_initiated = Column(Integer, default=0)
    purchases = Column(Integer, default=0)

    cpm = Column(Float, default=0.0)
    ctr = Column(Float, default=0.0)
    cost_per_purchase = Column(Float, default=0.0)
    roas = Column(Float, default=0.0)
    cr1 = Column(Float, default=0.0)   # link clicks / impressions
    cr2 = Column(Float, default=0.0)   # purchases / link clicks
    cr3 = Column(Float, default=0.0)   # purchases / content views

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
