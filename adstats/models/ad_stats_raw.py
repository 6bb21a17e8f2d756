"""
AdStatsRaw model — append-only log of fetched/generated observations.

Rows are never updated or deduplicated. Re-fetching the same entity/date adds
another row, and the daily aggregate sums all of them.
"""
from sqlalchemy import Column, Integer, Text, Float, Date, DateTime, Index

from adstats.database import Base


class AdStatsRaw(Base):
    __tablename__ = 'ad_stats_raw'
    __table_args__ = (
        Index('ix_ad_stats_raw_lookup', 'tenant_id', 'entity_type', 'entity_id', 'date_start'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)       # CAMPAIGN/ADSET/AD
    entity_id = Column(Text, nullable=False)
    external_entity_id = Column(Text, nullable=True)
    fetched_at = Column(DateTime(timezone=True), nullable=False)
    date_start = Column(Date, nullable=False)
    date_stop = Column(Date, nullable=False)

    spend = Column(Float, default=0.0)
    impressions = Column(Integer, default=0)
    link_clicks = Column(Integer, default=0)
    content_views = Column(Integer, default=0)
    add_to_cart = Column(Integer, default=0)
    checkout_initiated = Column(Integer, default=0)
    purchases = Column(Integer, default=0)
    purchase_value = Column(Float, default=0.0)

    # Fetch-time ratios; informational only, never summed
    cpm = Column(Float, default=0.0)
    ctr = Column(Float, default=0.0)
    cpc = Column(Float, default=0.0)
    cost_per_purchase = Column(Float, default=0.0)
    roas = Column(Float, default=0.0)
