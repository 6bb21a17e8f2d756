"""
Campaign model — top of the campaign → ad set → ad hierarchy.

budget is interpreted per budget_type: DAILY as-is, LIFETIME spread over 30 days.
"""
from sqlalchemy import Column, Text, Float, DateTime, ForeignKey
from sqlalchemy.sql import func

from adstats.database import Base


class Campaign(Base):
    __tablename__ = 'campaigns'

    id = Column(Text, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    sellpage_id = Column(Text, ForeignKey('sellpages.id'), nullable=True)
    ad_account_id = Column(Text, ForeignKey('ad_accounts.id'), nullable=True)
    external_campaign_id = Column(Text, nullable=True)
    name = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='ACTIVE')    # ACTIVE/PAUSED/ARCHIVED/DELETED
    budget = Column(Float, nullable=True)
    budget_type = Column(Text, nullable=False, default='DAILY')  # DAILY/LIFETIME
    created_at = Column(DateTime(timezone=True), server_default=func.now())
