"""
AdSet model — belongs to a campaign.
"""
from sqlalchemy import Column, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from adstats.database import Base


class AdSet(Base):
    __tablename__ = 'adsets'

    id = Column(Text, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    campaign_id = Column(Text, ForeignKey('campaigns.id'), nullable=False)
    external_adset_id = Column(Text, nullable=True)
    name = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='ACTIVE')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
