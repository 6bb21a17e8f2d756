"""
Ad model — belongs to an ad set.
"""
from sqlalchemy import Column, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from adstats.database import Base


class Ad(Base):
    __tablename__ = 'ads'

    id = Column(Text, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    adset_id = Column(Text, ForeignKey('adsets.id'), nullable=False)
    external_ad_id = Column(Text, nullable=True)
    name = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default='ACTIVE')
    created_at = Column(DateTime(timezone=True), server_default=func.now())
