"""
Sellpage model — a landing page whose revenue is attributed to campaigns.
"""
from sqlalchemy import Column, Text, DateTime
from sqlalchemy.sql import func

from adstats.database import Base


class Sellpage(Base):
    __tablename__ = 'sellpages'

    id = Column(Text, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    slug = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
