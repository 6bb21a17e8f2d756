"""
AdAccount model — a tenant's connection to a Meta ad account.

Owned by the CRUD layer; the pipeline only reads it. access_token_enc holds
the AES-GCM encrypted access token (see services/credentials.py).
"""
from sqlalchemy import Column, Text, Boolean, DateTime
from sqlalchemy.sql import func

from adstats.database import Base


class AdAccount(Base):
    __tablename__ = 'ad_accounts'

    id = Column(Text, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    external_id = Column(Text, nullable=False)     # act_ id without the prefix
    name = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    access_token_enc = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
