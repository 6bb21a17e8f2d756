"""
Entity resolver — loads a tenant's syncable campaign → ad set → ad hierarchy.

Only ACTIVE/PAUSED entities whose ancestors are also ACTIVE/PAUSED are
returned. Each entity carries a derived daily budget used by the simulator:
  campaign = budget (DAILY) or budget / 30 (LIFETIME)
  ad set   = campaign budget / number of syncable sibling ad sets
  ad       = ad set budget / number of syncable sibling ads
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from sqlalchemy import select

from adstats.config import SYNCABLE_STATUSES, LIFETIME_BUDGET_DAYS
from adstats.models.ad import Ad
from adstats.models.ad_account import AdAccount
from adstats.models.adset import AdSet
from adstats.models.campaign import Campaign
from adstats.pipeline.base import EntityRef
from adstats.pipeline.metrics import round_money

logger = logging.getLogger('pipeline.entities')


@dataclass
class TenantEntities:
    campaigns: List[EntityRef] = field(default_factory=list)
    adsets: List[EntityRef] = field(default_factory=list)
    ads: List[EntityRef] = field(default_factory=list)

    def for_level(self, level: str) -> List[EntityRef]:
        if level == 'CAMPAIGN':
            return self.campaigns
        if level == 'ADSET':
            return self.adsets
        if level == 'AD':
            return self.ads
        raise ValueError(f"Unknown stats level: {level}")


def daily_budget(budget, budget_type) -> float:
    """Normalize a stored campaign budget to a per-day amount."""
    amount = float(budget or 0)
    if amount < 0:
        amount = 0.0
    if budget_type == 'LIFETIME':
        return round_money(amount / LIFETIME_BUDGET_DAYS)
    return amount


def fetch_tenant_entities(session, tenant_id: str) -> TenantEntities:
    """Resolve the three entity lists for one tenant."""
    campaign_rows = session.execute(
        select(Campaign.id, Campaign.external_campaign_id, Campaign.budget,
               Campaign.budget_type, Campaign.sellpage_id)
        .where(Campaign.tenant_id == tenant_id,
               Campaign.status.in_(SYNCABLE_STATUSES))
        .order_by(Campaign.id)
    ).all()

    campaigns = [
        EntityRef(
            id=row.id,
            external_id=row.external_campaign_id,
            budget=daily_budget(row.budget, row.budget_type),
            sellpage_id=row.sellpage_id,
        )
        for row in campaign_rows
    ]
    campaign_by_id = {c.id: c for c in campaigns}

    adset_rows = session.execute(
        select(AdSet.id, AdSet.external_adset_id, AdSet.campaign_id)
        .where(AdSet.tenant_id == tenant_id,
               AdSet.status.in_(SYNCABLE_STATUSES))
        .order_by(AdSet.id)
    ).all()
    adset_rows = [row for row in adset_rows if row.campaign_id in campaign_by_id]
    adsets_per_campaign = Counter(row.campaign_id for row in adset_rows)

    adsets = [
        EntityRef(
            id=row.id,
            external_id=row.external_adset_id,
            budget=round_money(campaign_by_id[row.campaign_id].budget
                               / adsets_per_campaign[row.campaign_id]),
            sellpage_id=campaign_by_id[row.campaign_id].sellpage_id,
        )
        for row in adset_rows
    ]
    adset_by_id = {a.id: a for a in adsets}

    ad_rows = session.execute(
        select(Ad.id, Ad.external_ad_id, Ad.adset_id)
        .where(Ad.tenant_id == tenant_id,
               Ad.status.in_(SYNCABLE_STATUSES))
        .order_by(Ad.id)
    ).all()
    ad_rows = [row for row in ad_rows if row.adset_id in adset_by_id]
    ads_per_adset = Counter(row.adset_id for row in ad_rows)

    ads = [
        EntityRef(
            id=row.id,
            external_id=row.external_ad_id,
            budget=round_money(adset_by_id[row.adset_id].budget
                               / ads_per_adset[row.adset_id]),
            sellpage_id=adset_by_id[row.adset_id].sellpage_id,
        )
        for row in ad_rows
    ]

    logger.debug("Tenant %s: %d campaigns, %d ad sets, %d ads",
                 tenant_id, len(campaigns), len(adsets), len(ads))
    return TenantEntities(campaigns=campaigns, adsets=adsets, ads=ads)


def fetch_eligible_tenant_ids(session) -> List[str]:
    """Tenants with at least one ACTIVE/PAUSED campaign on an active ad account."""
    rows = session.execute(
        select(Campaign.tenant_id)
        .join(AdAccount, AdAccount.id == Campaign.ad_account_id)
        .where(Campaign.status.in_(SYNCABLE_STATUSES),
               AdAccount.is_active.is_(True))
        .distinct()
        .order_by(Campaign.tenant_id)
    ).scalars().all()
    return list(rows)


def fetch_active_accounts(session, tenant_id: str) -> List[AdAccount]:
    """Active ad account connections for a tenant (live provider path)."""
    return list(session.execute(
        select(AdAccount)
        .where(AdAccount.tenant_id == tenant_id,
               AdAccount.is_active.is_(True))
        .order_by(AdAccount.id)
    ).scalars().all())
