"""
Sellpage rollup — campaign daily stats → sellpage_stats_daily.

Runs after CAMPAIGN-level aggregation. Campaign daily rows for the date are
grouped by the campaign's sellpage, counters summed, and cpm, ctr,
cost_per_purchase, roas and the funnel rates cr1/cr2/cr3 derived from the sums.
Campaigns without a sellpage are ignored.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from adstats.config import AD_SOURCE
from adstats.models.ad_stats_daily import AdStatsDaily
from adstats.models.campaign import Campaign
from adstats.models.sellpage_stats_daily import SellpageStatsDaily
from adstats.pipeline.metrics import sum_counters, derive_ratios, funnel_rates

logger = logging.getLogger('pipeline.rollup')


def rollup_sellpage(session, tenant_id: str, campaign_ids: Iterable[str], stat_date: date,
                    ad_source: str = AD_SOURCE) -> int:
    """Upsert one row per sellpage touched by campaign_ids. Returns rows upserted."""
    campaign_ids = list(campaign_ids)
    if not campaign_ids:
        return 0

    try:
        daily_rows = session.execute(
            select(AdStatsDaily)
            .where(AdStatsDaily.tenant_id == tenant_id,
                   AdStatsDaily.entity_type == 'CAMPAIGN',
                   AdStatsDaily.entity_id.in_(campaign_ids),
                   AdStatsDaily.stat_date == stat_date)
        ).scalars().all()
        if not daily_rows:
            return 0

        sellpage_by_campaign = dict(session.execute(
            select(Campaign.id, Campaign.sellpage_id)
            .where(Campaign.tenant_id == tenant_id,
                   Campaign.id.in_(campaign_ids))
        ).all())

        by_page = defaultdict(list)
        for row in daily_rows:
            sellpage_id = sellpage_by_campaign.get(row.entity_id)
            if sellpage_id:
                by_page[sellpage_id].append(row)

        for sellpage_id, rows in sorted(by_page.items()):
            totals = sum_counters(rows)
            ratios = derive_ratios(totals)
            rates = funnel_rates(totals)

            page_stat = session.execute(
                select(SellpageStatsDaily).filter_by(
                    tenant_id=tenant_id, sellpage_id=sellpage_id,
                    stat_date=stat_date, ad_source=ad_source)
            ).scalar_one_or_none()
            if page_stat is None:
                page_stat = SellpageStatsDaily(tenant_id=tenant_id, sellpage_id=sellpage_id,
                                               stat_date=stat_date, ad_source=ad_source)
                session.add(page_stat)

            page_stat.revenue = totals['purchase_value']
            page_stat.orders_count = int(totals['purchases'])
            page_stat.ad_spend = totals['spend']
            page_stat.impressions = int(totals['impressions'])
            page_stat.link_clicks = int(totals['link_clicks'])
            page_stat.content_views = int(totals['content_views'])
            page_stat.add_to_cart = int(totals['add_to_cart'])
            page_stat.checkout_initiated = int(totals['checkout_initiated'])
            page_stat.purchases = int(totals['purchases'])
            page_stat.cpm = ratios['cpm']
            page_stat.ctr = ratios['ctr']
            page_stat.cost_per_purchase = ratios['cost_per_purchase']
            page_stat.roas = ratios['roas']
            page_stat.cr1 = rates['cr1']
            page_stat.cr2 = rates['cr2']
            page_stat.cr3 = rates['cr3']

        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.error("Sellpage rollup failed for tenant %s on %s", tenant_id, stat_date, exc_info=True)
        raise

    logger.debug("Rolled up %d campaign rows into %d sellpages", len(daily_rows), len(by_page))
    return len(by_page)
