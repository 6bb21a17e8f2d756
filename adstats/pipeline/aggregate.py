"""
Daily aggregator — rebuilds ad_stats_daily from the raw log.

For each entity with raw rows on the date, every counter is summed across all
matching rows and the ratios are derived from those sums. The existing daily
row is replaced outright, so re-running with an unchanged raw set produces the
same output, and running after new raw rows were appended increases the sums.
"""
import logging
from datetime import date
from typing import Iterable

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from adstats.models.ad_stats_daily import AdStatsDaily
from adstats.models.ad_stats_raw import AdStatsRaw
from adstats.pipeline.metrics import (
    COUNTER_FIELDS, MONEY_FIELDS, derive_ratios, funnel_is_monotonic, round_money,
)

logger = logging.getLogger('pipeline.aggregate')


def _sum_raw_rows(session, tenant_id, level, entity_ids, stat_date):
    columns = [func.sum(getattr(AdStatsRaw, name)).label(name) for name in COUNTER_FIELDS]
    return session.execute(
        select(AdStatsRaw.entity_id, func.count(AdStatsRaw.id).label('raw_row_count'), *columns)
        .where(AdStatsRaw.tenant_id == tenant_id,
               AdStatsRaw.entity_type == level,
               AdStatsRaw.entity_id.in_(entity_ids),
               AdStatsRaw.date_start == stat_date)
        .group_by(AdStatsRaw.entity_id)
        .order_by(AdStatsRaw.entity_id)
    ).all()


def aggregate_daily(session, tenant_id: str, level: str, entity_ids: Iterable[str], stat_date: date) -> int:
    """
    Upsert one daily row per entity that has raw rows on stat_date.

    Entities without raw rows are skipped (no zero row is written).
    Returns the number of rows upserted.
    """
    entity_ids = list(entity_ids)
    if not entity_ids:
        return 0

    try:
        grouped = _sum_raw_rows(session, tenant_id, level, entity_ids, stat_date)
        for row in grouped:
            counters = {}
            for name in COUNTER_FIELDS:
                value = getattr(row, name) or 0
                counters[name] = round_money(value) if name in MONEY_FIELDS else int(value)

            if not funnel_is_monotonic(counters):
                logger.warning("Non-monotonic funnel for %s %s on %s: %s",
                               level, row.entity_id, stat_date, counters)

            daily = session.execute(
                select(AdStatsDaily).filter_by(
                    tenant_id=tenant_id, entity_type=level,
                    entity_id=row.entity_id, stat_date=stat_date)
            ).scalar_one_or_none()
            if daily is None:
                daily = AdStatsDaily(tenant_id=tenant_id, entity_type=level,
                                     entity_id=row.entity_id, stat_date=stat_date)
                session.add(daily)

            for name, value in counters.items():
                setattr(daily, name, value)
            for name, value in derive_ratios(counters).items():
                setattr(daily, name, value)
            daily.raw_row_count = row.raw_row_count

        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.error("Failed to aggregate %s stats for tenant %s on %s",
                     level, tenant_id, stat_date, exc_info=True)
        raise

    return len(grouped)
