"""
Raw writer — appends observations to ad_stats_raw.

No existence check and no update: re-fetching a day adds more rows, and the
daily aggregate sums all of them.
"""
import logging
from dataclasses import asdict
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from adstats.models.ad_stats_raw import AdStatsRaw
from adstats.pipeline.base import RawStatRow

logger = logging.getLogger('pipeline.write_raw')


def write_raw(session, rows: Iterable[RawStatRow]) -> int:
    """Insert every row. Returns the number inserted."""
    records = [AdStatsRaw(**asdict(row)) for row in rows]
    if not records:
        return 0
    try:
        session.add_all(records)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.error("Failed to write %d raw stat rows", len(records), exc_info=True)
        raise
    return len(records)
