"""
Scheduler — periodic stats sync for every eligible tenant.

Each tick finds tenants with at least one ACTIVE/PAUSED campaign on an active
ad account and enqueues CAMPAIGN, ADSET and AD jobs for the current UTC date.
Job ids are deterministic, so a tick that fires while the previous tick's jobs
are still pending adds nothing. A failing tick is logged and the next one runs
as normal.
"""
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from adstats.config import SCHEDULER_INTERVAL_MINUTES
from adstats.database import get_session
from adstats.pipeline.dates import utc_today, format_date
from adstats.pipeline.entities import fetch_eligible_tenant_ids
from adstats.queue import enqueue_tenant_sync

logger = logging.getLogger('stats.scheduler')

TICK_JOB_ID = 'stats_sync_tick'

scheduler = BackgroundScheduler(timezone=timezone.utc)


def run_scheduler_tick(today=None) -> dict:
    """Enqueue today's jobs for every eligible tenant. Never raises."""
    stat_date = format_date(today or utc_today())
    enqueued, failed = 0, 0
    try:
        session = get_session()
        try:
            tenant_ids = fetch_eligible_tenant_ids(session)
        finally:
            session.close()
    except Exception:
        logger.error("Scheduler tick failed to load eligible tenants", exc_info=True)
        return {'date': stat_date, 'tenants': 0, 'jobs': 0, 'failed': 0, 'error': True}

    for tenant_id in tenant_ids:
        try:
            enqueued += len(enqueue_tenant_sync(tenant_id, stat_date))
        except Exception:
            failed += 1
            logger.error("Scheduler could not enqueue sync for tenant %s", tenant_id, exc_info=True)

    logger.info("Scheduler tick %s: %d tenants, %d job ids, %d failures",
                stat_date, len(tenant_ids), enqueued, failed)
    return {'date': stat_date, 'tenants': len(tenant_ids), 'jobs': enqueued,
            'failed': failed, 'error': False}


def setup_scheduler(interval_minutes=SCHEDULER_INTERVAL_MINUTES, run_immediately=True):
    """Register the tick; the first run fires at start when run_immediately is set."""
    options = {}
    if run_immediately:
        options['next_run_time'] = datetime.now(timezone.utc)
    scheduler.add_job(
        run_scheduler_tick,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id=TICK_JOB_ID,
        name='Stats sync tick',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **options,
    )
    logger.info("Stats sync scheduled every %d minutes", interval_minutes)


def start_scheduler(interval_minutes=SCHEDULER_INTERVAL_MINUTES, run_immediately=True):
    setup_scheduler(interval_minutes, run_immediately)
    scheduler.start()


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
