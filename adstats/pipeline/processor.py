"""
Stats sync processor — one (tenant, level, date window) unit of work.

Stages:
  RESOLVE → FETCH → WRITE RAW → AGGREGATE (each day) → ROLLUP (CAMPAIGN only)

process_sync_job() is the function RQ executes. Invalid payloads are terminal:
they are logged as dead and the job returns without raising so no retry budget
is spent. Any other uncaught exception propagates and RQ retries the job.
"""
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, List, Type

from sqlalchemy.exc import SQLAlchemyError

from adstats.config import STAT_LEVELS, STATS_PROVIDER
from adstats.database import get_session
from adstats.exceptions import CredentialError, ProviderError, TerminalSyncError, InvalidJobPayload
from adstats.pipeline.aggregate import aggregate_daily
from adstats.pipeline.base import StatsProvider, AccountCredential, RawStatRow, get_provider
from adstats.pipeline.dates import parse_date, format_date, iter_days
from adstats.pipeline.entities import fetch_tenant_entities, fetch_active_accounts
from adstats.pipeline.live import MetaInsightsProvider
from adstats.pipeline.rollup import rollup_sellpage
from adstats.pipeline.simulator import SimulatedStatsProvider
from adstats.pipeline.write_raw import write_raw
from adstats.services.credentials import decrypt_token

logger = logging.getLogger('pipeline.processor')

# Longest window a single job may cover
MAX_WINDOW_DAYS = 93


# ── Provider registry ─────────────────────────────────────────────────────────

PROVIDER_REGISTRY: Dict[str, Type[StatsProvider]] = {
    'simulator': SimulatedStatsProvider,
    'meta': MetaInsightsProvider,
}


# ── Job payload + summary ─────────────────────────────────────────────────────

@dataclass
class SyncJob:
    tenant_id: str
    date_from: date
    date_to: date
    level: str

    @classmethod
    def from_args(cls, tenant_id, date_from, date_to, level) -> 'SyncJob':
        """Validate raw job arguments. Raises InvalidJobPayload."""
        if not tenant_id or not isinstance(tenant_id, str):
            raise InvalidJobPayload(f"Missing tenant id: {tenant_id!r}")
        if level not in STAT_LEVELS:
            raise InvalidJobPayload(f"Unknown level {level!r}; expected one of {STAT_LEVELS}")
        try:
            start = parse_date(date_from)
            stop = parse_date(date_to if date_to is not None else date_from)
        except ValueError as e:
            raise InvalidJobPayload(f"Bad date in job payload: {e}") from e
        if stop < start:
            raise InvalidJobPayload(f"date_to {stop} is before date_from {start}")
        if (stop - start).days >= MAX_WINDOW_DAYS:
            raise InvalidJobPayload(f"Window {start}..{stop} exceeds {MAX_WINDOW_DAYS} days")
        return cls(tenant_id=tenant_id, date_from=start, date_to=stop, level=level)


@dataclass
class JobSummary:
    """Counts and timings for one job; returned as the RQ job result."""
    tenant_id: str
    level: str
    date_from: str
    date_to: str
    provider: str
    status: str = 'completed'
    entities: int = 0
    rows_fetched: int = 0
    rows_written: int = 0
    daily_upserted: int = 0
    sellpages_upserted: int = 0
    accounts_processed: int = 0
    accounts_failed: int = 0
    pages_fetched: int = 0
    rollup_failed: bool = False
    note: str = ''
    stage_ms: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


# ── Processor ─────────────────────────────────────────────────────────────────

class StatsSyncProcessor:

    def __init__(self, provider: StatsProvider, session_factory=None):
        self.provider = provider
        self.session_factory = session_factory or get_session

    @contextmanager
    def _stage(self, name, summary):
        started = time.monotonic()
        try:
            yield
        finally:
            summary.stage_ms[name] = int((time.monotonic() - started) * 1000)

    def run(self, job: SyncJob) -> JobSummary:
        summary = JobSummary(
            tenant_id=job.tenant_id,
            level=job.level,
            date_from=format_date(job.date_from),
            date_to=format_date(job.date_to),
            provider=self.provider.name,
        )
        session = self.session_factory()
        try:
            with self._stage('resolve', summary):
                entities = fetch_tenant_entities(session, job.tenant_id).for_level(job.level)
            summary.entities = len(entities)
            logger.info("[%s %s] resolved %d entities in %dms", job.tenant_id, job.level,
                        len(entities), summary.stage_ms['resolve'])

            if not entities:
                summary.note = 'no entities'
                self._log_summary(summary)
                return summary

            with self._stage('fetch', summary):
                rows = self._fetch(session, job, entities, summary)
            summary.rows_fetched = len(rows)
            logger.info("[%s %s] fetched %d rows via %s in %dms", job.tenant_id, job.level,
                        len(rows), self.provider.name, summary.stage_ms['fetch'])

            with self._stage('write', summary):
                summary.rows_written = write_raw(session, rows)
            logger.info("[%s %s] wrote %d raw rows in %dms", job.tenant_id, job.level,
                        summary.rows_written, summary.stage_ms['write'])

            entity_ids = [e.id for e in entities]
            days = list(iter_days(job.date_from, job.date_to))

            with self._stage('aggregate', summary):
                for day in days:
                    summary.daily_upserted += aggregate_daily(
                        session, job.tenant_id, job.level, entity_ids, day)
            logger.info("[%s %s] upserted %d daily rows in %dms", job.tenant_id, job.level,
                        summary.daily_upserted, summary.stage_ms['aggregate'])

            if job.level == 'CAMPAIGN':
                with self._stage('rollup', summary):
                    self._rollup(session, job, entity_ids, days, summary)
                logger.info("[%s %s] upserted %d sellpage rows in %dms", job.tenant_id, job.level,
                            summary.sellpages_upserted, summary.stage_ms['rollup'])
        finally:
            session.close()

        self._log_summary(summary)
        return summary

    # ── Fetch ─────────────────────────────────────────────────────────

    def _fetch(self, session, job, entities, summary) -> List[RawStatRow]:
        if not self.provider.requires_credentials:
            return self.provider.fetch_stats(job.tenant_id, job.level, entities,
                                             job.date_from, job.date_to)

        rows = []
        for account in fetch_active_accounts(session, job.tenant_id):
            try:
                credential = AccountCredential(
                    internal_id=account.id,
                    external_id=account.external_id,
                    access_token=decrypt_token(account.access_token_enc),
                )
                account_rows, report = self.provider.fetch_account_rows(
                    job.tenant_id, job.level, entities, job.date_from, job.date_to, credential)
                rows.extend(account_rows)
                summary.accounts_processed += 1
                summary.pages_fetched += report.pages
                summary.errors.extend(f"account {account.id}: {error}" for error in report.errors)
            except (CredentialError, ProviderError) as e:
                summary.accounts_failed += 1
                summary.errors.append(f"account {account.id}: {e}")
                logger.error("[%s %s] account %s skipped: %s: %s", job.tenant_id, job.level,
                             account.id, type(e).__name__, e)
        return rows

    # ── Rollup ────────────────────────────────────────────────────────

    def _rollup(self, session, job, campaign_ids, days, summary):
        for day in days:
            try:
                summary.sellpages_upserted += rollup_sellpage(session, job.tenant_id, campaign_ids, day)
            except SQLAlchemyError as e:
                summary.rollup_failed = True
                summary.errors.append(f"rollup {format_date(day)}: {e}")
                logger.error("[%s] sellpage rollup failed for %s", job.tenant_id, day, exc_info=True)

    def _log_summary(self, summary):
        logger.info(
            "Sync %s/%s %s..%s done: %d entities, %d fetched, %d written, %d daily, %d sellpages%s",
            summary.tenant_id, summary.level, summary.date_from, summary.date_to,
            summary.entities, summary.rows_fetched, summary.rows_written,
            summary.daily_upserted, summary.sellpages_upserted,
            f" ({summary.note})" if summary.note else '',
            extra={'fields': {'event': 'sync_job_summary', **summary.to_dict()}},
        )


# ── RQ entry point ────────────────────────────────────────────────────────────

def build_processor(provider_name: str = None) -> StatsSyncProcessor:
    name = provider_name or os.getenv('STATS_PROVIDER', STATS_PROVIDER)
    return StatsSyncProcessor(get_provider(PROVIDER_REGISTRY, name))


def process_sync_job(tenant_id, date_from, date_to, level, provider_name=None):
    """Run one sync job. Executed by RQ workers."""
    try:
        job = SyncJob.from_args(tenant_id, date_from, date_to, level)
    except TerminalSyncError as e:
        logger.error(
            "Dead sync job for tenant %s level %s: %s", tenant_id, level, e,
            extra={'fields': {
                'event': 'sync_job_dead', 'tenant_id': tenant_id, 'level': level,
                'date_from': str(date_from), 'date_to': str(date_to), 'error': str(e),
            }},
        )
        return {'status': 'dead', 'error': str(e)}

    return build_processor(provider_name).run(job).to_dict()
