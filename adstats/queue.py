"""
Stats sync job queue (RQ on Redis).

Every job id is deterministic: sync_<tenant>_<date_from>_<date_to>_<level>.
Enqueueing an id whose job is pending (queued, started, deferred, scheduled)
or finished and still retained is a silent no-op, so "sync now" and the
scheduler tick can fire repeatedly without re-fetching the same day. Only a
failed, stopped or canceled job, or one whose result has expired, runs again.

Retry policy: SYNC_JOB_ATTEMPTS total attempts with exponential backoff
(SYNC_BACKOFF_SECONDS × 2^n). Finished and failed jobs are kept for
SYNC_RESULT_TTL / SYNC_FAILURE_TTL seconds.
"""
import logging
import re
from typing import List, Optional

from rq import Callback, Queue, Retry
from rq.job import JobStatus

from adstats.config import (
    QUEUE_NAME, STAT_LEVELS, SYNC_JOB_ATTEMPTS, SYNC_BACKOFF_SECONDS,
    SYNC_JOB_TIMEOUT, SYNC_RESULT_TTL, SYNC_FAILURE_TTL,
)
from adstats.pipeline.dates import parse_date, format_date
from adstats.pipeline.processor import process_sync_job

logger = logging.getLogger('stats.queue')

PENDING_STATUSES = {
    JobStatus.QUEUED,
    JobStatus.STARTED,
    JobStatus.DEFERRED,
    JobStatus.SCHEDULED,
}

# Finished jobs stay until SYNC_RESULT_TTL removes them
DEDUP_STATUSES = PENDING_STATUSES | {JobStatus.FINISHED}

_SAFE_ID_CHARS = re.compile(r'[A-Za-z0-9]')


# ── Lazy RQ queue (avoids import-time Redis connection) ───────────────────────

_queue = None

def _get_queue():
    global _queue
    if _queue is None:
        from adstats.extensions import queue_redis
        _queue = Queue(QUEUE_NAME, connection=queue_redis)
    return _queue


# ── Job identity ──────────────────────────────────────────────────────────────

def encode_tenant_id(tenant_id: str) -> str:
    """
    Reversible job-id form of a tenant id.

    Letters and digits pass through, '-' becomes '--' and every other UTF-8
    byte becomes '-' plus two hex digits. The result never contains '_', the
    job id separator, and distinct tenants never share an encoding.
    """
    parts = []
    for char in str(tenant_id):
        if _SAFE_ID_CHARS.fullmatch(char):
            parts.append(char)
        elif char == '-':
            parts.append('--')
        else:
            parts.extend(f'-{byte:02x}' for byte in char.encode('utf-8'))
    return ''.join(parts)


def job_id_prefix(tenant_id: str) -> str:
    """Leading part shared by all of a tenant's job ids."""
    return f"sync_{encode_tenant_id(tenant_id)}_"


def make_job_id(tenant_id: str, date_from, date_to, level: str) -> str:
    """sync_<tenant>_<from>_<to>_<level>"""
    return (f"{job_id_prefix(tenant_id)}{format_date(parse_date(date_from))}_"
            f"{format_date(parse_date(date_to))}_{level}")


def retry_policy(attempts: int = SYNC_JOB_ATTEMPTS, backoff: int = SYNC_BACKOFF_SECONDS) -> Optional[Retry]:
    """Retry(max=attempts-1) with intervals backoff, 2×backoff, 4×backoff, ..."""
    retries = max(0, attempts - 1)
    if not retries:
        return None
    return Retry(max=retries, interval=[backoff * 2 ** n for n in range(retries)])


# ── Failure reporting ─────────────────────────────────────────────────────────

def report_job_failure(job, connection, exc_type, exc_value, tb):
    """RQ on_failure callback: one structured record per failed attempt."""
    retries_left = job.retries_left or 0
    attempt = max(1, SYNC_JOB_ATTEMPTS - retries_left)
    dead = retries_left <= 0
    kwargs = job.kwargs or {}
    logger.error(
        "Sync job %s failed (attempt %d/%d%s): %s",
        job.id, attempt, SYNC_JOB_ATTEMPTS, ', dead' if dead else ', will retry',
        exc_value,
        extra={'fields': {
            'event': 'sync_job_dead' if dead else 'sync_job_retry',
            'job_id': job.id,
            'tenant_id': kwargs.get('tenant_id'),
            'level': kwargs.get('level'),
            'attempt': attempt,
            'error': f"{getattr(exc_type, '__name__', exc_type)}: {exc_value}",
        }},
    )


# ── Public API ────────────────────────────────────────────────────────────────

def _status_value(status):
    return getattr(status, 'value', status)


def is_deduplicated(job_id: str, queue=None) -> bool:
    """True when a job with this id is pending or finished and still retained."""
    queue = queue or _get_queue()
    job = queue.fetch_job(job_id)
    if job is None:
        return False
    return _status_value(job.get_status()) in {s.value for s in DEDUP_STATUSES}


def enqueue_sync(tenant_id: str, date_from, date_to, level: str, queue=None) -> str:
    """Enqueue one (tenant, window, level) job unless the same id is pending or done."""
    queue = queue or _get_queue()
    date_from = format_date(parse_date(date_from))
    date_to = format_date(parse_date(date_to))
    job_id = make_job_id(tenant_id, date_from, date_to, level)

    if is_deduplicated(job_id, queue):
        logger.debug("Job %s already pending or finished — skipping enqueue", job_id)
        return job_id

    queue.enqueue(
        process_sync_job,
        kwargs={
            'tenant_id': tenant_id,
            'date_from': date_from,
            'date_to': date_to,
            'level': level,
        },
        job_id=job_id,
        job_timeout=SYNC_JOB_TIMEOUT,
        result_ttl=SYNC_RESULT_TTL,
        failure_ttl=SYNC_FAILURE_TTL,
        retry=retry_policy(),
        on_failure=Callback(report_job_failure),
        description=f"stats sync {tenant_id} {level} {date_from}..{date_to}",
    )
    logger.info("Enqueued %s", job_id)
    return job_id


def enqueue_tenant_sync(tenant_id: str, date_from, date_to=None, queue=None) -> List[str]:
    """Enqueue one job per level (CAMPAIGN, ADSET, AD). Returns the three job ids."""
    date_to = date_from if date_to is None else date_to
    return [enqueue_sync(tenant_id, date_from, date_to, level, queue=queue)
            for level in STAT_LEVELS]


def get_job_status(job_id: str, queue=None) -> Optional[dict]:
    """Status snapshot for a job id, or None if unknown/expired."""
    queue = queue or _get_queue()
    job = queue.fetch_job(job_id)
    if job is None:
        return None

    status = _status_value(job.get_status())
    kwargs = job.kwargs or {}
    snapshot = {
        'id': job.id,
        'status': status,
        'tenant_id': kwargs.get('tenant_id'),
        'level': kwargs.get('level'),
        'date_from': kwargs.get('date_from'),
        'date_to': kwargs.get('date_to'),
        'enqueued_at': job.enqueued_at.isoformat() if job.enqueued_at else None,
        'ended_at': job.ended_at.isoformat() if job.ended_at else None,
        'retries_left': job.retries_left,
        'result': None,
    }
    if status == JobStatus.FINISHED.value:
        snapshot['result'] = job.return_value()
    return snapshot
