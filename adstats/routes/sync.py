"""
Stats sync routes — manual "sync now" trigger + job status.

The tenant comes from the TENANT_HEADER set by the auth gateway in front of
this service.
"""
import logging

import redis
from flask import Blueprint, request, jsonify

from adstats.config import TENANT_HEADER
from adstats.pipeline.dates import parse_date, format_date, utc_today
from adstats.queue import enqueue_tenant_sync, get_job_status, job_id_prefix

logger = logging.getLogger('routes.sync')

bp = Blueprint('sync', __name__)


def _tenant_id():
    return (request.headers.get(TENANT_HEADER) or '').strip()


@bp.route('/api/stats/sync', methods=['POST'])
def trigger_sync():
    """
    Enqueue CAMPAIGN, ADSET and AD jobs for one date (default: today, UTC).

    Body (optional): {"date": "YYYY-MM-DD"}
    Returns 202 with the three job ids. Calling again for the same date
    returns the same ids without duplicating pending work.
    """
    tenant_id = _tenant_id()
    if not tenant_id:
        return jsonify({'error': f'Missing {TENANT_HEADER} header'}), 401

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Body must be a JSON object'}), 400

    raw_date = data.get('date')
    if raw_date in (None, ''):
        stat_date = utc_today()
    else:
        try:
            stat_date = parse_date(raw_date)
        except ValueError:
            return jsonify({'error': 'date must be formatted YYYY-MM-DD'}), 400

    date_str = format_date(stat_date)
    try:
        job_ids = enqueue_tenant_sync(tenant_id, date_str)
    except redis.exceptions.RedisError:
        logger.error("Queue unavailable — could not enqueue sync for tenant %s", tenant_id,
                     exc_info=True)
        return jsonify({'error': 'Job queue unavailable, try again shortly'}), 503

    return jsonify({'queued': True, 'date': date_str, 'jobIds': job_ids}), 202


@bp.route('/api/stats/jobs/<job_id>')
def job_status(job_id):
    """Status of one of the caller's sync jobs."""
    tenant_id = _tenant_id()
    if not tenant_id:
        return jsonify({'error': f'Missing {TENANT_HEADER} header'}), 401

    if not job_id.startswith(job_id_prefix(tenant_id)):
        return jsonify({'error': 'Job not found'}), 404

    try:
        snapshot = get_job_status(job_id)
    except redis.exceptions.RedisError:
        logger.error("Queue unavailable — could not read job %s", job_id, exc_info=True)
        return jsonify({'error': 'Job queue unavailable, try again shortly'}), 503

    if snapshot is None or snapshot.get('tenant_id') != tenant_id:
        return jsonify({'error': 'Job not found'}), 404
    return jsonify(snapshot), 200
